from fastapi import APIRouter
from showtracker.api.endpoints import account, library, refresh, shows

api_router = APIRouter()
api_router.include_router(shows.router, tags=["shows"])
api_router.include_router(account.router, tags=["account"])
api_router.include_router(refresh.router, tags=["refresh"])
api_router.include_router(library.router, prefix="/library", tags=["library"])
