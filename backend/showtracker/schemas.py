from pydantic import BaseModel
from typing import List, Optional, Union
from datetime import datetime
from showtracker.models.refresh_execution import RefreshTrigger, ExecutionStatus

class SearchResult(BaseModel):
    id: str
    title: str
    year: Optional[int] = None

class SearchResponse(BaseModel):
    results: List[SearchResult]

class AddShowRequest(BaseModel):
    tvdbId: Optional[Union[str, int]] = None

class ShowResponse(BaseModel):
    id: str
    title: Optional[str] = None
    poster: Optional[str] = None
    overview: Optional[str] = None
    firstAired: Optional[str] = None
    lastAired: Optional[str] = None
    status: Optional[str] = None
    network: Optional[str] = None
    hasAllEpisodes: bool = False

class AddShowResponse(BaseModel):
    show: ShowResponse

class EpisodeResponse(BaseModel):
    id: str
    title: Optional[str] = None
    seasonNumber: Optional[int] = None
    episodeNumber: Optional[int] = None
    airDate: Optional[str] = None
    absoluteNumber: Optional[int] = None
    overview: Optional[str] = None

class EpisodesResponse(BaseModel):
    episodes: List[EpisodeResponse]

class SavePinRequest(BaseModel):
    pin: Optional[str] = None

class OkResponse(BaseModel):
    ok: bool = True

class RefreshNowRequest(BaseModel):
    pin: Optional[str] = None

class RefreshSummaryResponse(BaseModel):
    updatedShows: int
    updatedEpisodes: int
    failures: int

class RefreshNowResponse(BaseModel):
    ok: bool = True
    message: str
    result: RefreshSummaryResponse

class LibraryShowResponse(BaseModel):
    id: str
    title: Optional[str] = None
    attentionState: Optional[str] = None
    lastRefreshAt: Optional[datetime] = None
    addedAt: Optional[datetime] = None
    seasonCount: Optional[int] = None
    unwatchedCount: int = 0
    poster: Optional[str] = None
    overview: Optional[str] = None
    firstAired: Optional[str] = None
    lastAired: Optional[str] = None
    status: Optional[str] = None
    network: Optional[str] = None

class LibraryResponse(BaseModel):
    shows: List[LibraryShowResponse]

class WatchStateResponse(BaseModel):
    ok: bool = True
    attentionState: str

class SeasonWatchStateResponse(WatchStateResponse):
    episodes: int

class RefreshExecutionResponse(BaseModel):
    id: int
    trigger: RefreshTrigger
    status: ExecutionStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_shows: int = 0
    updated_episodes: int = 0
    failures: int = 0
    error_message: Optional[str] = None

    class Config:
        from_attributes = True

class RefreshHistoryResponse(BaseModel):
    executions: List[RefreshExecutionResponse]
