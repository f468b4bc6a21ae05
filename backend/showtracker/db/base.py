# Import Base class
from showtracker.db.base_class import Base

# Import all models here so that Base has them registered
# This is needed for Base.metadata.create_all()
from showtracker.models.user import User
from showtracker.models.library import UserShow, EpisodeWatch
from showtracker.models.cache import ShowCache, EpisodeCache
from showtracker.models.refresh_execution import RefreshExecution
