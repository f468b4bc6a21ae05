from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from showtracker.db.base_class import Base
import enum

class RefreshTrigger(str, enum.Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"

class ExecutionStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    RUNNING = "running"

class RefreshExecution(Base):
    __tablename__ = "refresh_executions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    trigger = Column(SQLEnum(RefreshTrigger), nullable=False)
    started_at = Column(DateTime, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)
    status = Column(SQLEnum(ExecutionStatus), nullable=False, default=ExecutionStatus.RUNNING)
    updated_shows = Column(Integer, default=0)
    updated_episodes = Column(Integer, default=0)
    failures = Column(Integer, default=0)
    error_message = Column(Text, nullable=True)
