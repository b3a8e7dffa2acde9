from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime
from database import Base


class StartupCall(Base):
    __tablename__ = "startup_calls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="open")  # open/closed/draft
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
