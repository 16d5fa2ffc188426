import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey, Enum, Index, Uuid
from sqlalchemy.orm import relationship
from app.db.base import Base, utcnow


class SummaryStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Summary(Base):
    __tablename__ = "summary"
    __table_args__ = (
        Index("ix_summary_user_created", "user_id", "created_at"),
        Index("ix_summary_user_video", "user_id", "video_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    key_points = Column(Text, nullable=False, default="[]")  # JSON list[str]
    full_summary = Column(Text, nullable=False)
    tags = Column(Text, nullable=False, default="[]")  # JSON list[str]
    status = Column(Enum(SummaryStatus, name="summary_status"), nullable=False, default=SummaryStatus.PENDING)

    # Denormalized video fields
    video_id = Column(String, nullable=False)
    video_title = Column(String, nullable=False)
    channel_name = Column(String, nullable=False)
    video_duration = Column(String, nullable=True)
    video_url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)

    transcript = Column(Text, nullable=True)  # JSON list of segments
    transcript_text = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")

    def __repr__(self):
        return f"<Summary(video_id='{self.video_id}', status='{self.status}')>"


class VideoMetadata(Base):
    """Per-video cache shared across users."""

    __tablename__ = "video_metadata"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    video_id = Column(String, unique=True, nullable=False, index=True)
    title = Column(String, nullable=False)
    channel_name = Column(String, nullable=False)
    duration = Column(String, nullable=True)
    url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    published_at = Column(String, nullable=True)
    view_count = Column(Integer, nullable=True)
    like_count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
