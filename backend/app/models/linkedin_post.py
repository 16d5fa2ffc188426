import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from app.db.base import Base, utcnow


class LinkedinPost(Base):
    __tablename__ = "linkedin_post"
    __table_args__ = (
        UniqueConstraint("user_id", "post_url", name="uq_linkedin_post_user_url"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    author = Column(String, nullable=False)
    post_url = Column(String, nullable=False)
    linkedin_post_id = Column(String, nullable=True)
    platform = Column(String, nullable=False, default="linkedin", index=True)
    engagement = Column(Text, nullable=True)  # JSON {likes, comments, shares}
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", Text, nullable=True)
    saved_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")

    def __repr__(self):
        return f"<LinkedinPost(author='{self.author}', post_url='{self.post_url}')>"
