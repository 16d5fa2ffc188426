import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from app.db.base import Base, utcnow


class WebsiteSummary(Base):
    __tablename__ = "website_summary"
    __table_args__ = (
        UniqueConstraint("user_id", "url", name="uq_website_summary_user_url"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(Text, nullable=False)
    url = Column(String, nullable=False, index=True)
    website_name = Column(String, nullable=False)
    favicon_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")

    def __repr__(self):
        return f"<WebsiteSummary(url='{self.url}')>"
