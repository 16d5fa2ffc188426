import enum
import uuid

from sqlalchemy import Column, String, DateTime, Integer, Boolean, Enum, Uuid
from app.core.config import settings
from app.db.base import Base, utcnow


class UserPlan(str, enum.Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"


class User(Base):
    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    plan = Column(Enum(UserPlan, name="user_plan"), nullable=False, default=UserPlan.FREE)
    credits = Column(Integer, nullable=False, default=settings.default_credits)
    email_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User(email='{self.email}')>"
