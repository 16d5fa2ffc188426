import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.linkedin_post import LinkedinPost
from app.models.summary import Summary
from app.models.user import User, UserPlan
from app.models.website_summary import WebsiteSummary
from app.services import query
from app.services.formatting import format_user, iso

logger = logging.getLogger(__name__)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None


class CreditTopUp(BaseModel):
    credits: int = Field(gt=0, le=settings.max_credit_top_up)


class PlanUpgrade(BaseModel):
    plan: UserPlan = UserPlan.PREMIUM


class UserService:
    def get_profile(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return format_user(user)

    def update_profile(self, db: Session, user_id: UUID, updates: ProfileUpdate) -> Dict[str, Any]:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        written = query.apply_partial_update(user, updates.model_dump(exclude_unset=True))
        db.commit()
        db.refresh(user)

        logger.info(f"Profile updated: user={user_id} fields={written}")
        return format_user(user)

    def get_stats(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        now = datetime.now(timezone.utc)
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        total_summaries = query.count_owned(db, Summary, user_id)
        total_posts = query.count_owned(db, LinkedinPost, user_id)
        total_websites = query.count_owned(db, WebsiteSummary, user_id)

        return {
            "totalSummaries": total_summaries,
            "totalLinkedinPosts": total_posts,
            "totalWebsiteSummaries": total_websites,
            "summariesThisMonth": query.count_owned(db, Summary, user_id, Summary.created_at >= start_of_month),
            "linkedinPostsThisMonth": query.count_owned(db, LinkedinPost, user_id, LinkedinPost.saved_at >= start_of_month),
            "websiteSummariesThisMonth": query.count_owned(
                db, WebsiteSummary, user_id, WebsiteSummary.created_at >= start_of_month
            ),
            "creditsUsed": total_summaries * settings.credits_per_summary,
            "creditsRemaining": user.credits,
            "planStatus": user.plan.value,
            "joinedDate": iso(user.created_at),
        }

    def add_credits(self, db: Session, user_id: UUID, amount: int) -> Dict[str, Any]:
        updated = (
            db.query(User)
            .filter(User.id == user_id)
            .update({User.credits: User.credits + amount}, synchronize_session=False)
        )
        if not updated:
            raise NotFoundError("User not found")
        db.commit()

        user = db.get(User, user_id)
        logger.info(f"Credits added: user={user_id} amount={amount} balance={user.credits}")
        return format_user(user)

    def upgrade_plan(self, db: Session, user_id: UUID, plan: UserPlan) -> Dict[str, Any]:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        previous = user.plan
        user.plan = plan
        db.commit()
        db.refresh(user)

        logger.info(f"Plan changed: user={user_id} {previous.value} -> {plan.value}")
        return format_user(user)

    def verify_email(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        if not user.email_verified:
            user.email_verified = True
            db.commit()
            db.refresh(user)
            logger.info(f"Email verified: user={user_id}")
        return format_user(user)

    def delete_account(self, db: Session, user_id: UUID) -> Dict[str, int]:
        """Remove the user and every record they own in one transaction."""
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        removed = {}
        try:
            for key, model in (
                ("summaries", Summary),
                ("linkedinPosts", LinkedinPost),
                ("websiteSummaries", WebsiteSummary),
            ):
                removed[key] = (
                    db.query(model)
                    .filter(model.user_id == user_id)
                    .delete(synchronize_session=False)
                )
            db.delete(user)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Account deleted: user={user_id} removed={removed}")
        return removed
