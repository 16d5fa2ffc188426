import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.linkedin_post import LinkedinPost
from app.services import query
from app.services.formatting import encode_json, format_linkedin_post, iso

logger = logging.getLogger(__name__)

TOP_AUTHORS_LIMIT = 10
RECENT_ACTIVITY_LIMIT = 5


class LinkedinPostCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    content: str = Field(min_length=1)
    author: str = Field(min_length=1)
    post_url: str = Field(alias="postUrl", min_length=1)
    linkedin_post_id: Optional[str] = Field(default=None, alias="linkedinPostId")
    platform: str = "linkedin"
    engagement: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


class LinkedinPostUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    engagement: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _reject_null_required(self):
        for name in ("content", "author"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class LinkedinPostListParams(query.ListParams):
    author: Optional[str] = None


def build_linkedin_filters(params: LinkedinPostListParams) -> List[Any]:
    clauses = []
    if params.author:
        clauses.append(LinkedinPost.author.icontains(params.author, autoescape=True))
    return clauses


def linkedin_list_spec(params: LinkedinPostListParams) -> query.ListSpec:
    return query.ListSpec(
        model=LinkedinPost,
        search_columns=[LinkedinPost.title, LinkedinPost.content, LinkedinPost.author],
        date_column=LinkedinPost.saved_at,
        sort_columns={
            "savedAt": LinkedinPost.saved_at,
            "createdAt": LinkedinPost.created_at,
            "author": LinkedinPost.author,
            "title": LinkedinPost.title,
        },
        default_sort="savedAt",
        extra_filters=build_linkedin_filters(params),
    )


class LinkedinPostService:
    """Saved LinkedIn posts, one row per (user, post URL)."""

    def save_post(self, db: Session, user_id: UUID, data: LinkedinPostCreate) -> Tuple[Dict[str, Any], bool]:
        def build() -> LinkedinPost:
            return LinkedinPost(
                user_id=user_id,
                title=data.title or None,
                content=data.content,
                author=data.author,
                post_url=data.post_url,
                linkedin_post_id=data.linkedin_post_id or None,
                platform=data.platform or "linkedin",
                engagement=encode_json(data.engagement),
                meta=encode_json(data.metadata),
            )

        post, is_new = query.create_or_return(
            db, LinkedinPost, user_id, LinkedinPost.post_url, data.post_url, build
        )

        if is_new:
            logger.info(f"LinkedIn post saved: user={user_id} post={post.id} author={data.author}")
        else:
            logger.info(f"LinkedIn post already saved: user={user_id} post={post.id}")

        return format_linkedin_post(post), is_new

    def list_posts(self, db: Session, user_id: UUID, params: LinkedinPostListParams) -> Dict[str, Any]:
        page = query.paginate(db, user_id, linkedin_list_spec(params), params)
        return {
            "data": [format_linkedin_post(post) for post in page.items],
            "pagination": page.pagination(),
        }

    def get_post(self, db: Session, user_id: UUID, post_id: UUID) -> Dict[str, Any]:
        post = query.get_owned(db, LinkedinPost, user_id, post_id)
        if not post:
            raise NotFoundError("LinkedIn post not found")
        return format_linkedin_post(post)

    def update_post(self, db: Session, user_id: UUID, post_id: UUID, updates: LinkedinPostUpdate) -> Dict[str, Any]:
        post = query.get_owned(db, LinkedinPost, user_id, post_id)
        if not post:
            raise NotFoundError("LinkedIn post not found")

        changes = updates.model_dump(exclude_unset=True)
        written = query.apply_partial_update(
            post,
            changes,
            encoders={
                "engagement": encode_json,
                "metadata": encode_json,
            },
            attribute_map={"metadata": "meta"},
        )
        db.commit()
        db.refresh(post)

        logger.info(f"LinkedIn post updated: user={user_id} post={post_id} fields={written}")
        return format_linkedin_post(post)

    def delete_post(self, db: Session, user_id: UUID, post_id: UUID) -> None:
        post = query.get_owned(db, LinkedinPost, user_id, post_id)
        if not post:
            raise NotFoundError("LinkedIn post not found")

        db.delete(post)
        db.commit()
        logger.info(f"LinkedIn post deleted: user={user_id} post={post_id}")

    def bulk_delete_posts(self, db: Session, user_id: UUID, post_ids: List[UUID]) -> int:
        deleted = query.bulk_delete_owned(db, LinkedinPost, user_id, post_ids)
        logger.info(f"LinkedIn posts bulk deleted: user={user_id} deleted={deleted} requested={len(post_ids)}")
        return deleted

    def get_stats(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        start_of_week = now - timedelta(days=7)

        total = query.count_owned(db, LinkedinPost, user_id)
        this_month = query.count_owned(db, LinkedinPost, user_id, LinkedinPost.saved_at >= start_of_month)
        this_week = query.count_owned(db, LinkedinPost, user_id, LinkedinPost.saved_at >= start_of_week)
        top_authors = query.top_values(db, LinkedinPost, user_id, LinkedinPost.author, TOP_AUTHORS_LIMIT)
        recent = query.most_recent(db, LinkedinPost, user_id, LinkedinPost.saved_at, RECENT_ACTIVITY_LIMIT)

        return {
            "totalPosts": total,
            "postsThisMonth": this_month,
            "postsThisWeek": this_week,
            "topAuthors": [{"author": author, "count": count} for author, count in top_authors],
            "recentActivity": [
                {
                    "id": str(post.id),
                    "title": post.title or f"Post by {post.author}",
                    "author": post.author,
                    "savedAt": iso(post.saved_at),
                }
                for post in recent
            ],
        }
