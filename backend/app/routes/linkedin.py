from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_linkedin_service
from app.db.session import get_db
from app.models.user import User
from app.services.linkedin_service import (
    LinkedinPostCreate,
    LinkedinPostListParams,
    LinkedinPostService,
    LinkedinPostUpdate,
)
router = APIRouter()


class BulkDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_ids: List[UUID] = Field(alias="postIds", min_length=1)


@router.post("/posts")
async def save_post(
    post_data: LinkedinPostCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: LinkedinPostService = Depends(get_linkedin_service),
):
    """Save a LinkedIn post; re-saving the same URL returns the stored post"""
    post, is_new = service.save_post(db, current_user.id, post_data)
    return {
        "success": True,
        "data": post,
        "message": "LinkedIn post saved successfully" if is_new else "LinkedIn post already saved",
    }


@router.get("/posts")
async def list_posts(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    sort_by: str = Query("savedAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: LinkedinPostService = Depends(get_linkedin_service),
):
    """List user's LinkedIn posts with pagination and filtering"""
    params = LinkedinPostListParams(
        page=page,
        limit=limit,
        search=search,
        author=author,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"success": True, "data": service.list_posts(db, current_user.id, params)}


@router.get("/posts/stats")
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: LinkedinPostService = Depends(get_linkedin_service),
):
    return {"success": True, "data": service.get_stats(db, current_user.id)}


@router.post("/posts/bulk-delete")
async def bulk_delete_posts(
    payload: BulkDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: LinkedinPostService = Depends(get_linkedin_service),
):
    deleted = service.bulk_delete_posts(db, current_user.id, payload.post_ids)
    return {
        "success": True,
        "data": {"deletedCount": deleted},
        "message": f"{deleted} LinkedIn posts deleted successfully",
    }


@router.get("/posts/{post_id}")
async def get_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: LinkedinPostService = Depends(get_linkedin_service),
):
    return {"success": True, "data": service.get_post(db, current_user.id, post_id)}


@router.put("/posts/{post_id}")
async def update_post(
    post_id: UUID,
    updates: LinkedinPostUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: LinkedinPostService = Depends(get_linkedin_service),
):
    post = service.update_post(db, current_user.id, post_id, updates)
    return {"success": True, "data": post, "message": "LinkedIn post updated successfully"}


@router.delete("/posts/{post_id}", status_code=status.HTTP_200_OK)
async def delete_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: LinkedinPostService = Depends(get_linkedin_service),
):
    service.delete_post(db, current_user.id, post_id)
    return {"success": True, "message": "LinkedIn post deleted successfully"}
