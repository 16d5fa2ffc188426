from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_summary_service
from app.db.session import get_db
from app.models.summary import SummaryStatus
from app.models.user import User
from app.services.summary_service import (
    GenerateSummaryRequest,
    SaveSummaryRequest,
    SummaryListParams,
    SummaryService,
    SummaryUpdate,
)

router = APIRouter()


class BulkDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary_ids: List[UUID] = Field(alias="summaryIds", min_length=1)


@router.post("/generate")
async def generate_summary(
    request: GenerateSummaryRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    """Generate an AI summary from a video transcript"""
    summary = await service.generate(db, current_user.id, request)
    return {"success": True, "data": summary, "message": "Summary generated successfully"}


@router.post("/save")
async def save_summary(
    request: SaveSummaryRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    summary = service.save(db, current_user.id, request)
    return {"success": True, "data": summary, "message": "Summary saved successfully"}


@router.get("")
async def list_summaries(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None),
    status: Optional[SummaryStatus] = Query(None),
    video_id: Optional[str] = Query(None, alias="videoId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    """List user's summaries with pagination and filtering"""
    params = SummaryListParams(
        page=page,
        limit=limit,
        search=search,
        status=status,
        video_id=video_id,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"success": True, "data": service.list_summaries(db, current_user.id, params)}


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    return {"success": True, "data": service.get_stats(db, current_user.id)}


@router.post("/bulk-delete")
async def bulk_delete_summaries(
    payload: BulkDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    deleted = service.bulk_delete(db, current_user.id, payload.summary_ids)
    return {
        "success": True,
        "data": {"deletedCount": deleted},
        "message": f"{deleted} summaries deleted successfully",
    }


@router.get("/video/{video_id}")
async def get_summary_by_video(
    video_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    return {"success": True, "data": service.get_by_video_id(db, current_user.id, video_id)}


@router.get("/{summary_id}")
async def get_summary(
    summary_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    return {"success": True, "data": service.get_summary(db, current_user.id, summary_id)}


@router.put("/{summary_id}")
async def update_summary(
    summary_id: UUID,
    updates: SummaryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    summary = service.update_summary(db, current_user.id, summary_id, updates)
    return {"success": True, "data": summary, "message": "Summary updated successfully"}


@router.delete("/{summary_id}")
async def delete_summary(
    summary_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: SummaryService = Depends(get_summary_service),
):
    service.delete_summary(db, current_user.id, summary_id)
    return {"success": True, "message": "Summary deleted successfully"}
