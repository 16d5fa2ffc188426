from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_website_service
from app.db.session import get_db
from app.models.user import User
from app.services.website_service import (
    WebsiteSummaryCreate,
    WebsiteSummaryListParams,
    WebsiteSummaryService,
    WebsiteSummaryUpdate,
    is_http_url,
)

router = APIRouter()


class BulkDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary_ids: List[UUID] = Field(alias="summaryIds", min_length=1)


@router.get("/health")
async def health(current_user: User = Depends(get_current_user)):
    return {
        "success": True,
        "data": {
            "service": "Website Summary API",
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "features": [
                "Article content summarization",
                "Duplicate prevention",
                "Website name extraction",
                "Favicon URL generation",
            ],
        },
    }


@router.post("")
async def create_summary(
    request: WebsiteSummaryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: WebsiteSummaryService = Depends(get_website_service),
):
    """Create a website summary, or return the stored one for this URL"""
    summary, is_new = await service.create_or_get(db, current_user.id, request)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if is_new else status.HTTP_200_OK,
        content={
            "success": True,
            "data": summary,
            "message": (
                "Website summary created successfully"
                if is_new
                else "Website summary retrieved from existing data"
            ),
        },
    )


@router.get("")
async def get_summary_by_url(
    url: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: WebsiteSummaryService = Depends(get_website_service),
):
    if not is_http_url(url):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid URL format")

    summary = service.get_by_url(db, current_user.id, url)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No summary found for this URL")
    return {"success": True, "data": summary}


@router.get("/list")
async def list_summaries(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None),
    website_name: Optional[str] = Query(None, alias="websiteName"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: WebsiteSummaryService = Depends(get_website_service),
):
    params = WebsiteSummaryListParams(
        page=page,
        limit=limit,
        search=search,
        website_name=website_name,
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
    service: WebsiteSummaryService = Depends(get_website_service),
):
    return {"success": True, "data": service.get_stats(db, current_user.id)}


@router.post("/bulk-delete")
async def bulk_delete_summaries(
    payload: BulkDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: WebsiteSummaryService = Depends(get_website_service),
):
    deleted = service.bulk_delete(db, current_user.id, payload.summary_ids)
    return {
        "success": True,
        "data": {"deletedCount": deleted},
        "message": f"{deleted} website summaries deleted successfully",
    }


@router.get("/{summary_id}")
async def get_summary(
    summary_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: WebsiteSummaryService = Depends(get_website_service),
):
    return {"success": True, "data": service.get_summary(db, current_user.id, summary_id)}


@router.put("/{summary_id}")
async def update_summary(
    summary_id: UUID,
    updates: WebsiteSummaryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: WebsiteSummaryService = Depends(get_website_service),
):
    summary = service.update_summary(db, current_user.id, summary_id, updates)
    return {"success": True, "data": summary, "message": "Website summary updated successfully"}


@router.delete("/{summary_id}")
async def delete_summary(
    summary_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: WebsiteSummaryService = Depends(get_website_service),
):
    service.delete_summary(db, current_user.id, summary_id)
    return {"success": True, "message": "Website summary deleted successfully"}
