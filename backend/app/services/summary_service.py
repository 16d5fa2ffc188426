import json
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InsufficientCreditsError, NotFoundError
from app.core.llm import LLMClient
from app.models.summary import Summary, SummaryStatus, VideoMetadata
from app.models.user import User
from app.services import query
from app.services.formatting import decode_json, encode_json, format_summary, iso

logger = logging.getLogger(__name__)

SUMMARY_MAX_TOKENS = 1500
SUMMARY_TEMPERATURE = 0.3
TOP_CHANNELS_LIMIT = 5
RECENT_LIMIT = 5

SYSTEM_PROMPT = (
    "You are an expert at summarizing YouTube videos. You respond with a single JSON object "
    "and nothing else."
)

VIDEO_PROMPT = """Summarize the following YouTube video transcript.

Video title: {title}
Channel: {channel}

Return a JSON object with exactly these keys:
- "keyPoints": an array of 5-8 short, self-contained key points
- "fullSummary": a readable 2-4 paragraph summary of the video
- "tags": an array of 3-6 lowercase topic tags

Transcript:
{transcript}"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class TranscriptSegment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str
    text: str
    start_seconds: Optional[float] = Field(default=None, alias="startSeconds")
    end_seconds: Optional[float] = Field(default=None, alias="endSeconds")


class VideoMetadataIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: str = Field(alias="videoId", min_length=1)
    title: str = Field(min_length=1)
    channel_name: str = Field(alias="channelName", min_length=1)
    duration: Optional[str] = None
    url: str = Field(min_length=1)
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    description: Optional[str] = None
    published_at: Optional[str] = Field(default=None, alias="publishedAt")
    view_count: Optional[int] = Field(default=None, alias="viewCount")
    like_count: Optional[int] = Field(default=None, alias="likeCount")


class GenerateSummaryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: List[TranscriptSegment] = Field(min_length=1)
    video_metadata: VideoMetadataIn = Field(alias="videoMetadata")


class SaveSummaryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    full_summary: str = Field(alias="fullSummary", min_length=1)
    tags: List[str] = Field(default_factory=list)
    status: SummaryStatus = SummaryStatus.COMPLETED
    video_metadata: VideoMetadataIn = Field(alias="videoMetadata")
    transcript: Optional[List[TranscriptSegment]] = None
    transcript_text: Optional[str] = Field(default=None, alias="transcriptText")


class SummaryUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    key_points: Optional[List[str]] = Field(default=None, alias="keyPoints")
    full_summary: Optional[str] = Field(default=None, alias="fullSummary")
    tags: Optional[List[str]] = None
    status: Optional[SummaryStatus] = None

    @model_validator(mode="after")
    def _reject_null(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class SummaryListParams(query.ListParams):
    status: Optional[SummaryStatus] = None
    video_id: Optional[str] = None


def build_summary_filters(params: SummaryListParams) -> List[Any]:
    clauses = []
    if params.status is not None:
        clauses.append(Summary.status == params.status)
    if params.video_id:
        clauses.append(Summary.video_id == params.video_id)
    return clauses


def summary_list_spec(params: SummaryListParams) -> query.ListSpec:
    return query.ListSpec(
        model=Summary,
        search_columns=[Summary.title, Summary.full_summary, Summary.video_title, Summary.channel_name],
        date_column=Summary.created_at,
        sort_columns={
            "createdAt": Summary.created_at,
            "title": Summary.title,
            "videoTitle": Summary.video_title,
        },
        default_sort="createdAt",
        extra_filters=build_summary_filters(params),
    )


def transcript_to_text(segments: List[TranscriptSegment], max_length: int) -> str:
    text = "\n".join(f"[{seg.timestamp}] {seg.text}" for seg in segments)
    if len(text) > max_length:
        logger.info(f"Transcript truncated from {len(text)} to {max_length} chars")
        text = text[:max_length]
    return text


def parse_completion(raw: str) -> Dict[str, Any]:
    """Pull keyPoints/fullSummary/tags out of the model reply; plain prose becomes the full summary."""
    match = _JSON_OBJECT.search(raw)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            parsed = None
        if isinstance(parsed, dict) and parsed.get("fullSummary"):
            return {
                "keyPoints": [str(p) for p in parsed.get("keyPoints") or []],
                "fullSummary": str(parsed["fullSummary"]).strip(),
                "tags": [str(t) for t in parsed.get("tags") or []],
            }

    logger.warning("Completion was not a JSON summary, using raw text")
    return {"keyPoints": [], "fullSummary": raw.strip(), "tags": []}


class SummaryService:
    """Video summaries: generation via the completion client, storage and queries."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def _upsert_video_metadata(self, db: Session, meta: VideoMetadataIn) -> None:
        row = db.query(VideoMetadata).filter(VideoMetadata.video_id == meta.video_id).first()
        if row is None:
            row = VideoMetadata(video_id=meta.video_id)
            db.add(row)
        row.title = meta.title
        row.channel_name = meta.channel_name
        row.duration = meta.duration
        row.url = meta.url
        row.thumbnail_url = meta.thumbnail_url
        row.description = meta.description
        row.published_at = meta.published_at
        row.view_count = meta.view_count
        row.like_count = meta.like_count

    @staticmethod
    def _apply_video_fields(summary: Summary, meta: VideoMetadataIn) -> None:
        summary.video_id = meta.video_id
        summary.video_title = meta.title
        summary.channel_name = meta.channel_name
        summary.video_duration = meta.duration
        summary.video_url = meta.url
        summary.thumbnail_url = meta.thumbnail_url

    @staticmethod
    def _deduct_credits(db: Session, user_id: UUID, needed: int) -> bool:
        # Single guarded UPDATE; credits never go below zero
        updated = (
            db.query(User)
            .filter(User.id == user_id, User.credits >= needed)
            .update({User.credits: User.credits - needed}, synchronize_session=False)
        )
        return updated == 1

    async def generate(self, db: Session, user_id: UUID, data: GenerateSummaryRequest) -> Dict[str, Any]:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        needed = settings.credits_per_summary
        if user.credits < needed:
            raise InsufficientCreditsError(needed=needed, current=user.credits)

        meta = data.video_metadata
        transcript_text = transcript_to_text(data.transcript, settings.max_transcript_length)

        raw = await self.llm.complete(
            VIDEO_PROMPT.format(title=meta.title, channel=meta.channel_name, transcript=transcript_text),
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
            system=SYSTEM_PROMPT,
        )
        result = parse_completion(raw)

        summary = Summary(
            user_id=user_id,
            title=meta.title,
            key_points=encode_json(result["keyPoints"]),
            full_summary=result["fullSummary"],
            tags=encode_json(result["tags"]),
            status=SummaryStatus.COMPLETED,
            transcript=encode_json([seg.model_dump(by_alias=True, exclude_none=True) for seg in data.transcript]),
            transcript_text=transcript_text,
        )
        self._apply_video_fields(summary, meta)
        db.add(summary)
        self._upsert_video_metadata(db, meta)

        try:
            if not self._deduct_credits(db, user_id, needed):
                db.rollback()
                current = db.get(User, user_id).credits
                logger.info(f"Credits spent concurrently: user={user_id} have={current}")
                raise InsufficientCreditsError(needed=needed, current=current)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(summary)

        logger.info(f"Summary generated: user={user_id} video={meta.video_id} summary={summary.id}")
        return format_summary(summary)

    def save(self, db: Session, user_id: UUID, data: SaveSummaryRequest) -> Dict[str, Any]:
        meta = data.video_metadata
        summary = (
            db.query(Summary)
            .filter(Summary.user_id == user_id, Summary.video_id == meta.video_id)
            .order_by(Summary.created_at.desc())
            .first()
        )
        if summary is None:
            summary = Summary(user_id=user_id)
            db.add(summary)

        summary.title = data.title
        summary.key_points = encode_json(data.key_points)
        summary.full_summary = data.full_summary
        summary.tags = encode_json(data.tags)
        summary.status = data.status
        if data.transcript is not None:
            summary.transcript = encode_json([seg.model_dump(by_alias=True, exclude_none=True) for seg in data.transcript])
        if data.transcript_text is not None:
            summary.transcript_text = data.transcript_text
        self._apply_video_fields(summary, meta)
        self._upsert_video_metadata(db, meta)

        db.commit()
        db.refresh(summary)

        logger.info(f"Summary saved: user={user_id} video={meta.video_id} summary={summary.id}")
        return format_summary(summary)

    def list_summaries(self, db: Session, user_id: UUID, params: SummaryListParams) -> Dict[str, Any]:
        page = query.paginate(db, user_id, summary_list_spec(params), params)
        return {
            "data": [format_summary(summary) for summary in page.items],
            "pagination": page.pagination(),
        }

    def get_summary(self, db: Session, user_id: UUID, summary_id: UUID) -> Dict[str, Any]:
        summary = query.get_owned(db, Summary, user_id, summary_id)
        if not summary:
            raise NotFoundError("Summary not found")
        return format_summary(summary)

    def get_by_video_id(self, db: Session, user_id: UUID, video_id: str) -> Dict[str, Any]:
        summary = (
            db.query(Summary)
            .filter(Summary.user_id == user_id, Summary.video_id == video_id)
            .order_by(Summary.created_at.desc())
            .first()
        )
        if not summary:
            raise NotFoundError("Summary not found")
        return format_summary(summary)

    def update_summary(self, db: Session, user_id: UUID, summary_id: UUID, updates: SummaryUpdate) -> Dict[str, Any]:
        summary = query.get_owned(db, Summary, user_id, summary_id)
        if not summary:
            raise NotFoundError("Summary not found")

        written = query.apply_partial_update(
            summary,
            updates.model_dump(exclude_unset=True),
            encoders={"key_points": encode_json, "tags": encode_json},
        )
        db.commit()
        db.refresh(summary)

        logger.info(f"Summary updated: user={user_id} summary={summary_id} fields={written}")
        return format_summary(summary)

    def delete_summary(self, db: Session, user_id: UUID, summary_id: UUID) -> None:
        summary = query.get_owned(db, Summary, user_id, summary_id)
        if not summary:
            raise NotFoundError("Summary not found")

        db.delete(summary)
        db.commit()
        logger.info(f"Summary deleted: user={user_id} summary={summary_id}")

    def bulk_delete(self, db: Session, user_id: UUID, summary_ids: List[UUID]) -> int:
        deleted = query.bulk_delete_owned(db, Summary, user_id, summary_ids)
        logger.info(f"Summaries bulk deleted: user={user_id} deleted={deleted}")
        return deleted

    def get_stats(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        start_of_week = now - timedelta(days=7)

        total = query.count_owned(db, Summary, user_id)
        completed = query.count_owned(db, Summary, user_id, Summary.status == SummaryStatus.COMPLETED)
        this_month = query.count_owned(db, Summary, user_id, Summary.created_at >= start_of_month)
        this_week = query.count_owned(db, Summary, user_id, Summary.created_at >= start_of_week)
        top_channels = query.top_values(db, Summary, user_id, Summary.channel_name, TOP_CHANNELS_LIMIT)
        recent = query.most_recent(db, Summary, user_id, Summary.created_at, RECENT_LIMIT)

        return {
            "totalSummaries": total,
            "completedSummaries": completed,
            "summariesThisMonth": this_month,
            "summariesThisWeek": this_week,
            "topChannels": [{"channelName": name, "count": count} for name, count in top_channels],
            "recentSummaries": [
                {
                    "id": str(summary.id),
                    "title": summary.title,
                    "videoId": summary.video_id,
                    "tags": decode_json(summary.tags, "tags") or [],
                    "createdAt": iso(summary.created_at),
                }
                for summary in recent
            ],
        }

    def cleanup_old_summaries(self, db: Session, keep: Optional[int] = None) -> int:
        """Trim every user's history down to the newest ``keep`` summaries."""
        keep = keep if keep is not None else settings.max_summary_history

        over_limit = (
            db.query(Summary.user_id)
            .group_by(Summary.user_id)
            .having(func.count(Summary.id) > keep)
            .all()
        )

        removed = 0
        for (user_id,) in over_limit:
            stale_ids = [
                row[0]
                for row in db.query(Summary.id)
                .filter(Summary.user_id == user_id)
                .order_by(Summary.created_at.desc(), Summary.id.desc())
                .offset(keep)
                .all()
            ]
            removed += query.bulk_delete_owned(db, Summary, user_id, stale_ids)

        if removed:
            logger.info(f"Cleaned up {removed} old summaries across {len(over_limit)} users")
        return removed
