"""
Record formatting: persisted rows -> wire dicts.

JSON side columns (engagement, metadata, key points, tags, transcript) are
stored as text. ``encode_json`` is applied on every write and
``decode_json`` on every read; a column that fails to decode is treated as
corrupt data and raised, never replaced with a default.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from app.core.exceptions import RecordIntegrityError

logger = logging.getLogger(__name__)


def encode_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def decode_json(raw: Optional[str], column: str = "json") -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.error(f"Corrupt JSON in column {column}: {e}")
        raise RecordIntegrityError(f"Stored {column} is not valid JSON") from e


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def format_linkedin_post(post) -> Dict[str, Any]:
    return {
        "id": str(post.id),
        "title": post.title,
        "content": post.content,
        "author": post.author,
        "postUrl": post.post_url,
        "linkedinPostId": post.linkedin_post_id,
        "platform": post.platform,
        "engagement": decode_json(post.engagement, "engagement"),
        "metadata": decode_json(post.meta, "metadata"),
        "savedAt": iso(post.saved_at),
        "createdAt": iso(post.created_at),
        "updatedAt": iso(post.updated_at),
    }


def format_website_summary(summary, is_new: Optional[bool] = None) -> Dict[str, Any]:
    data = {
        "id": str(summary.id),
        "title": summary.title,
        "content": summary.content,
        "summary": summary.summary,
        "url": summary.url,
        "websiteName": summary.website_name,
        "faviconUrl": summary.favicon_url,
        "createdAt": iso(summary.created_at),
        "updatedAt": iso(summary.updated_at),
    }
    if is_new is not None:
        data["isNew"] = is_new
    return data


def format_summary(summary) -> Dict[str, Any]:
    return {
        "id": str(summary.id),
        "title": summary.title,
        "keyPoints": decode_json(summary.key_points, "keyPoints") or [],
        "fullSummary": summary.full_summary,
        "tags": decode_json(summary.tags, "tags") or [],
        "status": summary.status.value if summary.status is not None else None,
        "videoMetadata": {
            "videoId": summary.video_id,
            "title": summary.video_title,
            "channelName": summary.channel_name,
            "duration": summary.video_duration,
            "url": summary.video_url,
            "thumbnailUrl": summary.thumbnail_url,
        },
        "transcript": decode_json(summary.transcript, "transcript"),
        "transcriptText": summary.transcript_text,
        "createdAt": iso(summary.created_at),
        "updatedAt": iso(summary.updated_at),
        "saved": True,
    }


def format_user(user) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "avatar": user.avatar,
        "plan": user.plan.value if user.plan is not None else None,
        "credits": user.credits,
        "emailVerified": user.email_verified,
        "createdAt": iso(user.created_at),
        "lastLoginAt": iso(user.last_login_at),
    }
