import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.core.llm import LLMClient
from app.models.website_summary import WebsiteSummary
from app.services import query
from app.services.formatting import format_website_summary, iso

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 100
MAX_CONTENT_LENGTH = 100000
SUMMARY_MAX_TOKENS = 500
SUMMARY_TEMPERATURE = 0.3
TOP_WEBSITES_LIMIT = 5
RECENT_LIMIT = 5

SYSTEM_PROMPT = (
    "You are an expert at summarizing articles. Create clear, engaging summaries "
    "that capture the essence and key insights of the content."
)

ARTICLE_PROMPT = """Please provide a comprehensive yet concise summary of the following article. Focus on:
- Key points and main arguments
- Important insights or conclusions
- Practical takeaways for the reader
- Maintain the author's tone and perspective

Keep the summary informative but readable, around 2-3 paragraphs.

Article content:
{content}"""

# Hostname -> display name; subdomains of these match too (user.substack.com)
KNOWN_WEBSITES = {
    "medium.com": "Medium",
    "dev.to": "Dev.to",
    "substack.com": "Substack",
    "hashnode.com": "Hashnode",
    "hackernoon.com": "HackerNoon",
    "freecodecamp.org": "freeCodeCamp",
    "towardsdatascience.com": "Towards Data Science",
    "css-tricks.com": "CSS-Tricks",
    "smashingmagazine.com": "Smashing Magazine",
    "a16z.com": "Andreessen Horowitz",
    "techcrunch.com": "TechCrunch",
    "wired.com": "Wired",
    "theverge.com": "The Verge",
    "github.com": "GitHub",
    "stackoverflow.com": "Stack Overflow",
    "reddit.com": "Reddit",
}


def is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def extract_website_name(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    if not host:
        logger.warning(f"Failed to extract website name from {url}")
        return "Unknown"
    if host.startswith("www."):
        host = host[4:]

    if host in KNOWN_WEBSITES:
        return KNOWN_WEBSITES[host]

    for domain, name in KNOWN_WEBSITES.items():
        if host.endswith("." + domain):
            return name

    label = host.split(".")[0]
    return label[:1].upper() + label[1:]


def favicon_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}/favicon.ico"
    return f"https://www.google.com/s2/favicons?domain={url}"


class WebsiteSummaryCreate(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=MIN_CONTENT_LENGTH, max_length=MAX_CONTENT_LENGTH)
    url: str

    @field_validator("url")
    @classmethod
    def _valid_url(cls, v: str) -> str:
        v = v.strip()
        if not is_http_url(v):
            raise ValueError("Invalid URL format")
        return v


class WebsiteSummaryUpdate(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None

    @model_validator(mode="after")
    def _reject_null(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class WebsiteSummaryListParams(query.ListParams):
    website_name: Optional[str] = None


def build_website_filters(params: WebsiteSummaryListParams) -> List[Any]:
    clauses = []
    if params.website_name:
        clauses.append(WebsiteSummary.website_name == params.website_name)
    return clauses


def website_list_spec(params: WebsiteSummaryListParams) -> query.ListSpec:
    return query.ListSpec(
        model=WebsiteSummary,
        search_columns=[WebsiteSummary.title, WebsiteSummary.content, WebsiteSummary.summary],
        date_column=WebsiteSummary.created_at,
        sort_columns={
            "createdAt": WebsiteSummary.created_at,
            "title": WebsiteSummary.title,
            "websiteName": WebsiteSummary.website_name,
        },
        default_sort="createdAt",
        extra_filters=build_website_filters(params),
    )


class WebsiteSummaryService:
    """Article summaries, one per (user, url). The completion call only happens for new URLs."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def generate_summary(self, content: str) -> str:
        summary = await self.llm.complete(
            ARTICLE_PROMPT.format(content=content),
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
            system=SYSTEM_PROMPT,
        )
        return summary.strip()

    async def create_or_get(self, db: Session, user_id: UUID, data: WebsiteSummaryCreate) -> Tuple[Dict[str, Any], bool]:
        existing = query.find_by_key(db, WebsiteSummary, user_id, WebsiteSummary.url, data.url)
        if existing is not None:
            logger.info(f"Website summary already exists: user={user_id} url={data.url} id={existing.id}")
            return format_website_summary(existing, is_new=False), False

        summary_text = await self.generate_summary(data.content)

        record = WebsiteSummary(
            user_id=user_id,
            title=data.title,
            content=data.content,
            summary=summary_text,
            url=data.url,
            website_name=extract_website_name(data.url),
            favicon_url=favicon_url(data.url),
        )
        record, is_new = query.insert_or_return_existing(db, record, WebsiteSummary.url, data.url)

        if is_new:
            logger.info(
                f"Website summary created: user={user_id} id={record.id} site={record.website_name} "
                f"content_len={len(data.content)} summary_len={len(summary_text)}"
            )
        return format_website_summary(record, is_new=is_new), is_new

    def get_by_url(self, db: Session, user_id: UUID, url: str) -> Optional[Dict[str, Any]]:
        record = query.find_by_key(db, WebsiteSummary, user_id, WebsiteSummary.url, url)
        if record is None:
            return None
        return format_website_summary(record, is_new=False)

    def list_summaries(self, db: Session, user_id: UUID, params: WebsiteSummaryListParams) -> Dict[str, Any]:
        page = query.paginate(db, user_id, website_list_spec(params), params)
        return {
            "data": [format_website_summary(record) for record in page.items],
            "pagination": page.pagination(),
        }

    def get_summary(self, db: Session, user_id: UUID, summary_id: UUID) -> Dict[str, Any]:
        record = query.get_owned(db, WebsiteSummary, user_id, summary_id)
        if not record:
            raise NotFoundError("Website summary not found")
        return format_website_summary(record)

    def update_summary(self, db: Session, user_id: UUID, summary_id: UUID, updates: WebsiteSummaryUpdate) -> Dict[str, Any]:
        record = query.get_owned(db, WebsiteSummary, user_id, summary_id)
        if not record:
            raise NotFoundError("Website summary not found")

        written = query.apply_partial_update(record, updates.model_dump(exclude_unset=True))
        db.commit()
        db.refresh(record)

        logger.info(f"Website summary updated: user={user_id} id={summary_id} fields={written}")
        return format_website_summary(record)

    def delete_summary(self, db: Session, user_id: UUID, summary_id: UUID) -> None:
        record = query.get_owned(db, WebsiteSummary, user_id, summary_id)
        if not record:
            raise NotFoundError("Website summary not found")

        db.delete(record)
        db.commit()
        logger.info(f"Website summary deleted: user={user_id} id={summary_id}")

    def bulk_delete(self, db: Session, user_id: UUID, summary_ids: List[UUID]) -> int:
        deleted = query.bulk_delete_owned(db, WebsiteSummary, user_id, summary_ids)
        logger.info(f"Website summaries bulk deleted: user={user_id} deleted={deleted}")
        return deleted

    def get_stats(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        total = query.count_owned(db, WebsiteSummary, user_id)
        this_month = query.count_owned(db, WebsiteSummary, user_id, WebsiteSummary.created_at >= start_of_month)
        top_websites = query.top_values(db, WebsiteSummary, user_id, WebsiteSummary.website_name, TOP_WEBSITES_LIMIT)
        recent = query.most_recent(db, WebsiteSummary, user_id, WebsiteSummary.created_at, RECENT_LIMIT)

        return {
            "totalSummaries": total,
            "summariesThisMonth": this_month,
            "topWebsites": [{"websiteName": name, "count": count} for name, count in top_websites],
            "recentSummaries": [
                {
                    "id": str(record.id),
                    "title": record.title,
                    "websiteName": record.website_name,
                    "createdAt": iso(record.created_at),
                }
                for record in recent
            ],
        }
