import uuid

import pytest
from pydantic import ValidationError

from app.core.exceptions import NotFoundError, UpstreamError
from app.models import WebsiteSummary
from app.services import query
from app.services.website_service import (
    WebsiteSummaryCreate,
    WebsiteSummaryListParams,
    WebsiteSummaryService,
    WebsiteSummaryUpdate,
    extract_website_name,
    favicon_url,
)
from conftest import FakeLLM

ARTICLE = "This article explains how background jobs are scheduled and retried. " * 5


@pytest.fixture
def llm():
    return FakeLLM(reply="  The article covers job scheduling.  ")


@pytest.fixture
def service(llm):
    return WebsiteSummaryService(llm)


def _create(url="https://medium.com/@writer/scheduling-101", title="Scheduling 101"):
    return WebsiteSummaryCreate(title=title, content=ARTICLE, url=url)


@pytest.mark.parametrize("url,expected", [
    ("https://medium.com/@writer/post", "Medium"),
    ("https://www.medium.com/post", "Medium"),
    ("https://someone.substack.com/p/post", "Substack"),
    ("https://dev.to/author/post", "Dev.to"),
    ("https://blog.example.com/post", "Blog"),
    ("https://example.org/a", "Example"),
])
def test_extract_website_name(url, expected):
    assert extract_website_name(url) == expected


def test_favicon_url():
    assert favicon_url("https://www.example.com/some/path?q=1") == "https://www.example.com/favicon.ico"


class TestCreateOrGet:

    @pytest.mark.asyncio
    async def test_llm_called_once_per_url(self, db, service, llm, alice):
        first, is_new = await service.create_or_get(db, alice.id, _create())
        assert is_new is True
        assert first["isNew"] is True
        assert first["summary"] == "The article covers job scheduling."
        assert first["websiteName"] == "Medium"
        assert first["faviconUrl"] == "https://medium.com/favicon.ico"

        second, is_new = await service.create_or_get(db, alice.id, _create(title="Other title"))
        assert is_new is False
        assert second["isNew"] is False
        assert second["id"] == first["id"]
        assert second["title"] == "Scheduling 101"

        assert len(llm.calls) == 1
        assert llm.calls[0]["max_tokens"] == 500
        assert llm.calls[0]["temperature"] == 0.3
        assert ARTICLE in llm.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_upstream_failure_stores_nothing(self, db, alice):
        service = WebsiteSummaryService(FakeLLM(error=UpstreamError("down")))
        with pytest.raises(UpstreamError):
            await service.create_or_get(db, alice.id, _create())
        assert db.query(WebsiteSummary).count() == 0

    @pytest.mark.asyncio
    async def test_concurrent_winner_is_returned(self, db, service, alice):
        winner, _ = await service.create_or_get(db, alice.id, _create())

        loser = WebsiteSummary(
            user_id=alice.id,
            title="late",
            content=ARTICLE,
            summary="late summary",
            url="https://medium.com/@writer/scheduling-101",
            website_name="Medium",
        )
        record, is_new = query.insert_or_return_existing(db, loser, WebsiteSummary.url, loser.url)
        assert is_new is False
        assert str(record.id) == winner["id"]

    def test_content_length_bounds(self):
        with pytest.raises(ValidationError):
            WebsiteSummaryCreate(title="t", content="too short", url="https://example.com")
        with pytest.raises(ValidationError):
            WebsiteSummaryCreate(title="t", content="x" * 100001, url="https://example.com")
        assert WebsiteSummaryCreate(title="t", content="x" * 100, url="https://example.com").url == "https://example.com"

    def test_invalid_url_rejected(self):
        with pytest.raises(ValidationError):
            WebsiteSummaryCreate(title="t", content=ARTICLE, url="not a url")
        with pytest.raises(ValidationError):
            WebsiteSummaryCreate(title="t", content=ARTICLE, url="ftp://example.com/file")


class TestQueries:

    @pytest.mark.asyncio
    async def test_get_by_url_is_owner_scoped(self, db, service, alice, bob):
        await service.create_or_get(db, alice.id, _create())
        assert service.get_by_url(db, alice.id, "https://medium.com/@writer/scheduling-101") is not None
        assert service.get_by_url(db, bob.id, "https://medium.com/@writer/scheduling-101") is None

    @pytest.mark.asyncio
    async def test_list_filters_by_website_name(self, db, service, alice):
        await service.create_or_get(db, alice.id, _create())
        await service.create_or_get(db, alice.id, _create(url="https://dev.to/someone/post", title="Dev post"))

        result = service.list_summaries(db, alice.id, WebsiteSummaryListParams(website_name="Dev.to"))
        assert result["pagination"]["total"] == 1
        assert result["data"][0]["title"] == "Dev post"
        assert "isNew" not in result["data"][0]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db, service, alice, bob):
        created, _ = await service.create_or_get(db, alice.id, _create())
        summary_id = uuid.UUID(created["id"])

        updated = service.update_summary(db, alice.id, summary_id, WebsiteSummaryUpdate(summary="Edited"))
        assert updated["summary"] == "Edited"
        assert updated["title"] == "Scheduling 101"

        with pytest.raises(NotFoundError):
            service.delete_summary(db, bob.id, summary_id)
        service.delete_summary(db, alice.id, summary_id)
        with pytest.raises(NotFoundError):
            service.get_summary(db, alice.id, summary_id)

    def test_null_update_rejected(self):
        with pytest.raises(ValidationError):
            WebsiteSummaryUpdate(title=None)

    @pytest.mark.asyncio
    async def test_stats(self, db, service, alice):
        await service.create_or_get(db, alice.id, _create())
        await service.create_or_get(db, alice.id, _create(url="https://medium.com/@writer/other"))
        await service.create_or_get(db, alice.id, _create(url="https://github.com/org/repo"))

        stats = service.get_stats(db, alice.id)
        assert stats["totalSummaries"] == 3
        assert stats["summariesThisMonth"] == 3
        assert stats["topWebsites"][0] == {"websiteName": "Medium", "count": 2}
        assert len(stats["recentSummaries"]) == 3
