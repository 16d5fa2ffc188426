"""
LinkedIn post service: idempotent save, ownership isolation, partial updates
and stats.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.core.exceptions import NotFoundError
from app.models import LinkedinPost
from app.services.linkedin_service import (
    LinkedinPostCreate,
    LinkedinPostListParams,
    LinkedinPostService,
    LinkedinPostUpdate,
)


@pytest.fixture
def service():
    return LinkedinPostService()


def _create(url="https://www.linkedin.com/posts/1", **overrides):
    payload = {
        "title": "First title",
        "content": "Some insightful post",
        "author": "Jane Doe",
        "postUrl": url,
        "engagement": {"likes": 10, "comments": 2, "shares": 1},
    }
    payload.update(overrides)
    return LinkedinPostCreate(**payload)


class TestSavePost:

    def test_save_is_idempotent_per_user(self, db, service, alice):
        first, is_new = service.save_post(db, alice.id, _create())
        assert is_new is True

        second, is_new = service.save_post(db, alice.id, _create(title="Changed", author="Someone"))
        assert is_new is False
        assert second["id"] == first["id"]
        # The stored record is returned unchanged
        assert second["title"] == "First title"
        assert second["author"] == "Jane Doe"
        assert db.query(LinkedinPost).filter(LinkedinPost.user_id == alice.id).count() == 1

    def test_same_url_for_two_users_creates_two_posts(self, db, service, alice, bob):
        a, a_new = service.save_post(db, alice.id, _create())
        b, b_new = service.save_post(db, bob.id, _create())
        assert a_new and b_new
        assert a["id"] != b["id"]

        with pytest.raises(NotFoundError):
            service.get_post(db, bob.id, uuid.UUID(a["id"]))

    def test_engagement_round_trip(self, db, service, alice):
        saved, _ = service.save_post(db, alice.id, _create())
        fetched = service.get_post(db, alice.id, uuid.UUID(saved["id"]))
        assert fetched["engagement"] == {"likes": 10, "comments": 2, "shares": 1}
        assert fetched["platform"] == "linkedin"

    def test_missing_required_fields_rejected(self):
        with pytest.raises(ValidationError):
            LinkedinPostCreate(content="x", postUrl="https://www.linkedin.com/posts/2")
        with pytest.raises(ValidationError):
            LinkedinPostCreate(content="", author="a", postUrl="https://www.linkedin.com/posts/2")


class TestUpdatePost:

    def test_only_present_fields_change(self, db, service, alice):
        saved, _ = service.save_post(db, alice.id, _create())
        post_id = uuid.UUID(saved["id"])

        updated = service.update_post(db, alice.id, post_id, LinkedinPostUpdate(title="New title"))
        assert updated["title"] == "New title"
        assert updated["content"] == "Some insightful post"
        assert updated["author"] == "Jane Doe"
        assert updated["engagement"] == {"likes": 10, "comments": 2, "shares": 1}

    def test_empty_string_clears_field(self, db, service, alice):
        saved, _ = service.save_post(db, alice.id, _create())
        updated = service.update_post(db, alice.id, uuid.UUID(saved["id"]), LinkedinPostUpdate(title=""))
        assert updated["title"] == ""

    def test_null_title_clears_but_null_content_rejected(self, db, service, alice):
        saved, _ = service.save_post(db, alice.id, _create())
        updated = service.update_post(db, alice.id, uuid.UUID(saved["id"]), LinkedinPostUpdate(title=None))
        assert updated["title"] is None

        with pytest.raises(ValidationError):
            LinkedinPostUpdate(content=None)

    def test_update_someone_elses_post(self, db, service, alice, bob):
        saved, _ = service.save_post(db, alice.id, _create())
        with pytest.raises(NotFoundError):
            service.update_post(db, bob.id, uuid.UUID(saved["id"]), LinkedinPostUpdate(title="hijack"))

        assert service.get_post(db, alice.id, uuid.UUID(saved["id"]))["title"] == "First title"


class TestDeletePost:

    def test_delete_then_get(self, db, service, alice):
        saved, _ = service.save_post(db, alice.id, _create())
        post_id = uuid.UUID(saved["id"])
        service.delete_post(db, alice.id, post_id)
        with pytest.raises(NotFoundError):
            service.get_post(db, alice.id, post_id)
        with pytest.raises(NotFoundError):
            service.delete_post(db, alice.id, post_id)

    def test_bulk_delete_is_owner_scoped(self, db, service, alice, bob):
        alice_ids = [
            uuid.UUID(service.save_post(db, alice.id, _create(url=f"https://www.linkedin.com/posts/a{i}"))[0]["id"])
            for i in range(3)
        ]
        bob_id = uuid.UUID(service.save_post(db, bob.id, _create(url="https://www.linkedin.com/posts/b"))[0]["id"])

        deleted = service.bulk_delete_posts(db, alice.id, alice_ids[:2] + [bob_id, uuid.uuid4()])
        assert deleted == 2
        assert service.get_post(db, bob.id, bob_id)["id"] == str(bob_id)
        assert service.get_post(db, alice.id, alice_ids[2])["id"] == str(alice_ids[2])


class TestListPosts:

    def test_filters_and_pagination_envelope(self, db, service, alice):
        for i, author in enumerate(["Jane Doe", "John Roe", "Jane Doe"]):
            service.save_post(
                db, alice.id,
                _create(url=f"https://www.linkedin.com/posts/{i}", author=author, content=f"Post about topic {i}"),
            )

        result = service.list_posts(db, alice.id, LinkedinPostListParams(author="jane"))
        assert result["pagination"]["total"] == 2
        assert {post["author"] for post in result["data"]} == {"Jane Doe"}

        result = service.list_posts(db, alice.id, LinkedinPostListParams(search="topic 1"))
        assert result["pagination"]["total"] == 1
        assert result["data"][0]["author"] == "John Roe"

    def test_empty_list(self, db, service, alice):
        result = service.list_posts(db, alice.id, LinkedinPostListParams(page=3))
        assert result["data"] == []
        assert result["pagination"]["total"] == 0
        assert result["pagination"]["totalPages"] == 0
        assert result["pagination"]["hasNext"] is False
        assert result["pagination"]["hasPrev"] is False


class TestStats:

    def test_stats_counts_and_top_authors(self, db, service, alice, bob):
        now = datetime.now(timezone.utc)
        authors = ["Jane"] * 3 + ["John"] * 2 + ["Ann"]
        for i, author in enumerate(authors):
            service.save_post(db, alice.id, _create(url=f"https://www.linkedin.com/posts/s{i}", author=author, title=None))
        service.save_post(db, bob.id, _create(url="https://www.linkedin.com/posts/bob", author="Jane"))

        # One old post, outside this week and this month
        old = LinkedinPost(
            user_id=alice.id,
            content="old",
            author="Ann",
            post_url="https://www.linkedin.com/posts/old",
            saved_at=now - timedelta(days=60),
        )
        db.add(old)
        db.commit()

        stats = service.get_stats(db, alice.id)
        assert stats["totalPosts"] == 7
        assert stats["postsThisWeek"] == 6
        assert stats["postsThisMonth"] == 6
        assert stats["topAuthors"][0] == {"author": "Jane", "count": 3}
        assert {"author": "Ann", "count": 2} in stats["topAuthors"]
        assert len(stats["recentActivity"]) == 5
        assert stats["recentActivity"][0]["title"].startswith("Post by ")
