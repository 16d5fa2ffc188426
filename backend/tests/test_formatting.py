import pytest

from app.core.exceptions import RecordIntegrityError
from app.models import LinkedinPost
from app.services.formatting import decode_json, encode_json, format_linkedin_post


def test_engagement_survives_storage(db, alice):
    engagement = {"likes": 12, "comments": 3, "shares": 0, "reactions": {"celebrate": 2}}
    post = LinkedinPost(
        user_id=alice.id,
        content="Hello",
        author="Alice",
        post_url="https://www.linkedin.com/posts/engagement",
        engagement=encode_json(engagement),
        meta=encode_json({"source": "extension", "tags": ["ai", "ünïcode"]}),
    )
    db.add(post)
    db.commit()
    db.expire_all()

    stored = db.get(LinkedinPost, post.id)
    data = format_linkedin_post(stored)
    assert data["engagement"] == engagement
    assert data["metadata"] == {"source": "extension", "tags": ["ai", "ünïcode"]}


def test_absent_json_columns_format_as_none(db, alice):
    post = LinkedinPost(
        user_id=alice.id,
        content="Hello",
        author="Alice",
        post_url="https://www.linkedin.com/posts/plain",
    )
    db.add(post)
    db.commit()

    data = format_linkedin_post(post)
    assert data["engagement"] is None
    assert data["metadata"] is None
    assert data["postUrl"] == "https://www.linkedin.com/posts/plain"
    assert data["platform"] == "linkedin"


def test_encode_none_stays_none():
    assert encode_json(None) is None
    assert decode_json(None) is None


def test_empty_text_is_corrupt():
    with pytest.raises(RecordIntegrityError):
        decode_json("", "tags")


def test_corrupt_json_raises_instead_of_defaulting():
    with pytest.raises(RecordIntegrityError) as exc_info:
        decode_json("{not json", "engagement")
    assert exc_info.value.status_code == 500
    assert "engagement" in exc_info.value.message


def test_corrupt_row_fails_formatting():
    post = LinkedinPost(content="c", author="a", post_url="u", engagement="[1, 2")
    with pytest.raises(RecordIntegrityError):
        format_linkedin_post(post)
