import uuid

import pytest
from pydantic import ValidationError

from app.core.exceptions import NotFoundError
from app.models import LinkedinPost, Summary, SummaryStatus, User, UserPlan, WebsiteSummary
from app.services.user_service import CreditTopUp, PlanUpgrade, UserService


@pytest.fixture
def service():
    return UserService()


def _fill_account(db, user, count=2):
    for i in range(count):
        db.add(Summary(
            user_id=user.id,
            title=f"s{i}",
            full_summary="text",
            status=SummaryStatus.COMPLETED,
            video_id=f"v{i}",
            video_title="t",
            channel_name="c",
            video_url="https://www.youtube.com/watch?v=x",
        ))
        db.add(LinkedinPost(
            user_id=user.id,
            content="c",
            author="a",
            post_url=f"https://www.linkedin.com/posts/{user.email}-{i}",
        ))
        db.add(WebsiteSummary(
            user_id=user.id,
            title="t",
            content="c",
            summary="s",
            url=f"https://example.com/{user.email}/{i}",
            website_name="Example",
        ))
    db.commit()


class TestDeleteAccount:

    def test_owned_records_are_removed(self, db, service, alice, bob):
        _fill_account(db, alice, count=2)
        _fill_account(db, bob, count=1)
        alice_id = alice.id

        removed = service.delete_account(db, alice_id)
        assert removed == {"summaries": 2, "linkedinPosts": 2, "websiteSummaries": 2}

        db.expire_all()
        assert db.get(User, alice_id) is None
        for model in (Summary, LinkedinPost, WebsiteSummary):
            assert db.query(model).filter(model.user_id == alice_id).count() == 0
            assert db.query(model).filter(model.user_id == bob.id).count() == 1

    def test_unknown_user(self, db, service):
        with pytest.raises(NotFoundError):
            service.delete_account(db, uuid.uuid4())


class TestCreditsAndPlan:

    def test_add_credits(self, db, service, alice):
        profile = service.add_credits(db, alice.id, 25)
        assert profile["credits"] == 35

        db.expire_all()
        assert db.get(User, alice.id).credits == 35

    def test_top_up_bounds(self):
        with pytest.raises(ValidationError):
            CreditTopUp(credits=0)
        with pytest.raises(ValidationError):
            CreditTopUp(credits=-5)
        with pytest.raises(ValidationError):
            CreditTopUp(credits=1001)

    def test_upgrade_plan(self, db, service, alice):
        profile = service.upgrade_plan(db, alice.id, PlanUpgrade().plan)
        assert profile["plan"] == "PREMIUM"
        assert db.get(User, alice.id).plan is UserPlan.PREMIUM

    def test_unknown_plan_rejected(self):
        with pytest.raises(ValidationError):
            PlanUpgrade(plan="ENTERPRISE")

    def test_verify_email_is_idempotent(self, db, service, alice):
        assert service.verify_email(db, alice.id)["emailVerified"] is True
        assert service.verify_email(db, alice.id)["emailVerified"] is True
