"""Tests for review and share bonuses."""

import uuid

import pytest
from sqlalchemy import func, select

from coinledger.accounts.service import find_by_id, lookup_by_id, register_device
from coinledger.db.models import ShareEvent
from coinledger.errors import AccountNotFound, AlreadyReviewed, DuplicateShare, ValidationError
from coinledger.rewards.service import REVIEW_BONUS, SHARE_BONUS, award_review, award_share


class TestReviewBonus:
    async def test_first_review_credits_bonus(self, db, cache):
        account, _ = await register_device(db, cache, "dev-r")

        account = await award_review(db, cache, account.id)

        assert account.coins == REVIEW_BONUS
        assert account.has_reviewed is True

    async def test_second_review_is_rejected_without_credit(self, db, cache):
        account, _ = await register_device(db, cache, "dev-r")
        account_id = account.id
        await award_review(db, cache, account_id)

        with pytest.raises(AlreadyReviewed):
            await award_review(db, cache, account_id)

        account = await find_by_id(db, account_id)
        assert account.coins == REVIEW_BONUS

    async def test_unknown_account(self, db, cache):
        with pytest.raises(AccountNotFound):
            await award_review(db, cache, 424242)

    async def test_review_refreshes_cached_projection(self, db, cache):
        account, _ = await register_device(db, cache, "dev-r")
        await lookup_by_id(db, cache, account.id)

        await award_review(db, cache, account.id)

        view = await lookup_by_id(db, cache, account.id)
        assert view.coins == REVIEW_BONUS
        assert view.has_reviewed is True


class TestShareBonus:
    async def test_share_credits_bonus_and_counts(self, db, cache):
        account, _ = await register_device(db, cache, "dev-s")

        account = await award_share(db, cache, account.id, str(uuid.uuid4()))

        assert account.coins == SHARE_BONUS
        assert account.share_count == 1

    async def test_distinct_shares_accumulate(self, db, cache):
        account, _ = await register_device(db, cache, "dev-s")

        for _ in range(3):
            account = await award_share(db, cache, account.id, str(uuid.uuid4()))

        assert account.coins == 3 * SHARE_BONUS
        assert account.share_count == 3

    async def test_retried_share_credits_once(self, db, cache):
        account, _ = await register_device(db, cache, "dev-s")
        account_id = account.id
        share_id = str(uuid.uuid4())
        await award_share(db, cache, account_id, share_id)

        with pytest.raises(DuplicateShare):
            await award_share(db, cache, account_id, share_id.upper())

        account = await find_by_id(db, account_id)
        assert account.coins == SHARE_BONUS
        assert account.share_count == 1
        events = await db.execute(select(func.count()).select_from(ShareEvent))
        assert events.scalar_one() == 1

    async def test_same_share_id_on_another_account_is_allowed(self, db, cache):
        first, _ = await register_device(db, cache, "dev-s1")
        second, _ = await register_device(db, cache, "dev-s2")
        share_id = str(uuid.uuid4())

        await award_share(db, cache, first.id, share_id)
        second = await award_share(db, cache, second.id, share_id)

        assert second.coins == SHARE_BONUS

    async def test_invalid_share_id(self, db, cache):
        account, _ = await register_device(db, cache, "dev-s")

        with pytest.raises(ValidationError):
            await award_share(db, cache, account.id, "not-a-uuid")

    async def test_unknown_account(self, db, cache):
        with pytest.raises(AccountNotFound):
            await award_share(db, cache, 424242, str(uuid.uuid4()))


class TestLedgerScenario:
    async def test_review_and_shares_add_up(self, db, cache):
        referrer, _ = await register_device(db, cache, "dev-a")
        await register_device(db, cache, "dev-b", referrer.referral_code)

        await award_review(db, cache, referrer.id)
        await award_share(db, cache, referrer.id, str(uuid.uuid4()))

        view = await lookup_by_id(db, cache, referrer.id)
        assert view.coins == 10 + REVIEW_BONUS + SHARE_BONUS
