"""Concurrent writers, each in its own session.

On PostgreSQL the transactions genuinely overlap. On SQLite they interleave at
every await and queue on the single write lock.
"""

import asyncio
import uuid

from coinledger.accounts.service import REFERRAL_BONUS, find_by_id, register_device
from coinledger.errors import AlreadyReviewed, DuplicateShare
from coinledger.rewards.service import REVIEW_BONUS, SHARE_BONUS, award_review, award_share


async def _in_own_session(session_factory, func, *args):
    async with session_factory() as session:
        return await func(session, *args)


class TestConcurrentRewards:
    async def test_parallel_reviews_credit_once(self, session_factory, cache):
        async with session_factory() as db:
            account, _ = await register_device(db, cache, "dev-c")
            account_id = account.id

        results = await asyncio.gather(
            *(_in_own_session(session_factory, award_review, cache, account_id) for _ in range(10)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if not isinstance(r, BaseException)) == 1
        assert all(isinstance(r, AlreadyReviewed) for r in results if isinstance(r, BaseException))
        async with session_factory() as db:
            assert (await find_by_id(db, account_id)).coins == REVIEW_BONUS

    async def test_parallel_duplicate_shares_credit_once(self, session_factory, cache):
        async with session_factory() as db:
            account, _ = await register_device(db, cache, "dev-c")
            account_id = account.id
        share_id = str(uuid.uuid4())

        results = await asyncio.gather(
            *(_in_own_session(session_factory, award_share, cache, account_id, share_id) for _ in range(10)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if not isinstance(r, BaseException)) == 1
        assert all(isinstance(r, DuplicateShare) for r in results if isinstance(r, BaseException))
        async with session_factory() as db:
            account = await find_by_id(db, account_id)
        assert account.coins == SHARE_BONUS
        assert account.share_count == 1

    async def test_parallel_distinct_shares_lose_no_update(self, session_factory, cache):
        async with session_factory() as db:
            account, _ = await register_device(db, cache, "dev-c")
            account_id = account.id

        await asyncio.gather(
            *(
                _in_own_session(session_factory, award_share, cache, account_id, str(uuid.uuid4()))
                for _ in range(20)
            )
        )

        async with session_factory() as db:
            account = await find_by_id(db, account_id)
        assert account.coins == 20 * SHARE_BONUS
        assert account.share_count == 20


class TestConcurrentRegistration:
    async def test_parallel_registration_creates_one_account(self, session_factory, cache):
        async with session_factory() as db:
            referrer, _ = await register_device(db, cache, "dev-ref")
            referrer_id = referrer.id
            code = referrer.referral_code

        results = await asyncio.gather(
            *(_in_own_session(session_factory, register_device, cache, "dev-new", code) for _ in range(5)),
        )

        assert len({account.id for account, _ in results}) == 1
        assert sum(1 for _, created in results if created) == 1
        async with session_factory() as db:
            assert (await find_by_id(db, referrer_id)).coins == REFERRAL_BONUS

    async def test_parallel_registrations_get_distinct_codes(self, session_factory, cache):
        devices = [f"dev-{i}" for i in range(12)]

        results = await asyncio.gather(
            *(_in_own_session(session_factory, register_device, cache, device) for device in devices),
        )

        codes = {account.referral_code for account, _ in results}
        assert len(codes) == len(devices)
        assert all(created for _, created in results)
