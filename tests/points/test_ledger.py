"""Tests for the points ledger."""

import pytest

from noizlabs.points.ledger import add_points, get_balance, get_history, get_leaderboard, get_ledger_total

WALLET = "LedgerWallet1111111111111111111111111111111"


async def _credit(db, amount, key, wallet=WALLET):
    credited = await add_points(
        db, wallet, amount, action="test", reason="Test award", actor="tester", idempotency_key=key
    )
    await db.commit()
    return credited


class TestAddPoints:
    async def test_first_award_creates_balance(self, db_session):
        assert await _credit(db_session, 5, "k1") is True
        assert await get_balance(db_session, WALLET) == 5

    async def test_repeated_key_credits_once(self, db_session):
        assert await _credit(db_session, 5, "same-key") is True
        assert await _credit(db_session, 5, "same-key") is False
        assert await _credit(db_session, 50, "same-key") is False
        assert await get_balance(db_session, WALLET) == 5

    async def test_balance_equals_ledger_sum(self, db_session):
        for i, amount in enumerate([5, 1, 50, 10, 100, 1]):
            await _credit(db_session, amount, f"key-{i}")
        await _credit(db_session, 1, "key-0")
        assert await get_balance(db_session, WALLET) == 167
        assert await get_ledger_total(db_session, WALLET) == 167

    @pytest.mark.parametrize("amount", [0, -10])
    async def test_non_positive_amount_rejected(self, db_session, amount):
        with pytest.raises(ValueError, match="positive"):
            await add_points(
                db_session, WALLET, amount, action="test", reason="x", actor="tester", idempotency_key="neg"
            )

    async def test_unknown_wallet_has_zero_balance(self, db_session):
        assert await get_balance(db_session, "nobody") == 0
        assert await get_ledger_total(db_session, "nobody") == 0


class TestLedgerQueries:
    async def test_history_paginates(self, db_session):
        for i in range(5):
            await _credit(db_session, i + 1, f"h-{i}")
        rows, total = await get_history(db_session, WALLET, limit=2, offset=0)
        assert total == 5
        assert len(rows) == 2
        rows, _ = await get_history(db_session, WALLET, limit=10, offset=4)
        assert len(rows) == 1

    async def test_leaderboard_orders_by_points(self, db_session):
        await _credit(db_session, 10, "a", wallet="WalletA")
        await _credit(db_session, 30, "b", wallet="WalletB")
        await _credit(db_session, 20, "c", wallet="WalletC")
        board = await get_leaderboard(db_session, limit=2)
        assert [(wallet, points) for wallet, _, points in board] == [("WalletB", 30), ("WalletC", 20)]
