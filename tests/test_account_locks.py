"""
Tests for the per-account lock registry.
"""
import gc

import pytest

from ledgerflow.services.account_locks import AccountLockRegistry


class TestAccountLockRegistry:
    """Tests for AccountLockRegistry."""

    def test_same_account_same_lock(self):
        registry = AccountLockRegistry()

        lock = registry.lock_for("acc-1")

        assert registry.lock_for("acc-1") is lock
        assert registry.lock_for("acc-2") is not lock

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self):
        registry = AccountLockRegistry()

        for index in range(50):
            async with registry.lock_for(f"acc-{index}"):
                pass
        gc.collect()

        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_held_lock_is_kept(self):
        registry = AccountLockRegistry()

        async with registry.lock_for("acc-1"):
            gc.collect()
            assert len(registry) == 1
            assert registry.lock_for("acc-1").locked()
