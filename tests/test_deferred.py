"""Tests for the single-assignment deferred channel."""

import asyncio

import pytest

from tmsprovider.deferred import DeferredChannel
from tmsprovider.errors import DeferredAlreadyCompletedError, DeferredPendingError


class TestDeferredChannel:
    """Test completion contract of DeferredChannel."""

    def test_pending_channel_exposes_no_state(self):
        channel = DeferredChannel()

        assert not channel.done
        with pytest.raises(DeferredPendingError):
            channel.result()
        with pytest.raises(DeferredPendingError):
            channel.exception()

    def test_resolve_then_result(self):
        channel = DeferredChannel()
        channel.resolve("configuration")

        assert channel.done
        assert not channel.rejected
        assert channel.result() == "configuration"
        assert channel.exception() is None

    def test_reject_then_result_raises(self):
        channel = DeferredChannel()
        error = RuntimeError("boom")
        channel.reject(error)

        assert channel.rejected
        assert channel.exception() is error
        with pytest.raises(RuntimeError, match="boom"):
            channel.result()

    @pytest.mark.parametrize("second", ["resolve", "reject"])
    def test_second_completion_raises(self, second):
        channel = DeferredChannel()
        channel.resolve(1)

        with pytest.raises(DeferredAlreadyCompletedError):
            if second == "resolve":
                channel.resolve(2)
            else:
                channel.reject(ValueError("late"))

        assert channel.result() == 1

    def test_await_completed_channel(self):
        channel = DeferredChannel()
        channel.resolve(42)

        async def consume():
            return await channel

        assert asyncio.run(consume()) == 42

    def test_waiters_are_released_on_completion(self):
        async def scenario():
            channel = DeferredChannel()
            first = asyncio.ensure_future(channel.wait())
            second = asyncio.ensure_future(channel.wait())
            await asyncio.sleep(0)

            assert not first.done()
            channel.resolve("ready")
            return await asyncio.gather(first, second)

        assert asyncio.run(scenario()) == ["ready", "ready"]

    def test_waiters_receive_rejection(self):
        async def scenario():
            channel = DeferredChannel()
            waiter = asyncio.ensure_future(channel.wait())
            await asyncio.sleep(0)
            channel.reject(LookupError("missing"))
            await waiter

        with pytest.raises(LookupError, match="missing"):
            asyncio.run(scenario())
