"""Tests for the race-with-fallback combinator."""

import asyncio

import pytest

from netimport.core.concurrency import race_with_fallback


async def _value(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


async def _fail(exc, delay=0.0):
    await asyncio.sleep(delay)
    raise exc


class TestRaceWithFallback:
    """Tests for race_with_fallback."""

    def test_first_success_wins(self):
        async def run():
            return await race_with_fallback(_value("slow", 0.05), _value("fast"))

        assert asyncio.run(run()) == "fast"

    def test_failure_falls_back_to_sibling(self):
        async def run():
            return await race_with_fallback(_fail(LookupError("miss")), _value("net", 0.01))

        assert asyncio.run(run()) == "net"

    def test_loser_keeps_running_in_background(self):
        finished = []

        async def slow():
            await asyncio.sleep(0.02)
            finished.append(True)
            return "slow"

        async def run():
            background = set()
            result = await race_with_fallback(_value("fast"), slow(), background=background)
            assert finished == []
            assert len(background) == 1
            await asyncio.gather(*background)
            await asyncio.sleep(0)
            return result, background

        result, background = asyncio.run(run())
        assert result == "fast"
        assert finished == [True]
        assert background == set()

    def test_all_failures_raise_last_branch_error(self):
        async def run():
            await race_with_fallback(
                _fail(LookupError("miss")),
                _fail(RuntimeError("network down"), 0.01),
            )

        with pytest.raises(RuntimeError, match="network down"):
            asyncio.run(run())

    def test_requires_a_branch(self):
        with pytest.raises(ValueError):
            asyncio.run(race_with_fallback())
