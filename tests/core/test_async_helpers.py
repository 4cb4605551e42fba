"""Tests for chronicle.core.utils.async_helpers."""

import asyncio

import pytest

from chronicle.core.utils.async_helpers import run_async_safely, with_timeout


async def _value(v, delay=0.0):
    await asyncio.sleep(delay)
    return v


def test_run_async_safely_without_loop():
    assert run_async_safely(_value(3)) == 3


@pytest.mark.asyncio
async def test_run_async_safely_inside_running_loop():
    assert run_async_safely(_value("nested")) == "nested"


@pytest.mark.asyncio
async def test_with_timeout_returns_result():
    assert await with_timeout(_value(1), 1) == 1


@pytest.mark.asyncio
async def test_with_timeout_raises():
    with pytest.raises(asyncio.TimeoutError):
        await with_timeout(_value(1, delay=1), 0.01)


@pytest.mark.asyncio
@pytest.mark.parametrize("timeout", [None, 0])
async def test_with_timeout_disabled(timeout):
    assert await with_timeout(_value(2, delay=0.01), timeout) == 2
