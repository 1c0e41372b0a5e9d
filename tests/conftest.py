"""Shared fixtures for the aggregation benchmark tests."""

import asyncio

import pytest

from benchmarker import Benchmarker
from maybe_pending import MaybePending
from metrics import metrics
from orders import book_from_quantities


def _resolve(value):
    if isinstance(value, int):
        return value
    if isinstance(value, MaybePending) and value.is_completed_successfully:
        return value.result

    async def _await():
        return await value

    return asyncio.run(_await())


@pytest.fixture(autouse=True)
def clean_state():
    metrics.reset()
    Benchmarker.clear_fixtures()
    yield
    metrics.reset()
    Benchmarker.clear_fixtures()


@pytest.fixture
def resolve():
    """Drive any entry-point result (int, MaybePending or coroutine) to an int."""
    return _resolve


@pytest.fixture
def scenario_book():
    """Book{[3, 5], [2]} -> total 10."""
    return book_from_quantities([[3, 5], [2]])
