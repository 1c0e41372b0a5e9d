"""
benchmarker.py
Date: 18/10/2026

The four benchmark entry points over one shared fixture.

Every entry takes no arguments and produces the book's total quantity:

  Sync                               -> int
  Pure Async                         -> coroutine
  MaybePending + Continuation Params -> MaybePending[int]
  MaybePending + Continuation Locals -> MaybePending[int]

The fixture is built lazily by the first Benchmarker created for a given
FixtureConfig and then reused by every later instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, List, Optional

import aggregators
from fixture import FixtureConfig, build_book
from orders import Book


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BenchmarkCase:
    name: str
    description: str
    method: str          # Benchmarker attribute to call
    baseline: bool = False
    is_async: bool = False


CASES: List[BenchmarkCase] = [
    BenchmarkCase("sync", "Sync", "sync", baseline=True),
    BenchmarkCase("pure_async", "Pure Async", "pure_async", is_async=True),
    BenchmarkCase(
        "fast_path_params", "MaybePending + Continuation Params",
        "fast_path_params", is_async=True,
    ),
    BenchmarkCase(
        "fast_path_locals", "MaybePending + Continuation Locals",
        "fast_path_locals", is_async=True,
    ),
]


class Benchmarker:
    _books: ClassVar[Dict[FixtureConfig, Book]] = {}

    def __init__(self, config: Optional[FixtureConfig] = None) -> None:
        self.config = config or FixtureConfig()
        book = Benchmarker._books.get(self.config)
        if book is None:
            book = build_book(self.config)
            Benchmarker._books[self.config] = book
        else:
            logger.debug("Reusing fixture for %s", self.config)
        self.book = book

    @classmethod
    def clear_fixtures(cls) -> None:
        cls._books.clear()

    # ---- entry points ----------------------------------------------------

    def sync(self) -> int:
        return aggregators.book_quantity(self.book)

    def pure_async(self):
        return aggregators.book_quantity_pure_async(self.book)

    def fast_path_params(self):
        return aggregators.book_quantity_async(self.book)

    def fast_path_locals(self):
        return aggregators.book_quantity_locals_async(self.book)

    # ---- lookup ----------------------------------------------------------

    def entry(self, case: BenchmarkCase) -> Callable[[], Any]:
        return getattr(self, case.method)


def select_cases(names: Optional[List[str]] = None) -> List[BenchmarkCase]:
    """Return CASES in declaration order, optionally filtered by name."""
    if not names:
        return list(CASES)
    known = {c.name for c in CASES}
    unknown = [n for n in names if n not in known]
    if unknown:
        raise ValueError(f"Unknown benchmark case(s): {', '.join(unknown)}; known: {sorted(known)}")
    wanted = set(names)
    return [c for c in CASES if c.name in wanted]
