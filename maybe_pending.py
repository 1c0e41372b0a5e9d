"""
maybe_pending.py
Date: 18/10/2026

A value that is either already available or still has to be awaited.

Callers on a hot path check `is_completed_successfully` and read `result`
directly; everyone else can simply `await` it. Awaiting a completed value
never yields to the event loop.

    mp = line.get_quantity_async()
    qty = mp.result if mp.is_completed_successfully else await mp
"""

from __future__ import annotations

from typing import Any, Awaitable, Generator, Generic, Optional, TypeVar

T = TypeVar("T")


class MaybePending(Generic[T]):
    __slots__ = ("_result", "_awaitable")

    def __init__(self, awaitable: Awaitable[T]) -> None:
        self._result: Optional[T] = None
        self._awaitable: Optional[Awaitable[T]] = awaitable

    @classmethod
    def completed(cls, value: T) -> "MaybePending[T]":
        mp = cls.__new__(cls)
        mp._result = value
        mp._awaitable = None
        return mp

    @property
    def is_completed_successfully(self) -> bool:
        return self._awaitable is None

    @property
    def result(self) -> T:
        if self._awaitable is not None:
            raise RuntimeError("MaybePending.result read before the value was awaited")
        return self._result  # type: ignore[return-value]

    def __await__(self) -> Generator[Any, None, T]:
        if self._awaitable is None:
            return self._result  # type: ignore[return-value]
        value = yield from self._awaitable.__await__()
        # cache so later readers see a completed value
        self._result = value
        self._awaitable = None
        return value

    def __repr__(self) -> str:
        if self._awaitable is None:
            return f"MaybePending(completed={self._result!r})"
        return "MaybePending(pending)"
