"""
orders.py
Date: 18/10/2026

Order book data model: Book -> Order -> OrderLine.

The tree is built once and then treated as read-only; every type is a
frozen dataclass holding tuples. Leaves expose two reads of their quantity:

  - get_quantity()        plain synchronous read
  - get_quantity_async()  maybe-pending read (see maybe_pending.py)

A line flagged `deferred=True` answers its maybe-pending read only after one
trip through the event loop, which is how the escalation paths in
aggregators.py get exercised.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Sequence, Tuple

from maybe_pending import MaybePending


@dataclass(frozen=True)
class OrderLine:
    quantity: int
    deferred: bool = False
    # one shared completed value per line, so fast-path reads allocate nothing
    _ready: MaybePending[int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_ready", MaybePending.completed(self.quantity))

    def get_quantity(self) -> int:
        return self.quantity

    def get_quantity_async(self) -> MaybePending[int]:
        if self.deferred:
            return MaybePending(self._deliver_later())
        return self._ready

    async def _deliver_later(self) -> int:
        await asyncio.sleep(0)
        return self.quantity


@dataclass(frozen=True)
class Order:
    lines: Tuple[OrderLine, ...] = ()


@dataclass(frozen=True)
class Book:
    orders: Tuple[Order, ...] = ()

    @property
    def line_count(self) -> int:
        return sum(len(o.lines) for o in self.orders)


def book_from_quantities(
    quantities: Iterable[Sequence[int]],
    deferred: Iterable[Tuple[int, int]] = (),
) -> Book:
    """
    Build a Book from nested quantities, e.g. [[3, 5], [2]].

    `deferred` lists (order_index, line_index) pairs whose lines should
    resolve asynchronously.
    """
    pending = set(deferred)
    orders = []
    for oi, qs in enumerate(quantities):
        lines = tuple(
            OrderLine(quantity=int(q), deferred=(oi, li) in pending)
            for li, q in enumerate(qs)
        )
        orders.append(Order(lines=lines))
    return Book(orders=tuple(orders))
