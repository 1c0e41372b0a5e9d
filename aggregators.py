"""
aggregators.py
Date: 18/10/2026

Four ways of summing every OrderLine quantity under a Book.

  1. sync          plain nested loops, no suspension at all (baseline)
  2. pure async    `async def` all the way down, every leaf awaited
  3. fast path     returns MaybePending; only escalates into a coroutine
     (params)      on the first unresolved child, handing the partial
                   state (children, index, pending, total) over as arguments
  4. fast path     same policy, but the continuation is a nested coroutine
     (locals)      that shares `total`, `i` and `pending` with the enclosing
                   call through closure cells

Variants 3 and 4 run the same two-state machine at each level:

  SCANNING  walk children by index; resolved -> accumulate and continue,
            unresolved -> hand off to the continuation (AWAITING)
  AWAITING  await the pending child, then finish the remaining children
            inline; never returns to the outer loop, never escalates again

All four must agree on the total for any tree.
"""

from __future__ import annotations

from typing import Sequence

from maybe_pending import MaybePending
from orders import Book, Order, OrderLine


# ---------------------------------------------------------------------------
# 1. Synchronous
# ---------------------------------------------------------------------------

def order_quantity(order: Order) -> int:
    total = 0
    for line in order.lines:
        total += line.get_quantity()
    return total


def book_quantity(book: Book) -> int:
    total = 0
    for order in book.orders:
        total += order_quantity(order)
    return total


# ---------------------------------------------------------------------------
# 2. Uniformly suspending
# ---------------------------------------------------------------------------

async def order_quantity_pure_async(order: Order) -> int:
    total = 0
    for line in order.lines:
        total += await line.get_quantity_async()
    return total


async def book_quantity_pure_async(book: Book) -> int:
    total = 0
    for order in book.orders:
        total += await order_quantity_pure_async(order)
    return total


# ---------------------------------------------------------------------------
# 3. Fast path, continuation state passed as parameters
# ---------------------------------------------------------------------------

def order_quantity_async(order: Order) -> MaybePending[int]:
    lines = order.lines
    total = 0
    for i in range(len(lines)):
        pending = lines[i].get_quantity_async()
        if not pending.is_completed_successfully:
            return MaybePending(_order_awaited(lines, i, pending, total))
        total += pending.result
    return MaybePending.completed(total)


async def _order_awaited(
    lines: Sequence[OrderLine],
    i: int,
    pending: MaybePending[int],
    total: int,
) -> int:
    total += await pending
    for i in range(i + 1, len(lines)):
        pending = lines[i].get_quantity_async()
        total += pending.result if pending.is_completed_successfully else await pending
    return total


def book_quantity_async(book: Book) -> MaybePending[int]:
    orders = book.orders
    total = 0
    for i in range(len(orders)):
        pending = order_quantity_async(orders[i])
        if not pending.is_completed_successfully:
            return MaybePending(_book_awaited(orders, i, pending, total))
        total += pending.result
    return MaybePending.completed(total)


async def _book_awaited(
    orders: Sequence[Order],
    i: int,
    pending: MaybePending[int],
    total: int,
) -> int:
    total += await pending
    for i in range(i + 1, len(orders)):
        pending = order_quantity_async(orders[i])
        total += pending.result if pending.is_completed_successfully else await pending
    return total


# ---------------------------------------------------------------------------
# 4. Fast path, continuation state captured from the enclosing scope
# ---------------------------------------------------------------------------

def order_quantity_locals_async(order: Order) -> MaybePending[int]:
    lines = order.lines
    total = 0
    i = 0
    pending: MaybePending[int]

    async def awaited() -> int:
        nonlocal total, i, pending
        total += await pending
        i += 1
        while i < len(lines):
            pending = lines[i].get_quantity_async()
            total += pending.result if pending.is_completed_successfully else await pending
            i += 1
        return total

    while i < len(lines):
        pending = lines[i].get_quantity_async()
        if not pending.is_completed_successfully:
            return MaybePending(awaited())
        total += pending.result
        i += 1
    return MaybePending.completed(total)


def book_quantity_locals_async(book: Book) -> MaybePending[int]:
    orders = book.orders
    total = 0
    i = 0
    pending: MaybePending[int]

    async def awaited() -> int:
        nonlocal total, i, pending
        total += await pending
        i += 1
        while i < len(orders):
            pending = order_quantity_locals_async(orders[i])
            total += pending.result if pending.is_completed_successfully else await pending
            i += 1
        return total

    while i < len(orders):
        pending = order_quantity_locals_async(orders[i])
        if not pending.is_completed_successfully:
            return MaybePending(awaited())
        total += pending.result
        i += 1
    return MaybePending.completed(total)
