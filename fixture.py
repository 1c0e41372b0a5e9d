"""
fixture.py
Date: 18/10/2026

Deterministic order-book fixture for the aggregation benchmarks.

Defaults reproduce the classic setup: seed 12345, 50 orders, each with
1..9 lines, each line holding a quantity in [1, 20). Upper bounds are
exclusive, matching numpy's `Generator.integers`.

Construction time is recorded as `fixture.build` via metrics.py.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from metrics import record_latency
from orders import Book, Order, OrderLine


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FixtureConfig:
    seed: int = 12345
    orders: int = 50
    min_lines: int = 1           # inclusive
    max_lines: int = 10          # exclusive
    min_quantity: int = 1        # inclusive
    max_quantity: int = 20       # exclusive
    pending_every: int = 0       # every Nth line resolves asynchronously; 0 = never

    def __post_init__(self) -> None:
        if self.orders < 0:
            raise ValueError(f"orders must be >= 0, got {self.orders}")
        if not 0 <= self.min_lines < self.max_lines:
            raise ValueError(f"invalid line range [{self.min_lines}, {self.max_lines})")
        if not 0 <= self.min_quantity < self.max_quantity:
            raise ValueError(f"invalid quantity range [{self.min_quantity}, {self.max_quantity})")
        if self.pending_every < 0:
            raise ValueError(f"pending_every must be >= 0, got {self.pending_every}")


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def build_book(config: FixtureConfig | None = None) -> Book:
    """Build the seeded Book. Same config, same tree."""
    cfg = config or FixtureConfig()
    rng = np.random.default_rng(cfg.seed)

    with record_latency("fixture.build"):
        orders = []
        line_no = 0
        for _ in range(cfg.orders):
            n_lines = int(rng.integers(cfg.min_lines, cfg.max_lines))
            lines = []
            for _ in range(n_lines):
                line_no += 1
                deferred = cfg.pending_every > 0 and line_no % cfg.pending_every == 0
                qty = int(rng.integers(cfg.min_quantity, cfg.max_quantity))
                lines.append(OrderLine(quantity=qty, deferred=deferred))
            orders.append(Order(lines=tuple(lines)))
        book = Book(orders=tuple(orders))

    logger.info(
        "Built fixture: seed=%d orders=%d lines=%d pending_every=%d",
        cfg.seed, len(book.orders), book.line_count, cfg.pending_every,
    )
    return book
