"""Tests for the four order book aggregation variants.

Coverage:
- Cross-variant equivalence (scenario, empty, single line, seeded fixture)
- Fast path never escalates when every leaf resolves immediately
- Deferred leaves escalate exactly once per level and still agree
- Repeated invocations never mutate the tree
"""

import asyncio

import pytest

import aggregators
from fixture import FixtureConfig, build_book
from maybe_pending import MaybePending
from orders import Book, Order, OrderLine, book_from_quantities


VARIANTS = {
    "sync": aggregators.book_quantity,
    "pure_async": aggregators.book_quantity_pure_async,
    "fast_path_params": aggregators.book_quantity_async,
    "fast_path_locals": aggregators.book_quantity_locals_async,
}
FAST_PATH = ["fast_path_params", "fast_path_locals"]
# total of the default fixture (numpy default_rng(12345))
SEED_12345_TOTAL = 2510


def _snapshot(book):
    return [[(line.quantity, line.deferred) for line in order.lines] for order in book.orders]


class TestEquivalence:
    """Every variant returns the same total."""

    @pytest.mark.parametrize("variant", list(VARIANTS))
    def test_scenario_totals_ten(self, variant, scenario_book, resolve):
        assert resolve(VARIANTS[variant](scenario_book)) == 10

    @pytest.mark.parametrize("variant", list(VARIANTS))
    def test_empty_book_is_zero(self, variant, resolve):
        assert resolve(VARIANTS[variant](Book())) == 0

    @pytest.mark.parametrize("variant", list(VARIANTS))
    def test_order_without_lines_is_zero(self, variant, resolve):
        book = Book(orders=(Order(),))
        assert resolve(VARIANTS[variant](book)) == 0

    @pytest.mark.parametrize("variant", list(VARIANTS))
    def test_single_line(self, variant, resolve):
        book = book_from_quantities([[17]])
        assert resolve(VARIANTS[variant](book)) == 17

    @pytest.mark.parametrize("variant", list(VARIANTS))
    def test_no_upper_bound_on_quantity(self, variant, resolve):
        book = book_from_quantities([[1_000_000, 2], [], [3]])
        assert resolve(VARIANTS[variant](book)) == 1_000_005

    def test_seeded_fixture_total_is_pinned(self, resolve):
        """Seed 12345 always yields 2510, from every variant."""
        book = build_book(FixtureConfig(seed=12345))
        totals = {name: resolve(fn(book)) for name, fn in VARIANTS.items()}
        assert totals == dict.fromkeys(VARIANTS, SEED_12345_TOTAL)
        assert 50 <= book.line_count <= 50 * 9


class TestOrderLevel:
    """Order-level functions mirror the book-level behaviour."""

    def test_all_order_variants_agree(self, resolve):
        order = Order(lines=(OrderLine(4), OrderLine(6), OrderLine(1)))
        assert aggregators.order_quantity(order) == 11
        assert resolve(aggregators.order_quantity_pure_async(order)) == 11
        assert resolve(aggregators.order_quantity_async(order)) == 11
        assert resolve(aggregators.order_quantity_locals_async(order)) == 11


class TestFastPath:
    """Immediately-resolved leaves never leave the SCANNING loop."""

    @pytest.mark.parametrize("variant", FAST_PATH)
    def test_single_line_completes_synchronously(self, variant):
        result = VARIANTS[variant](book_from_quantities([[8]]))
        assert isinstance(result, MaybePending)
        assert result.is_completed_successfully
        assert result.result == 8

    def test_params_variant_never_enters_continuation(self, monkeypatch, scenario_book):
        def boom(*args):
            raise AssertionError("continuation entered")

        monkeypatch.setattr(aggregators, "_order_awaited", boom)
        monkeypatch.setattr(aggregators, "_book_awaited", boom)
        result = aggregators.book_quantity_async(scenario_book)
        assert result.is_completed_successfully
        assert result.result == 10

    def test_leaf_read_reuses_cached_value(self):
        line = OrderLine(5)
        assert line.get_quantity_async() is line.get_quantity_async()


class TestEscalation:
    """A deferred leaf moves the fast path into its continuation."""

    @pytest.mark.parametrize("variant", FAST_PATH)
    def test_deferred_leaf_returns_pending(self, variant, resolve):
        book = book_from_quantities([[3, 5], [2]], deferred=[(0, 1)])
        result = VARIANTS[variant](book)
        assert not result.is_completed_successfully
        assert resolve(result) == 10

    @pytest.mark.parametrize("variant", list(VARIANTS))
    def test_many_deferred_leaves_agree(self, variant, resolve):
        book = book_from_quantities(
            [[1, 2, 3], [4], [5, 6]],
            deferred=[(0, 0), (0, 2), (1, 0), (2, 1)],
        )
        assert resolve(VARIANTS[variant](book)) == 21

    def test_deferred_leaf_after_fast_prefix(self, resolve):
        book = book_from_quantities([[1, 1], [1, 1], [1, 7]], deferred=[(2, 1)])
        result = aggregators.book_quantity_async(book)
        assert not result.is_completed_successfully
        assert resolve(result) == 12

    def test_book_level_escalates_once(self, monkeypatch):
        calls = []
        real = aggregators._book_awaited

        def spy(orders, i, pending, total):
            calls.append((i, total))
            return real(orders, i, pending, total)

        monkeypatch.setattr(aggregators, "_book_awaited", spy)
        book = book_from_quantities([[2], [3], [4], [5]], deferred=[(1, 0), (3, 0)])

        async def run():
            return await aggregators.book_quantity_async(book)

        assert asyncio.run(run()) == 14
        # first unresolved order is index 1, with order 0 already accumulated
        assert calls == [(1, 2)]

    def test_order_level_escalates_once_per_order(self, monkeypatch):
        calls = []
        real = aggregators._order_awaited

        def spy(lines, i, pending, total):
            calls.append(i)
            return real(lines, i, pending, total)

        monkeypatch.setattr(aggregators, "_order_awaited", spy)
        book = book_from_quantities(
            [[1, 2, 3], [4, 5]],
            deferred=[(0, 1), (0, 2), (1, 0)],
        )

        async def run():
            return await aggregators.book_quantity_async(book)

        assert asyncio.run(run()) == 15
        # order 0 escalates at line 1; line 2 is handled inline; order 1 at line 0
        assert calls == [1, 0]

    def test_locals_variant_escalates_once_per_level(self, monkeypatch):
        """Two deferred lines in one order build one continuation per level."""
        created = []
        real_init = MaybePending.__init__

        def spy(self, awaitable):
            created.append(getattr(awaitable, "__qualname__", ""))
            real_init(self, awaitable)

        monkeypatch.setattr(MaybePending, "__init__", spy)
        book = book_from_quantities([[1, 2, 3], [4]], deferred=[(0, 0), (0, 2)])

        async def run():
            return await aggregators.book_quantity_locals_async(book)

        assert asyncio.run(run()) == 10
        order_level = [q for q in created if q.startswith("order_quantity_locals_async.")]
        book_level = [q for q in created if q.startswith("book_quantity_locals_async.")]
        assert order_level == ["order_quantity_locals_async.<locals>.awaited"]
        assert book_level == ["book_quantity_locals_async.<locals>.awaited"]
        # the remaining pending values are the two deferred leaf reads
        assert len(created) == 4


class TestImmutability:
    """Repeated aggregation leaves the fixture untouched."""

    def test_repeated_invocations_are_idempotent(self, resolve):
        book = build_book(FixtureConfig(orders=10, pending_every=4))
        before = _snapshot(book)
        orders_before = book.orders
        first = {name: resolve(fn(book)) for name, fn in VARIANTS.items()}
        for _ in range(5):
            again = {name: resolve(fn(book)) for name, fn in VARIANTS.items()}
            assert again == first
        assert _snapshot(book) == before
        assert book.orders is orders_before

    def test_model_is_frozen(self):
        line = OrderLine(3)
        with pytest.raises(AttributeError):
            line.quantity = 4
