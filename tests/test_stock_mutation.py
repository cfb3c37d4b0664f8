"""
Stock mutation through ProductCatalog.apply_stock_delta.

Invariants covered:
- stock never goes below zero
- stock == initial stock + sum of accepted deltas
- a rejected delta changes nothing and leaves no history row
- concurrent decrements cannot oversell
"""
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from sqlalchemy.exc import OperationalError

from furniture_stock.config import settings
from furniture_stock.exceptions import (
    InvalidInputError,
    NegativeStockError,
    ProductNotFoundError,
    StockConflictError,
)
from furniture_stock.models.product import Product
from furniture_stock.models.stock import StockAdjustment
from furniture_stock.services.catalog import ProductCatalog


class TestApplyStockDelta:
    def test_decrement_then_rejected_oversell(self, catalog, make_product):
        product = make_product(code="FUR-001", stock=10)

        change = catalog.apply_stock_delta(product.id, -3)
        assert change.new_stock == 7
        assert change.product.stock == 7

        with pytest.raises(NegativeStockError) as exc_info:
            catalog.apply_stock_delta(product.id, -10)
        assert exc_info.value.current_stock == 7
        assert exc_info.value.delta == -10

        assert catalog.get_product(product.id).stock == 7

    def test_decrement_to_exactly_zero_is_allowed(self, catalog, make_product):
        product = make_product(stock=2)
        assert catalog.apply_stock_delta(product.id, -2).new_stock == 0

    def test_stock_is_initial_plus_accepted_deltas(self, session, catalog, make_product):
        product = make_product(stock=0)
        accepted = []
        for delta in (5, -2, -20, 7, -10, -1):
            try:
                catalog.apply_stock_delta(product.id, delta)
            except NegativeStockError:
                continue
            accepted.append(delta)

        assert accepted == [5, -2, 7, -10]
        assert catalog.get_product(product.id).stock == 0 + sum(accepted)
        deltas = [a.delta for a in session.query(StockAdjustment).order_by(StockAdjustment.id)]
        assert deltas == accepted

    def test_history_row_records_result(self, catalog, clock, make_product):
        product = make_product(stock=4)
        change = catalog.apply_stock_delta(product.id, 6, reason="delivery", note="  pallet 12 ")

        adj = change.adjustment
        assert (adj.delta, adj.stock_after) == (6, 10)
        assert adj.reason == "delivery"
        assert adj.note == "pallet 12"
        assert adj.created_at == clock.now()

    def test_reason_defaults_to_adjustment(self, catalog, make_product):
        product = make_product(stock=1)
        adj = catalog.apply_stock_delta(product.id, 1).adjustment
        assert adj.reason == "adjustment"
        assert adj.note == ""

    def test_integral_float_delta_is_accepted(self, catalog, make_product):
        product = make_product(stock=1)
        assert catalog.apply_stock_delta(product.id, 2.0).new_stock == 3

    @pytest.mark.parametrize("delta", [0, True, False, 1.5, "3", None])
    def test_invalid_delta(self, catalog, make_product, delta):
        product = make_product(stock=5)
        with pytest.raises(InvalidInputError):
            catalog.apply_stock_delta(product.id, delta)
        assert catalog.get_product(product.id).stock == 5

    @pytest.mark.parametrize("product_id", [0, -1, "1", True, None, 1.0])
    def test_invalid_product_id(self, catalog, product_id):
        with pytest.raises(InvalidInputError):
            catalog.apply_stock_delta(product_id, 1)

    def test_missing_product(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.apply_stock_delta(999, 1)

    def test_rejected_delta_leaves_no_history(self, session, catalog, make_product):
        product = make_product(stock=1)
        with pytest.raises(NegativeStockError):
            catalog.apply_stock_delta(product.id, -2)
        assert session.query(StockAdjustment).count() == 0


def _locked(*args, **kwargs):
    raise OperationalError("UPDATE products", {}, Exception("database is locked"))


class TestConflictRetries:
    def test_persistent_conflict_is_retried_then_surfaced(
        self, session, catalog, make_product, monkeypatch
    ):
        monkeypatch.setattr(settings, "STOCK_RETRY_ATTEMPTS", 4)
        product = make_product(stock=5)
        calls = []

        def locked(*args):
            calls.append(args)
            _locked()

        monkeypatch.setattr(catalog, "_apply", locked)

        with pytest.raises(StockConflictError) as exc_info:
            catalog.apply_stock_delta(product.id, -1)

        assert len(calls) == 4
        assert exc_info.value.attempts == 4
        assert exc_info.value.retryable
        session.expire_all()
        assert session.get(Product, product.id).stock == 5
        assert session.query(StockAdjustment).count() == 0

    def test_transient_conflict_recovers(self, catalog, make_product, monkeypatch):
        product = make_product(stock=5)
        apply = catalog._apply
        calls = []

        def flaky(*args):
            calls.append(args)
            if len(calls) < 3:
                _locked()
            return apply(*args)

        monkeypatch.setattr(catalog, "_apply", flaky)

        assert catalog.apply_stock_delta(product.id, -2).new_stock == 3
        assert len(calls) == 3

    def test_caller_owned_transaction_is_not_retried(self, catalog, make_product, monkeypatch):
        product = make_product(stock=5)
        calls = []

        def locked(*args):
            calls.append(args)
            _locked()

        monkeypatch.setattr(catalog, "_apply", locked)

        with pytest.raises(StockConflictError):
            catalog.apply_stock_delta(product.id, -1, commit=False)
        assert len(calls) == 1


class TestStockHistory:
    def test_oldest_first(self, catalog, clock, make_product):
        product = make_product(stock=0)
        catalog.apply_stock_delta(product.id, 3)
        clock.advance(minutes=5)
        catalog.apply_stock_delta(product.id, -1)

        history = catalog.stock_history(product.id)
        assert [(a.delta, a.stock_after) for a in history] == [(3, 3), (-1, 2)]

    def test_unknown_product(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.stock_history(42)

    def test_list_adjustments_filters_and_pages(self, catalog, clock, make_product):
        sofa = make_product(code="FUR-001", stock=0)
        bed = make_product(code="FUR-002", stock=0)
        for _ in range(3):
            clock.advance(minutes=1)
            catalog.apply_stock_delta(sofa.id, 1, reason="delivery")
        clock.advance(minutes=1)
        catalog.apply_stock_delta(bed.id, 2, reason="correction")

        items, total = catalog.list_adjustments(product_id=sofa.id, page=1, page_size=2)
        assert total == 3
        assert [a.stock_after for a in items] == [3, 2]  # newest first

        items, total = catalog.list_adjustments(reason="correction")
        assert total == 1
        assert items[0].product_id == bed.id


class TestConcurrentDecrements:
    @pytest.fixture(autouse=True)
    def patient_retries(self, monkeypatch):
        # SQLite reports lock contention as OperationalError; give the retry loop room
        monkeypatch.setattr(settings, "STOCK_RETRY_ATTEMPTS", 50)
        monkeypatch.setattr(settings, "STOCK_RETRY_BACKOFF_SECONDS", 0.005)

    def _race(self, factory, product_id, workers, delta=-1):
        barrier = Barrier(workers)

        def work(_):
            db = factory()
            try:
                catalog = ProductCatalog(db)
                barrier.wait()
                try:
                    catalog.apply_stock_delta(product_id, delta)
                    return "ok"
                except (NegativeStockError, StockConflictError) as e:
                    return type(e).__name__
            finally:
                db.close()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(work, range(workers)))

    def _seed(self, factory, stock):
        db = factory()
        try:
            product = Product(code="FUR-001", name="Oslo Sofa", category="Sofas", stock=stock)
            db.add(product)
            db.commit()
            return product.id
        finally:
            db.close()

    def _state(self, factory, product_id):
        db = factory()
        try:
            stock = db.get(Product, product_id).stock
            history = db.query(StockAdjustment).filter_by(product_id=product_id).count()
            return stock, history
        finally:
            db.close()

    def test_last_item_is_sold_once(self, file_session_factory):
        product_id = self._seed(file_session_factory, stock=1)

        outcomes = self._race(file_session_factory, product_id, workers=6)

        assert outcomes.count("ok") == 1
        assert set(outcomes) <= {"ok", "NegativeStockError", "StockConflictError"}
        assert self._state(file_session_factory, product_id) == (0, 1)

    def test_stock_matches_accepted_decrements(self, file_session_factory):
        product_id = self._seed(file_session_factory, stock=5)

        outcomes = self._race(file_session_factory, product_id, workers=10)

        accepted = outcomes.count("ok")
        assert accepted <= 5
        stock, history = self._state(file_session_factory, product_id)
        assert stock == 5 - accepted
        assert stock >= 0
        assert history == accepted
