from datetime import datetime, timedelta

import pytest

from furniture_stock.exceptions import InvalidInputError, NegativeStockError
from furniture_stock.models.scan import ScanEvent, ScanType
from furniture_stock.schemas.scan import ScanCreate
from furniture_stock.services.scan_log import ScanFilter

START = datetime(2025, 3, 10, 9, 0, 0)


class TestAppend:
    def test_resolves_product_by_code(self, scan_log, make_product, clock):
        product = make_product(code="FUR-001")

        scan, new_stock = scan_log.append(ScanCreate(code=" fur-001 ", scan_type="sale", quantity=2))

        assert scan.code == "FUR-001"
        assert scan.product_id == product.id
        assert scan.scan_type == "sale"
        assert scan.created_at == clock.now()
        assert new_stock is None

    def test_unknown_code_is_stored(self, scan_log):
        scan, _ = scan_log.append(ScanCreate(code="NOPE-1"))
        assert scan.product_id is None
        assert scan.scan_type == ScanType.AUDIT.value

    def test_sale_with_apply_stock_decrements(self, scan_log, catalog, make_product):
        product = make_product(code="FUR-001", stock=5)

        _, new_stock = scan_log.append(
            ScanCreate(code="FUR-001", scan_type="sale", quantity=2, apply_stock=True)
        )

        assert new_stock == 3
        history = catalog.stock_history(product.id)
        assert [(a.delta, a.reason) for a in history] == [(-2, "sale")]

    def test_in_with_apply_stock_increments(self, scan_log, make_product):
        make_product(code="FUR-001", stock=0)
        _, new_stock = scan_log.append(ScanCreate(code="FUR-001", scan_type="in", quantity=4, apply_stock=True))
        assert new_stock == 4

    def test_audit_never_moves_stock(self, scan_log, make_product):
        make_product(code="FUR-001", stock=2)
        _, new_stock = scan_log.append(ScanCreate(code="FUR-001", scan_type="audit", apply_stock=True))
        assert new_stock is None

    def test_rejected_sale_stores_nothing(self, session, scan_log, make_product):
        make_product(code="FUR-001", stock=1)

        with pytest.raises(NegativeStockError):
            scan_log.append(ScanCreate(code="FUR-001", scan_type="sale", quantity=2, apply_stock=True))

        assert session.query(ScanEvent).count() == 0

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValueError):
            ScanCreate(code="FUR-001", quantity=0)

    def test_unknown_scan_type_rejected(self):
        with pytest.raises(ValueError):
            ScanCreate(code="FUR-001", scan_type="return")


class TestQuery:
    def test_newest_first_with_id_tiebreak(self, scan_log, make_scan, clock):
        a = make_scan("FUR-001")
        b = make_scan("FUR-002")
        clock.advance(minutes=1)
        c = make_scan("FUR-003")

        assert [s.id for s in scan_log.query()] == [c.id, b.id, a.id]
        assert [s.id for s in scan_log.query(newest_first=False)] == [a.id, b.id, c.id]
        assert [s.id for s in scan_log.query(limit=2, offset=1)] == [b.id, a.id]

    def test_filters_combine(self, scan_log, make_scan):
        make_scan("FUR-001", scan_type="sale")
        make_scan("FUR-001", scan_type="in")
        make_scan("FUR-002", scan_type="sale")

        f = ScanFilter.from_params(scan_type="SALE", code="fur-001")
        assert scan_log.count(f) == 1
        assert scan_log.count(ScanFilter.from_params(scan_type="sale")) == 2

    def test_date_only_upper_bound_covers_whole_day(self, scan_log, make_scan):
        make_scan("FUR-001", at=datetime(2025, 3, 10, 23, 59, 59))
        make_scan("FUR-001", at=datetime(2025, 3, 11, 0, 0, 0))

        f = ScanFilter.from_params(date_from="2025-03-10", date_to="2025-03-10")
        assert scan_log.count(f) == 1

    def test_blank_dates_mean_no_bound(self, scan_log, make_scan):
        make_scan("FUR-001")
        assert scan_log.count(ScanFilter.from_params(date_from="", date_to="  ")) == 1

    def test_malformed_date_rejected(self):
        with pytest.raises(InvalidInputError):
            ScanFilter.from_params(date_from="10/03/2025")

    def test_unknown_type_filter_rejected(self):
        with pytest.raises(InvalidInputError):
            ScanFilter.from_params(scan_type="return")


class TestAggregation:
    def test_by_code_orders_by_quantity_then_code(self, scan_log, make_scan):
        make_scan("FUR-002", quantity=3)
        make_scan("FUR-001", quantity=1)
        make_scan("FUR-001", quantity=2)
        make_scan("FUR-003", quantity=1)

        totals = scan_log.aggregate_by_code()

        assert list(totals) == ["FUR-001", "FUR-002", "FUR-003"]
        assert totals["FUR-001"].total_quantity == 3
        assert totals["FUR-001"].event_count == 2
        assert totals["FUR-002"].event_count == 1

    def test_by_code_limit(self, scan_log, make_scan):
        for code in ("FUR-001", "FUR-002", "FUR-003"):
            make_scan(code)
        assert len(scan_log.aggregate_by_code(limit=2)) == 2

    def test_by_day_and_code(self, scan_log, make_scan):
        make_scan("FUR-001", quantity=2, at=START)
        make_scan("FUR-001", quantity=3, at=START + timedelta(hours=5))
        make_scan("FUR-002", quantity=1, at=START + timedelta(days=1))

        rows = scan_log.aggregate_by_day_and_code()

        assert [(r.day, r.code, r.total_quantity, r.event_count) for r in rows] == [
            ("2025-03-10", "FUR-001", 5, 2),
            ("2025-03-11", "FUR-002", 1, 1),
        ]
