"""
ProductCatalog - product records and the only path that changes stock.

Stock mutation is a single conditional UPDATE
(``stock = stock + delta WHERE id = :id AND stock + delta >= 0``) so two
concurrent decrements can never both pass the non-negativity check against
a stale read. The accepted delta and its history row commit together.
Transient storage conflicts (lock timeouts, deadlocks, serialization
failures) are rolled back and retried a bounded number of times.
"""
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from furniture_stock.config import settings
from furniture_stock.exceptions import (
    DuplicateCodeError,
    InvalidInputError,
    InventoryError,
    NegativeStockError,
    ProductNotFoundError,
    StockConflictError,
)
from furniture_stock.models.product import Product
from furniture_stock.models.stock import StockAdjustment
from furniture_stock.schemas.product import ProductCreate, ProductUpdate
from furniture_stock.services.code_allocator import CodeAllocator
from furniture_stock.utils.clock import Clock, SystemClock
from furniture_stock.utils.codes import norm_code

logger = logging.getLogger(__name__)

# Columns an update may change but never clear
_REQUIRED_FIELDS = {"name", "category", "unit", "purchase_price", "sale_price", "gst_percent", "is_active"}


@dataclass
class StockChange:
    new_stock: int
    product: Product
    adjustment: StockAdjustment


def _validate_product_id(product_id) -> int:
    if isinstance(product_id, bool) or not isinstance(product_id, int) or product_id <= 0:
        raise InvalidInputError(f"Invalid product ID: {product_id!r}")
    return product_id


def _validate_delta(delta) -> int:
    if isinstance(delta, bool):
        raise InvalidInputError("Valid non-zero numeric 'change' is required")
    if isinstance(delta, float) and delta.is_integer():
        delta = int(delta)
    if not isinstance(delta, int) or delta == 0:
        raise InvalidInputError("Valid non-zero numeric 'change' is required")
    return delta


class ProductCatalog:
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        allocator: Optional[CodeAllocator] = None,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.allocator = allocator or CodeAllocator(db, clock=self.clock)

    # =========================
    # READ
    # =========================
    def get_product(self, product_id) -> Product:
        product = self.db.get(Product, _validate_product_id(product_id))
        if product is None:
            raise ProductNotFoundError(product_id=product_id)
        return product

    def get_by_code(self, code: str) -> Product:
        c = norm_code(code)
        product = None
        if c:
            product = self.db.execute(select(Product).where(Product.code == c)).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(code=code)
        return product

    def find_by_code(self, code: Optional[str]) -> Optional[Product]:
        c = norm_code(code)
        if not c:
            return None
        return self.db.execute(select(Product).where(Product.code == c)).scalar_one_or_none()

    def list_products(
        self,
        page: int = 1,
        limit: int = 50,
        q: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Product], int]:
        query = select(Product)
        if q and q.strip():
            like = f"%{q.strip()}%"
            query = query.where(or_(Product.name.ilike(like), Product.code.ilike(like)))
        if category:
            query = query.where(Product.category == category.strip())

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        items = self.db.execute(
            query.order_by(Product.created_at.desc(), Product.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(items), total

    def search(self, q: Optional[str], limit: int = 50) -> List[Product]:
        q = (q or "").strip()
        if not q:
            return []
        like = f"%{q}%"
        return list(self.db.execute(
            select(Product)
            .where(or_(Product.name.ilike(like), Product.code.ilike(like)))
            .order_by(Product.name.asc(), Product.id.asc())
            .limit(limit)
        ).scalars())

    def by_category(self, category: str) -> List[Product]:
        return list(self.db.execute(
            select(Product)
            .where(Product.category == category.strip())
            .order_by(Product.name.asc(), Product.id.asc())
        ).scalars())

    def low_stock(self, threshold: int) -> List[Product]:
        return list(self.db.execute(
            select(Product)
            .where(Product.stock <= threshold)
            .order_by(Product.stock.asc(), Product.name.asc(), Product.id.asc())
        ).scalars())

    def all_products(self) -> List[Product]:
        """Whole catalog in catalog order (name, then id)."""
        return list(self.db.execute(
            select(Product).order_by(Product.name.asc(), Product.id.asc())
        ).scalars())

    def products_by_codes(self, codes: Iterable[str]) -> Dict[str, Product]:
        codes = [c for c in set(codes) if c]
        if not codes:
            return {}
        rows = self.db.execute(select(Product).where(Product.code.in_(codes))).scalars()
        return {p.code: p for p in rows}

    def products_by_ids(self, ids: Iterable[int]) -> Dict[int, Product]:
        ids = [i for i in set(ids) if i is not None]
        if not ids:
            return {}
        rows = self.db.execute(select(Product).where(Product.id.in_(ids))).scalars()
        return {p.id: p for p in rows}

    # =========================
    # CREATE / UPDATE / DELETE
    # =========================
    def create_product(self, data: ProductCreate) -> Product:
        explicit = norm_code(data.code)
        if explicit:
            product = self._new_product(data, explicit)
            self._ensure_code_free(explicit, product.product_code)
            self.db.add(product)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise DuplicateCodeError(explicit)
            self.db.refresh(product)
            logger.info("Created product %s (%s)", product.code, product.name)
            return product

        # Allocated code: a concurrent insert may still win the race for the
        # same code, so a unique violation means "allocate again".
        self._ensure_code_free(None, norm_code(data.product_code))
        attempts = settings.CODE_ALLOCATION_ATTEMPTS
        for attempt in range(1, attempts + 1):
            code = self.allocator.allocate()
            product = self._new_product(data, code)
            self.db.add(product)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("Allocated code %s collided on insert (attempt %d)", code, attempt)
                time.sleep(settings.CODE_RETRY_BACKOFF_SECONDS * attempt)
                continue
            self.db.refresh(product)
            logger.info("Created product %s (%s)", product.code, product.name)
            return product

        raise DuplicateCodeError(code)

    def bulk_create(self, items: Sequence[ProductCreate]) -> List[Product]:
        """All-or-nothing insert; items without a code get one allocated."""
        if not items:
            raise InvalidInputError("Array of products required")

        seen = set()
        prepared = []
        for data in items:
            code = norm_code(data.code)
            product_code = norm_code(data.product_code)
            if code:
                if code in seen:
                    raise DuplicateCodeError(code)
                self._ensure_code_free(code, product_code or code)
                seen.add(code)
            if product_code:
                seen.add(product_code)
            prepared.append((data, code))

        products = []
        for data, code in prepared:
            if not code:
                code = self.allocator.allocate(exclude=seen)
                seen.add(code)
            products.append(self._new_product(data, code))

        self.db.add_all(products)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateCodeError(", ".join(p.code for p in products)) from exc

        for p in products:
            self.db.refresh(p)
        logger.info("Bulk created %d products", len(products))
        return products

    def update_product(self, product_id, data: ProductUpdate) -> Product:
        product = self.get_product(product_id)
        changes = data.model_dump(exclude_unset=True)

        if "code" in changes:
            code = norm_code(changes["code"])
            if not code:
                raise InvalidInputError("code cannot be empty")
            if code != product.code:
                self._ensure_code_free(code, None, exclude_id=product.id)
            changes["code"] = code
        if "product_code" in changes:
            pc = norm_code(changes["product_code"])
            if pc and pc != product.product_code:
                self._ensure_code_free(None, pc, exclude_id=product.id)
            changes["product_code"] = pc

        for key, value in changes.items():
            if key in _REQUIRED_FIELDS and value is None:
                raise InvalidInputError(f"{key} cannot be empty")
            setattr(product, key, value)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateCodeError(changes.get("code") or changes.get("product_code") or product.code)
        self.db.refresh(product)
        return product

    def delete_product(self, product_id) -> Product:
        # Scan events keep their code and weak product_id; reports show them as orphans.
        product = self.get_product(product_id)
        self.db.delete(product)
        self.db.commit()
        logger.info("Deleted product %s (id=%s)", product.code, product.id)
        return product

    # =========================
    # STOCK
    # =========================
    def apply_stock_delta(
        self,
        product_id,
        delta,
        reason: Optional[str] = None,
        note: Optional[str] = None,
        commit: bool = True,
    ) -> StockChange:
        """
        Add ``delta`` to the product's stock, rejecting any result below zero.

        With ``commit=False`` the caller owns the transaction (used when a scan
        and its stock effect must land together) and conflicts are not retried.
        """
        product_id = _validate_product_id(product_id)
        delta = _validate_delta(delta)
        attempts = max(1, settings.STOCK_RETRY_ATTEMPTS) if commit else 1

        for attempt in range(1, attempts + 1):
            try:
                change = self._apply(product_id, delta, reason, note)
                if commit:
                    self.db.commit()
            except OperationalError as exc:
                if commit:
                    self.db.rollback()
                logger.warning(
                    "Stock update conflict on product %s (attempt %d/%d): %s",
                    product_id, attempt, attempts, exc.orig,
                )
                if attempt == attempts:
                    raise StockConflictError(product_id, attempts) from exc
                time.sleep(settings.STOCK_RETRY_BACKOFF_SECONDS * attempt)
                continue
            except InventoryError:
                if commit:
                    self.db.rollback()
                raise

            logger.info(
                "Stock of product %s changed by %+d to %d (%s)",
                product_id, delta, change.new_stock, change.adjustment.reason,
            )
            return change

    def _apply(self, product_id: int, delta: int, reason, note) -> StockChange:
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock + delta >= 0)
            .values(stock=Product.stock + delta)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            current = self.db.execute(
                select(Product.stock).where(Product.id == product_id)
            ).scalar_one_or_none()
            if current is None:
                raise ProductNotFoundError(product_id=product_id)
            logger.info(
                "Rejected stock change %+d on product %s: current stock %d", delta, product_id, current
            )
            raise NegativeStockError(product_id, current, delta)

        # Our UPDATE holds the row until commit, so this read is the committed result.
        product = self.db.get(Product, product_id, populate_existing=True)

        adjustment = StockAdjustment(
            product_id=product_id,
            delta=delta,
            reason=(reason or "").strip() or "adjustment",
            note=(note or "").strip(),
            stock_after=product.stock,
            created_at=self.clock.now(),
        )
        self.db.add(adjustment)
        self.db.flush()
        return StockChange(new_stock=product.stock, product=product, adjustment=adjustment)

    def stock_history(self, product_id, limit: Optional[int] = None) -> List[StockAdjustment]:
        self.get_product(product_id)
        query = (
            select(StockAdjustment)
            .where(StockAdjustment.product_id == product_id)
            .order_by(StockAdjustment.created_at.asc(), StockAdjustment.id.asc())
        )
        if limit:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars())

    def list_adjustments(
        self,
        product_id: Optional[int] = None,
        reason: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[StockAdjustment], int]:
        query = select(StockAdjustment)
        if product_id is not None:
            query = query.where(StockAdjustment.product_id == product_id)
        if reason:
            query = query.where(StockAdjustment.reason == reason)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        items = self.db.execute(
            query.order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).scalars().all()
        return list(items), total

    # =========================
    # HELPERS
    # =========================
    def _new_product(self, data: ProductCreate, code: str) -> Product:
        values = data.model_dump(exclude={"code"})
        values["product_code"] = norm_code(values.get("product_code")) or code
        return Product(code=code, **values)

    def _ensure_code_free(self, code: Optional[str], product_code: Optional[str], exclude_id=None) -> None:
        for value in (code, product_code):
            if not value:
                continue
            query = select(Product.id).where(or_(Product.code == value, Product.product_code == value))
            if exclude_id is not None:
                query = query.where(Product.id != exclude_id)
            if self.db.execute(query.limit(1)).first() is not None:
                raise DuplicateCodeError(value)
