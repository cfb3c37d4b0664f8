"""
CodeAllocator - sequential product codes (FUR-001, FUR-002, ...).

The next code is max(existing numeric suffix) + 1. Two callers can read the
same maximum, so a proposal is only handed out after it has been reserved in
``code_reservations``; the unique index on that table is the atomic existence
check. A collision moves on to the next number (bounded, with linear
backoff) and once the budget is spent a timestamp-derived fallback code is
returned instead of failing the caller. The fallback is reserved like any
other code; only when that keeps failing too does ``CodeAllocationError``
surface.
"""
import logging
import re
import time
import uuid
from typing import Collection, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from furniture_stock.config import settings
from furniture_stock.exceptions import CodeAllocationError
from furniture_stock.models.product import Product
from furniture_stock.models.stock import CodeReservation
from furniture_stock.utils.clock import Clock, SystemClock
from furniture_stock.utils.codes import norm_code

logger = logging.getLogger(__name__)


class CodeAllocator:
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.max_attempts = max_attempts or settings.CODE_ALLOCATION_ATTEMPTS
        self.backoff_seconds = (
            settings.CODE_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )

    @staticmethod
    def format_code(prefix: str, number: int) -> str:
        return f"{prefix}-{number:0{settings.CODE_PAD_WIDTH}d}"

    def allocate(self, prefix: Optional[str] = None, exclude: Collection[str] = ()) -> str:
        """
        Return a code no other allocation has returned or will return.

        ``exclude`` holds codes already claimed but not yet stored (explicit
        codes earlier in the same bulk insert); they are skipped without
        spending an attempt.
        """
        prefix = norm_code(prefix) or norm_code(settings.CODE_PREFIX)
        candidate = self.max_suffix(prefix) + 1

        for attempt in range(1, self.max_attempts + 1):
            while self.format_code(prefix, candidate) in exclude:
                candidate += 1
            code = self.format_code(prefix, candidate)
            if not self._taken(code) and self._reserve(code, prefix):
                logger.debug("Allocated product code %s (attempt %d)", code, attempt)
                return code

            logger.info("Product code %s already taken, retrying (attempt %d)", code, attempt)
            candidate += 1
            if self.backoff_seconds:
                time.sleep(self.backoff_seconds * attempt)

        code = self._fallback(prefix)
        logger.warning(
            "Code allocation for prefix %s exhausted %d attempts, using fallback %s",
            prefix, self.max_attempts, code,
        )
        return code

    def max_suffix(self, prefix: str) -> int:
        """Highest N among codes shaped exactly like PREFIX-N (0 when none)."""
        pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
        like = f"{prefix}-%"

        codes = list(self.db.execute(
            select(Product.code).where(Product.code.like(like))
        ).scalars())
        codes += self.db.execute(
            select(Product.product_code).where(Product.product_code.like(like))
        ).scalars().all()
        codes += self.db.execute(
            select(CodeReservation.code).where(CodeReservation.prefix == prefix)
        ).scalars().all()

        best = 0
        for code in codes:
            m = pattern.match(code or "")
            if m:
                best = max(best, int(m.group(1)))
        return best

    def _taken(self, code: str) -> bool:
        in_catalog = self.db.execute(
            select(Product.id).where(or_(Product.code == code, Product.product_code == code)).limit(1)
        ).first()
        return in_catalog is not None

    def _reserve(self, code: str, prefix: str) -> bool:
        self.db.add(CodeReservation(code=code, prefix=prefix, created_at=self.clock.now()))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        except OperationalError as exc:
            # Lock contention with another writer; treated like a collision
            self.db.rollback()
            logger.info("Reserving %s hit a storage conflict: %s", code, exc.orig)
            return False
        return True

    def _fallback(self, prefix: str) -> str:
        # Not PREFIX-<digits>, so it never moves the sequential maximum
        for _ in range(self.max_attempts):
            millis = int(time.time() * 1000)
            code = f"{prefix}-T{millis}-{uuid.uuid4().hex[:6].upper()}"
            if self._reserve(code, prefix):
                return code
        raise CodeAllocationError(prefix, self.max_attempts)
