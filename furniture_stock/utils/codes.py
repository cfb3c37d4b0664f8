# furniture_stock/utils/codes.py
from typing import Optional


def norm_code(code: Optional[str]) -> Optional[str]:
    """Barcodes are compared trimmed and upper-cased."""
    if code is None:
        return None
    c = str(code).strip().upper()
    return c if c else None
