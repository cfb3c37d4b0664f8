# furniture_stock/logging_setup.py
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(settings) -> Optional[Path]:
    """Configure root logging once; adds a rotating file handler when LOG_FILE is set."""
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    fmt = logging.Formatter(_FORMAT)

    logger = logging.getLogger()  # root
    logger.setLevel(level)

    # avoid duplicate handlers on reload
    if not any(getattr(h, "_furniture_stock", False) for h in logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(fmt)
        stream._furniture_stock = True
        logger.addHandler(stream)

    log_path = None
    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if not any(getattr(h, "baseFilename", "") == str(log_path.resolve()) for h in logger.handlers):
            handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
            )
            handler.setFormatter(fmt)
            handler.setLevel(level)
            logger.addHandler(handler)

    # uvicorn installs its own handlers; let its records reach ours instead
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True

    return log_path
