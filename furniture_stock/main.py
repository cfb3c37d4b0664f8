# furniture_stock/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from furniture_stock import __version__
from furniture_stock.config import settings
from furniture_stock.database import init_db
from furniture_stock.logging_setup import setup_logging

# Import routerów
from furniture_stock.routes.logs import router as logs_router
from furniture_stock.routes.products import router as products_router
from furniture_stock.routes.reports import router as reports_router
from furniture_stock.routes.scan import router as scan_router
from furniture_stock.routes.stock import router as stock_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_path = setup_logging(settings)
    init_db()
    logger.info("Furniture Stock API started (log file: %s)", log_path or "-")
    yield


app = FastAPI(title="Furniture Stock API", version=__version__, lifespan=lifespan)

# Rejestracja routerów
app.include_router(products_router)
app.include_router(stock_router)
app.include_router(scan_router)
app.include_router(reports_router)
app.include_router(logs_router)


@app.get("/")
def read_root():
    return {"message": "Furniture Stock API is running", "version": __version__}
