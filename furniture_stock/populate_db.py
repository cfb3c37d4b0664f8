import random
from datetime import datetime, timedelta, timezone

from furniture_stock.config import settings
from furniture_stock.database import SessionLocal, init_db
from furniture_stock.logging_setup import setup_logging
from furniture_stock.models.log import Log
from furniture_stock.models.product import Product
from furniture_stock.models.scan import ScanEvent, ScanType
from furniture_stock.models.stock import CodeReservation, StockAdjustment
from furniture_stock.schemas.product import ProductCreate
from furniture_stock.schemas.scan import ScanCreate
from furniture_stock.services.catalog import ProductCatalog
from furniture_stock.services.scan_log import ScanEventLog
from furniture_stock.utils.clock import FixedClock

# Configuration
SEED = 42
DAYS_OF_SCANS = 14
SCANS_PER_DAY = (3, 12)
LOCATIONS = ["A1-01", "A1-02", "B2-05", "C3-10", "SHOWROOM"]

# name, category, purchase price, sale price
CATALOG = [
    ("Oslo 3-Seater Sofa", "Sofas", 1450.0, 2499.0),
    ("Bergen Corner Sofa", "Sofas", 2300.0, 3899.0),
    ("Lund Armchair", "Armchairs", 620.0, 1099.0),
    ("Malmo Recliner", "Armchairs", 890.0, 1549.0),
    ("Nordic Oak Dining Table", "Tables", 980.0, 1799.0),
    ("Aalto Coffee Table", "Tables", 240.0, 449.0),
    ("Vika Side Table", "Tables", 85.0, 159.0),
    ("Fjord Dining Chair", "Chairs", 120.0, 229.0),
    ("Tromso Bar Stool", "Chairs", 95.0, 179.0),
    ("Hemnes Double Bed", "Beds", 1100.0, 1999.0),
    ("Kiruna Bunk Bed", "Beds", 760.0, 1349.0),
    ("Pax 2-Door Wardrobe", "Storage", 870.0, 1499.0),
    ("Kallax Bookshelf", "Storage", 150.0, 289.0),
    ("Alex Chest of Drawers", "Storage", 310.0, 579.0),
    ("Linnea Floor Lamp", "Lighting", 60.0, 129.0),
    ("Skog Desk", "Office", 330.0, 599.0),
]


def clear_database(session):
    """Remove catalog, ledger, scans and audit entries."""
    session.query(StockAdjustment).delete()
    session.query(ScanEvent).delete()
    session.query(Product).delete()
    session.query(CodeReservation).delete()
    session.query(Log).delete()
    session.commit()


def load_catalog(catalog: ProductCatalog, rng: random.Random):
    products = []
    for name, category, buy, sell in CATALOG:
        products.append(catalog.create_product(ProductCreate(
            name=name,
            category=category,
            purchase_price=buy,
            sale_price=sell,
            gst_percent=23.0,
            stock=rng.randint(0, 40),
            location=rng.choice(LOCATIONS),
            description=f"{category[:-1] if category.endswith('s') else category} from the demo catalog.",
        )))
    return products


def load_scans(session, catalog: ProductCatalog, products, clock: FixedClock, rng: random.Random):
    scan_log = ScanEventLog(session, clock=clock, catalog=catalog)
    stored = 0
    for _ in range(DAYS_OF_SCANS):
        for _ in range(rng.randint(*SCANS_PER_DAY)):
            clock.advance(minutes=rng.randint(5, 90))
            product = rng.choice(products)
            scan_type = rng.choices([ScanType.SALE, ScanType.IN, ScanType.AUDIT], weights=[6, 2, 2])[0]
            quantity = rng.randint(1, 3) if scan_type != ScanType.IN else rng.randint(5, 15)

            # Sell only what is on the shelf; the scan log itself would refuse the rest
            session.refresh(product)
            if scan_type == ScanType.SALE and product.stock < quantity:
                scan_type = ScanType.IN

            scan_log.append(ScanCreate(
                code=product.code,
                quantity=quantity,
                scan_type=scan_type,
                location=product.location,
                apply_stock=True,
            ))
            stored += 1
        # next morning
        clock.set(clock.now().replace(hour=8, minute=0) + timedelta(days=1))

    # One scan of a code that is not in the catalog
    scan_log.append(ScanCreate(code="FUR-999", quantity=1, scan_type=ScanType.SALE, note="unknown label"))
    return stored + 1


def populate_database():
    """Main execution function to populate database."""
    setup_logging(settings)
    init_db()

    rng = random.Random(SEED)
    start = datetime.now(timezone.utc).replace(hour=8, minute=0, second=0, microsecond=0)
    clock = FixedClock(start - timedelta(days=DAYS_OF_SCANS))

    session = SessionLocal()
    try:
        clear_database(session)
        catalog = ProductCatalog(session, clock=clock)

        print(f"Inserting {len(CATALOG)} products...")
        products = load_catalog(catalog, rng)

        print("Products inserted. Recording scans...")
        count = load_scans(session, catalog, products, clock, rng)
        print(f"Recorded {count} scans over {DAYS_OF_SCANS} days.")
    finally:
        session.close()


def main():
    populate_database()


if __name__ == "__main__":
    main()
