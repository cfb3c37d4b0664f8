# furniture_stock/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from furniture_stock.config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# Hosted Postgres URLs still use the legacy scheme, SQLAlchemy requires postgresql://
if SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def make_engine(url: str):
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False} # Only for SQLite
    else:
        connect_args = {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every model on Base.metadata before creating tables
    import furniture_stock.models.product  # noqa: F401
    import furniture_stock.models.stock  # noqa: F401
    import furniture_stock.models.scan  # noqa: F401
    import furniture_stock.models.log  # noqa: F401

    Base.metadata.create_all(bind=engine)
