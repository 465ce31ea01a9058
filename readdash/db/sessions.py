import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from readdash.core.config import settings

logger = logging.getLogger("readdash.db.session")
if not logging.getLogger().handlers:
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

DATABASE_URL = settings.DATABASE_URL

if not DATABASE_URL:
    logger.error("DATABASE_URL is not configured; the document store has no backing database")
    raise RuntimeError("DATABASE_URL is not configured. Set the DATABASE_URL env var.")

_url = make_url(DATABASE_URL)
logger.info("Document store backend: %s", _url.get_backend_name())

# SQLite connections are shared with FastAPI's threadpool
connect_args = {"check_same_thread": False} if _url.get_backend_name() == "sqlite" else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
