from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, declarative_base

from ..app.config import Config
from ..utils.logger import get_logger

logger = get_logger()

DATABASE_URL = Config.DATABASE_URL


def make_engine(url: str = DATABASE_URL):
    """Create an engine; SQLite connections may be shared across worker threads."""
    if not url.startswith("sqlite"):
        return create_engine(url)
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every thread sees its own empty database
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, connect_args={"check_same_thread": False})


engine = make_engine()

# Session factory used by the stores unless a test supplies its own
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def create_tables(bind=None):
    """Create the knowledge base and fact tables if they do not exist yet."""
    # models must be imported so they register on Base.metadata
    from .models import KnowledgeEntryRecord, FactRowRecord
    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.debug("[DB] tables ready on %s", target.url)

if __name__ == "__main__":
    create_tables()
    print(f"Database tables created at {DATABASE_URL}")
