from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from telehealth.core import config


def _connect_args(database_url: str) -> dict:
    # FastAPI runs sync routes in a thread pool.
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    config.DATABASE_URL,
    echo=config.DATABASE_ECHO,
    connect_args=_connect_args(config.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def init_db() -> None:
    # Import for side effect: registers every table on Base.metadata.
    from telehealth.models import appointment, availability, user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    return SessionLocal
