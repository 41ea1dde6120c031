from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from ..config import Settings, get_settings


def database_url(settings: Settings) -> str:
    if settings.database_url.strip():
        return settings.database_url.strip()
    return (
        f"postgresql+psycopg2://{settings.postgres_user}:{settings.postgres_password}"
        f"@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}"
    )


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # Request handlers and the threadpool share connections
        return create_engine(url, future=True, connect_args={"check_same_thread": False})
    return create_engine(url, future=True, echo=False, pool_pre_ping=True)


engine = build_engine(database_url(get_settings()))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
Base = declarative_base()


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
