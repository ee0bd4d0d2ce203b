from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi import Request
from typing import Iterator

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Crée le moteur SQLAlchemy à partir de l'URL configurée
    SQLite en mémoire partage une seule connexion (tests, dev)
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """Dépendance FastAPI : une session par requête, issue de la fabrique de l'application"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
