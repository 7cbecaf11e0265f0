"""
Configuration de la base de données.
"""
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from collecte import models  # noqa: F401  (enregistre les tables)
from collecte.config import get_database_url


def make_engine(database_url: Optional[str] = None) -> Engine:
    """Crée un moteur ; check_same_thread uniquement pour SQLite."""
    url = database_url or get_database_url()
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Base en mémoire partagée par toutes les sessions
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False)


engine = make_engine()


def init_db(target: Optional[Engine] = None) -> None:
    """Crée les tables si elles n'existent pas."""
    SQLModel.metadata.create_all(target or engine, checkfirst=True)


def get_session():
    """Retourne une session de base de données."""
    with Session(engine) as session:
        yield session
