"""
Configuration : variables d'environnement et fichier .env.
"""
import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from collecte.core.errors import ConfigurationError
from collecte.core.rules import (
    DEFAULT_EMF_RATE,
    DEFAULT_NOUVEAU_COLLECTEUR_DUREE_MOIS,
    DEFAULT_NOUVEAU_COLLECTEUR_MONTANT,
    DEFAULT_PLAFOND_COMMISSION_FIXE,
    DEFAULT_TVA_RATE,
    CommissionRules,
)

logger = logging.getLogger(__name__)

# .env situé dans le dossier backend/ (un niveau au-dessus de collecte/)
ENV_PATH = Path(__file__).parent.parent / ".env"

DEFAULT_DATABASE_URL = "sqlite:///./collecte_commissions.db"


@dataclass(frozen=True)
class Settings:
    database_url: str
    rules: CommissionRules


def _read_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return Decimal(raw.replace(",", "."))
    except InvalidOperation:
        raise ConfigurationError(f"{name} n'est pas un nombre décimal: {raw!r}", {"variable": name})


def _read_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} n'est pas un entier: {raw!r}", {"variable": name})


def get_database_url() -> str:
    """
    URL de la base :
    - DATABASE_URL défini (PostgreSQL) : driver pg8000
    - sinon SQLite local
    """
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        return DEFAULT_DATABASE_URL
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return url.replace(prefix, "postgresql+pg8000://", 1)
    return url


def load_rules() -> CommissionRules:
    """Règles de commission depuis l'environnement (valeurs par défaut sinon)."""
    rules = CommissionRules(
        tva_rate=_read_decimal("COMMISSION_TVA_RATE", DEFAULT_TVA_RATE),
        emf_rate=_read_decimal("COMMISSION_EMF_RATE", DEFAULT_EMF_RATE),
        nouveau_collecteur_montant=_read_decimal(
            "COMMISSION_NOUVEAU_COLLECTEUR_MONTANT", DEFAULT_NOUVEAU_COLLECTEUR_MONTANT
        ),
        nouveau_collecteur_duree_mois=_read_int(
            "COMMISSION_NOUVEAU_COLLECTEUR_DUREE_MOIS", DEFAULT_NOUVEAU_COLLECTEUR_DUREE_MOIS
        ),
        plafond_commission_fixe=_read_decimal("COMMISSION_PLAFOND_FIXE", DEFAULT_PLAFOND_COMMISSION_FIXE),
    )
    logger.debug("[CONFIG] TVA=%s EMF=%s collecteur=%s", rules.tva_rate, rules.emf_rate, rules.collecteur_rate)
    return rules


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """Charge le .env (sans écraser l'environnement) puis construit la configuration."""
    load_dotenv(env_path or ENV_PATH)
    return Settings(database_url=get_database_url(), rules=load_rules())
