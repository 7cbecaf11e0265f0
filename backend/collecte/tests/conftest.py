"""
Fixtures communes : base SQLite en mémoire, règles par défaut.
"""
from decimal import Decimal

import pytest

from collecte.core.rules import CommissionRules
from collecte.database import init_db, make_engine
from collecte.models import CommissionType
from collecte.schemas import CollecteurInfo, CommissionParameter, Palier
from collecte.services.historique_guard import HistoriqueGuard


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def guard(engine):
    return HistoriqueGuard(engine)


@pytest.fixture
def rules():
    return CommissionRules.default_rules()


@pytest.fixture
def collecteur():
    return CollecteurInfo(id=1, agence_id=10, anciennete_mois=12, nom="C1")


@pytest.fixture
def paliers():
    return [
        Palier(montant_min=Decimal("0"), montant_max=Decimal("1000"), taux=Decimal("1")),
        Palier(montant_min=Decimal("1000"), montant_max=Decimal("5000"), taux=Decimal("2")),
        Palier(montant_min=Decimal("5000"), montant_max=None, taux=Decimal("3")),
    ]


@pytest.fixture
def agence_2pct():
    return CommissionParameter(id=1, type=CommissionType.PERCENTAGE, valeur=Decimal("2"), agence_id=10)
