"""
Tests pour la résolution des paramètres (client > collecteur > agence).
"""
from datetime import date
from decimal import Decimal

import pytest

from collecte.core.errors import ConfigurationError, NotFoundError
from collecte.models import CommissionType
from collecte.schemas import CommissionParameter
from collecte.services.parameter_resolver import resolve

AS_OF = date(2025, 1, 31)


def _pct(param_id, valeur, **scope):
    return CommissionParameter(id=param_id, type=CommissionType.PERCENTAGE, valeur=Decimal(valeur), **scope)


def test_resolve_priority_client_first():
    """Le paramètre du client l'emporte sur collecteur et agence"""
    parametres = [_pct(1, "1", agence_id=10), _pct(2, "2", collecteur_id=1), _pct(3, "3", client_id=101)]
    assert resolve(101, 1, 10, None, AS_OF, parametres).id == 3


def test_resolve_priority_collecteur_then_agence():
    """Sans paramètre client : collecteur, puis agence"""
    parametres = [_pct(1, "1", agence_id=10), _pct(2, "2", collecteur_id=1)]
    assert resolve(101, 1, 10, None, AS_OF, parametres).id == 2
    assert resolve(101, 2, 10, None, AS_OF, parametres).id == 1


def test_resolve_ignores_inactive_and_expired():
    """Paramètres inactifs ou hors validité ignorés"""
    parametres = [
        _pct(1, "1", agence_id=10),
        CommissionParameter(id=2, type=CommissionType.PERCENTAGE, valeur=Decimal("2"), client_id=101, actif=False),
        CommissionParameter(
            id=3, type=CommissionType.PERCENTAGE, valeur=Decimal("3"), collecteur_id=1,
            date_debut=date(2024, 1, 1), date_fin=date(2024, 12, 31),
        ),
    ]
    assert resolve(101, 1, 10, None, AS_OF, parametres).id == 1


def test_resolve_ambiguous_level():
    """Deux paramètres actifs au même niveau -> ConfigurationError"""
    parametres = [_pct(1, "1", client_id=101), _pct(2, "2", client_id=101)]
    with pytest.raises(ConfigurationError) as exc:
        resolve(101, 1, 10, None, AS_OF, parametres)
    assert exc.value.details["parameter_ids"] == [1, 2]


def test_resolve_not_found():
    """Aucun niveau ne fournit de paramètre -> NotFoundError"""
    with pytest.raises(NotFoundError):
        resolve(101, 1, 10, None, AS_OF, [_pct(1, "1", agence_id=99)])


def test_resolve_product_specific_over_generic():
    """Un paramètre du produit demandé prime sur le générique du même niveau"""
    parametres = [
        _pct(1, "1", agence_id=10),
        CommissionParameter(
            id=2, type=CommissionType.PERCENTAGE, valeur=Decimal("2"), agence_id=10, code_produit="EPJ",
        ),
    ]
    assert resolve(101, 1, 10, "epj", AS_OF, parametres).id == 2
    assert resolve(101, 1, 10, "AUTRE", AS_OF, parametres).id == 1
    assert resolve(101, 1, 10, None, AS_OF, parametres).id == 1


def test_resolve_multi_scope_parameter():
    """Paramètre rattaché à deux niveaux -> ConfigurationError, pas ignoré"""
    parametres = [
        _pct(1, "1", agence_id=10),
        CommissionParameter(id=2, type=CommissionType.PERCENTAGE, valeur=Decimal("2"), client_id=101, agence_id=10),
    ]
    with pytest.raises(ConfigurationError) as exc:
        resolve(101, 1, 10, None, AS_OF, parametres)
    assert exc.value.details["parameter_id"] == 2

    # Sans lien avec le client, le collecteur ou l'agence demandés : sans effet
    assert resolve(102, 1, 20, None, AS_OF, parametres + [_pct(3, "3", agence_id=20)]).id == 3
