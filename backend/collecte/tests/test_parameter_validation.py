"""
Tests pour la validation des paramètres de commission.
"""
from datetime import date
from decimal import Decimal

import pytest

from collecte.core.errors import ConfigurationError, ValidationError
from collecte.models import CommissionType
from collecte.schemas import CommissionParameter, Palier
from collecte.services.parameter_validation import validate_parameter

TODAY = date(2025, 6, 1)


def test_valid_percentage():
    """Pourcentage raisonnable -> ni erreur ni avertissement"""
    parameter = CommissionParameter(type=CommissionType.PERCENTAGE, valeur=Decimal("2"), agence_id=10)
    report = validate_parameter(parameter, today=TODAY)

    assert report.is_valid
    assert report.warnings == []
    report.ensure_valid()


def test_high_percentage_warning():
    """Pourcentage > 20 -> avertissement seulement"""
    parameter = CommissionParameter(type=CommissionType.PERCENTAGE, valeur=Decimal("25"), agence_id=10)
    report = validate_parameter(parameter, today=TODAY)

    assert report.is_valid
    assert report.warnings == ["Pourcentage élevé: 25 %"]


def test_percentage_out_of_range():
    """Pourcentage > 100 -> ValidationError"""
    parameter = CommissionParameter(type=CommissionType.PERCENTAGE, valeur=Decimal("150"), agence_id=10)
    report = validate_parameter(parameter, today=TODAY)

    assert not report.is_valid
    with pytest.raises(ValidationError):
        report.ensure_valid()


def test_scope_required_and_unique():
    """Aucun scope ou plusieurs scopes -> erreur"""
    aucun = CommissionParameter(type=CommissionType.FIXED, valeur=Decimal("100"))
    deux = CommissionParameter(type=CommissionType.FIXED, valeur=Decimal("100"), client_id=1, agence_id=10)

    assert not validate_parameter(aucun, today=TODAY).is_valid
    assert validate_parameter(deux, today=TODAY).errors == ["Un seul scope doit être défini"]


def test_fixed_above_cap_warning(rules):
    """Montant fixe au-dessus du plafond -> avertissement"""
    parameter = CommissionParameter(type=CommissionType.FIXED, valeur=Decimal("2000000"), client_id=1)
    report = validate_parameter(parameter, rules, today=TODAY)

    assert report.is_valid
    assert len(report.warnings) == 1


def test_tier_gap_is_configuration_error():
    """Barème avec trou -> ConfigurationError"""
    parameter = CommissionParameter(
        type=CommissionType.TIER,
        collecteur_id=1,
        paliers=[
            Palier(montant_min=Decimal("0"), montant_max=Decimal("1000"), taux=Decimal("1")),
            Palier(montant_min=Decimal("1500"), montant_max=None, taux=Decimal("2")),
        ],
    )
    report = validate_parameter(parameter, today=TODAY)

    assert report.errors == []
    assert report.gaps
    with pytest.raises(ConfigurationError):
        report.ensure_valid()


def test_tier_without_paliers():
    """TIER sans palier -> erreur"""
    parameter = CommissionParameter(type=CommissionType.TIER, collecteur_id=1)
    assert not validate_parameter(parameter, today=TODAY).is_valid


def test_dates():
    """Dates inversées -> erreur ; paramètre expiré -> avertissement"""
    inverse = CommissionParameter(
        type=CommissionType.FIXED, valeur=Decimal("100"), client_id=1,
        date_debut=date(2025, 3, 1), date_fin=date(2025, 1, 1),
    )
    expire = CommissionParameter(
        type=CommissionType.FIXED, valeur=Decimal("100"), client_id=1,
        date_debut=date(2024, 1, 1), date_fin=date(2024, 12, 31),
    )

    assert not validate_parameter(inverse, today=TODAY).is_valid
    report = validate_parameter(expire, today=TODAY)
    assert report.is_valid
    assert report.warnings == ["Ce paramètre est expiré"]
