"""
Calcul de la commission d'un client : base, TVA, net.
"""
import logging
from decimal import Decimal
from typing import Any

from collecte.core.errors import ConfigurationError, ValidationError
from collecte.core.normalize import HUNDRED, ZERO, round_money, sanitize_amount
from collecte.core.rules import CommissionRules
from collecte.models import CommissionType
from collecte.schemas import CommissionCalculation, CommissionParameter
from collecte.services.tier_engine import find_palier, validate_paliers

logger = logging.getLogger(__name__)


def compute_commission_base(montant: Decimal, parameter: CommissionParameter, rules: CommissionRules):
    """
    Retourne (commission_base, taux_applique) selon le type du paramètre.

    FIXED : valeur plafonnée à rules.plafond_commission_fixe (taux None)
    PERCENTAGE : montant * valeur / 100
    TIER : montant * taux du palier / 100
    """
    if parameter.type is CommissionType.FIXED:
        if parameter.valeur is None:
            raise ConfigurationError("Paramètre FIXED sans valeur", {"parameter_id": parameter.id})
        base = min(parameter.valeur, rules.plafond_commission_fixe)
        if base < parameter.valeur:
            logger.warning(
                "[CALCUL] Commission fixe %s plafonnée à %s (paramètre %s)",
                parameter.valeur, rules.plafond_commission_fixe, parameter.id,
            )
        return round_money(base), None

    if parameter.type is CommissionType.PERCENTAGE:
        if parameter.valeur is None:
            raise ConfigurationError("Paramètre PERCENTAGE sans valeur", {"parameter_id": parameter.id})
        return round_money(montant * parameter.valeur / HUNDRED), parameter.valeur

    if parameter.type is CommissionType.TIER:
        validate_paliers(parameter.paliers)
        palier = find_palier(montant, parameter.paliers)
        return round_money(montant * palier.taux / HUNDRED), palier.taux

    raise AssertionError(f"Type de commission non géré: {parameter.type}")


def calculate(montant_collecte: Any, parameter: CommissionParameter, rules: CommissionRules,
              client_id: int = 0) -> CommissionCalculation:
    """
    Calcule la commission d'un montant collecté.

    La TVA est arrondie au centime (demi supérieur) sur chaque ligne.
    Lève ValidationError si le montant est négatif ou nul.
    """
    montant = sanitize_amount(montant_collecte, field="montant_collecte")
    if montant <= ZERO:
        raise ValidationError(
            f"Le montant collecté doit être strictement positif: {montant}",
            {"client_id": client_id, "montant_collecte": str(montant)},
        )

    base, taux = compute_commission_base(montant, parameter, rules)
    tva = round_money(base * rules.tva_rate)

    logger.debug(
        "[CALCUL] client=%s montant=%s type=%s base=%s tva=%s",
        client_id, montant, parameter.type.value, base, tva,
    )

    return CommissionCalculation(
        client_id=client_id,
        montant_collecte=montant,
        commission_base=base,
        tva=tva,
        commission_net=base - tva,
        type_commission=parameter.type,
        valeur_parametre=parameter.valeur,
        taux_applique=taux,
        parameter_id=parameter.id,
        scope=parameter.scope,
    )
