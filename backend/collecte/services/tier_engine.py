"""
Moteur de paliers (tiers) des paramètres de commission.
"""
from decimal import Decimal
from typing import List, Sequence

from collecte.core.errors import ConfigurationError, ValidationError
from collecte.core.normalize import HUNDRED, ZERO
from collecte.schemas import Palier


def check_paliers(paliers: Sequence[Palier]) -> List[str]:
    """
    Retourne les erreurs de forme d'un barème (liste vide si valide) :
    - au moins un palier
    - min < max, taux dans [0, 100]
    - ordre croissant, sans chevauchement
    - seul le dernier palier peut être sans plafond
    """
    errors = []
    if not paliers:
        return ["Au moins un palier est requis pour le type TIER"]

    for i, palier in enumerate(paliers):
        if palier.montant_min < ZERO:
            errors.append(f"Palier {i + 1}: montant minimum négatif ({palier.montant_min})")
        if palier.montant_max is not None and palier.montant_min >= palier.montant_max:
            errors.append(
                f"Palier {i + 1}: min ({palier.montant_min}) >= max ({palier.montant_max})"
            )
        if palier.taux < ZERO or palier.taux > HUNDRED:
            errors.append(f"Palier {i + 1}: taux invalide {palier.taux} % (doit être entre 0 et 100)")
        if palier.montant_max is None and i < len(paliers) - 1:
            errors.append(f"Palier {i + 1}: seul le dernier palier peut être sans plafond")

    for current, following in zip(paliers, paliers[1:]):
        if following.montant_min < current.montant_min:
            errors.append(
                f"Paliers non triés: {following.montant_min} après {current.montant_min}"
            )
        elif current.montant_max is not None and current.montant_max > following.montant_min:
            errors.append(
                f"Chevauchement entre paliers {current.range_description} et {following.range_description}"
            )
    return errors


def find_gaps(paliers: Sequence[Palier]) -> List[str]:
    """Trous entre paliers consécutifs (max du précédent < min du suivant)."""
    gaps = []
    for current, following in zip(paliers, paliers[1:]):
        if current.montant_max is not None and current.montant_max < following.montant_min:
            gaps.append(f"Aucun palier entre {current.montant_max} et {following.montant_min}")
    return gaps


def validate_paliers(paliers: Sequence[Palier]) -> None:
    """Lève ValidationError si le barème est mal formé, ConfigurationError s'il a des trous."""
    errors = check_paliers(paliers)
    if errors:
        raise ValidationError("Barème de paliers invalide", {"errors": errors})
    gaps = find_gaps(paliers)
    if gaps:
        raise ConfigurationError("Barème de paliers incomplet", {"errors": gaps})


def find_palier(montant: Decimal, paliers: Sequence[Palier]) -> Palier:
    """
    Retourne le premier palier dont [min, max) contient le montant.

    Les paliers sont parcourus dans l'ordre fourni (croissant).
    Lève ConfigurationError si aucun palier ne couvre le montant.
    """
    for palier in paliers:
        if palier.contains(montant):
            return palier

    raise ConfigurationError(
        f"Aucun palier applicable pour le montant {montant}",
        {"montant": str(montant), "paliers": [p.range_description for p in paliers]},
    )
