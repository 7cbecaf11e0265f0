"""
Normalisation des montants et des codes.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from collecte.core.errors import ValidationError

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def round_money(value: Decimal) -> Decimal:
    """Arrondi au centime, demi supérieur."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _finite(montant: Decimal, value: Any, field: str) -> Decimal:
    if not montant.is_finite():
        raise ValidationError(f"{field} non fini: {value!r}", {"field": field})
    return montant


def sanitize_amount(value: Any, field: str = "montant") -> Decimal:
    """
    Convertit un montant en Decimal :
    - Decimal et int conservés tels quels
    - float converti via sa représentation texte (pas de dérive binaire)
    - chaîne nettoyée : FCFA, espaces, virgule décimale

    Lève ValidationError si la conversion est impossible ou si le montant
    n'est pas fini (NaN, infini).
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} invalide: {value!r}", {"field": field})
    if value is None:
        raise ValidationError(f"{field} manquant", {"field": field})
    if isinstance(value, Decimal):
        return _finite(value, value, field)
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return _finite(Decimal(repr(value)), value, field)

    s = str(value).strip()
    s = s.upper().replace("FCFA", "").replace("XAF", "")
    s = s.replace(" ", "").replace("\xa0", "").replace(" ", "")
    # Format français : virgule décimale
    s = s.replace(",", ".")
    s = re.sub(r"[^\d.\-]", "", s)

    try:
        montant = Decimal(s)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} invalide: {value!r}", {"field": field})
    return _finite(montant, value, field)


def normalize_code(value: Optional[str]) -> str:
    """Normalise un code (produit, compte) pour la comparaison : trim, majuscules."""
    if not value:
        return ""
    return value.strip().upper()
