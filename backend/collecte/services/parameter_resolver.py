"""
Résolution du paramètre de commission applicable à un client.
"""
import logging
from datetime import date
from typing import Iterable, List, Optional

from collecte.core.errors import ConfigurationError, NotFoundError
from collecte.core.normalize import normalize_code
from collecte.models import ParameterScope
from collecte.schemas import CommissionParameter

logger = logging.getLogger(__name__)


def _matches_scope(parameter: CommissionParameter, scope: ParameterScope, target_id: int) -> bool:
    if parameter.scope is not scope:
        return False
    if scope is ParameterScope.CLIENT:
        return parameter.client_id == target_id
    if scope is ParameterScope.COLLECTEUR:
        return parameter.collecteur_id == target_id
    if scope is ParameterScope.AGENCE:
        return parameter.agence_id == target_id
    raise AssertionError(f"Scope non géré: {scope}")


def _select_for_product(candidates: List[CommissionParameter],
                        code_produit: Optional[str]) -> List[CommissionParameter]:
    """
    Filtre par code produit :
    - paramètre sans code produit = tous produits
    - si un code est demandé, les paramètres de ce produit priment sur les génériques
    """
    wanted = normalize_code(code_produit)
    generic = [p for p in candidates if not normalize_code(p.code_produit)]
    if not wanted:
        return generic
    specific = [p for p in candidates if normalize_code(p.code_produit) == wanted]
    return specific or generic


def _reject_multi_scope(parametres: List[CommissionParameter], client_id: Optional[int],
                        collecteur_id: Optional[int], agence_id: Optional[int]) -> None:
    """Un paramètre rattaché à plusieurs niveaux ne peut pas être classé."""
    for p in parametres:
        if len(p.scopes) < 2:
            continue
        touches = (
            (client_id is not None and p.client_id == client_id)
            or (collecteur_id is not None and p.collecteur_id == collecteur_id)
            or (agence_id is not None and p.agence_id == agence_id)
        )
        if touches:
            raise ConfigurationError(
                f"Paramètre {p.id} : un seul scope doit être défini",
                {"parameter_id": p.id, "scopes": [s.value for s in p.scopes]},
            )


def resolve(client_id: Optional[int],
            collecteur_id: Optional[int],
            agence_id: Optional[int],
            code_produit: Optional[str],
            as_of: date,
            parametres: Iterable[CommissionParameter]) -> CommissionParameter:
    """
    Résout le paramètre applicable selon la priorité :
    1) paramètre du client
    2) paramètre du collecteur
    3) paramètre de l'agence

    Seuls les paramètres actifs et valides à as_of sont retenus. Un niveau plus
    spécifique l'emporte toujours, quelle que soit la date des paramètres.

    Lève ConfigurationError si plusieurs paramètres actifs existent au même niveau,
    NotFoundError si aucun niveau ne fournit de paramètre.
    """
    applicables = [p for p in parametres if p.is_valid_on(as_of)]
    _reject_multi_scope(applicables, client_id, collecteur_id, agence_id)

    levels = (
        (ParameterScope.CLIENT, client_id),
        (ParameterScope.COLLECTEUR, collecteur_id),
        (ParameterScope.AGENCE, agence_id),
    )
    for scope, target_id in levels:
        if target_id is None:
            continue
        candidates = [p for p in applicables if _matches_scope(p, scope, target_id)]
        candidates = _select_for_product(candidates, code_produit)
        if len(candidates) > 1:
            raise ConfigurationError(
                f"Plusieurs paramètres actifs au niveau {scope.value} ({target_id})",
                {"scope": scope.value, "target_id": target_id, "parameter_ids": [p.id for p in candidates]},
            )
        if candidates:
            logger.debug("[RESOLVE] OK - paramètre %s via %s %s", candidates[0].id, scope.value, target_id)
            return candidates[0]

    logger.warning(
        "[RESOLVE] Aucun paramètre pour client=%s collecteur=%s agence=%s produit=%s",
        client_id, collecteur_id, agence_id, code_produit,
    )
    raise NotFoundError(
        "Aucun paramètre de commission applicable",
        {"client_id": client_id, "collecteur_id": collecteur_id, "agence_id": agence_id,
         "code_produit": code_produit, "as_of": as_of.isoformat()},
    )
