"""
Rémunération par rubriques (Vi) à partir de S.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from collecte.core.errors import ValidationError
from collecte.core.normalize import ZERO, round_money, sanitize_amount
from collecte.core.rules import CommissionRules
from collecte.schemas import Mouvement, RemunerationResult, RubriqueContribution, RubriqueRemuneration
from collecte.services.commission_distributor import COMPTE_PASSAGE_COMMISSION

logger = logging.getLogger(__name__)

COMPTE_CHARGE_COLLECTE = "CCC"  # C.C.C


def compte_salaire(collecteur_id: int) -> str:
    return f"SALAIRE:{collecteur_id}"


def applicable_rubriques(collecteur_id: int,
                         rubriques: Iterable[RubriqueRemuneration],
                         as_of: date) -> List[RubriqueRemuneration]:
    """Rubriques actives, valides à as_of et affectées au collecteur."""
    return [
        r for r in rubriques
        if r.is_currently_valid(as_of) and r.applies_to(collecteur_id)
    ]


def build_payout_movements(collecteur_id: int,
                           montant_s: Decimal,
                           contributions: List[RubriqueContribution]) -> List[Mouvement]:
    """
    Versement des Vi au compte salaire du collecteur :
    - tant que S restant couvre Vi : débit C.P.C.C
    - sinon : débit C.P.C.C du restant, complément débité du C.C.C
    """
    mouvements = []
    restant = montant_s
    for contribution in contributions:
        vi = contribution.montant
        if vi <= ZERO:
            continue
        depuis_s = min(vi, restant)
        if depuis_s > ZERO:
            mouvements.append(Mouvement(
                compte_debit=COMPTE_PASSAGE_COMMISSION,
                compte_credit=compte_salaire(collecteur_id),
                montant=depuis_s,
                libelle=f"Rémunération - {contribution.nom}",
            ))
        complement = vi - depuis_s
        if complement > ZERO:
            mouvements.append(Mouvement(
                compte_debit=COMPTE_CHARGE_COLLECTE,
                compte_credit=compte_salaire(collecteur_id),
                montant=complement,
                libelle=f"Rémunération - {contribution.nom} (complément C.C.C)",
            ))
        restant -= depuis_s
    return mouvements


def process(collecteur_id: int,
            montant_s: Any,
            rubriques: Iterable[RubriqueRemuneration],
            as_of: date,
            rules: Optional[CommissionRules] = None) -> RemunerationResult:
    """
    Calcule la rémunération par rubriques d'un collecteur.

    Vi = valeur (CONSTANT) ou S * valeur / 100 (PERCENTAGE), toujours sur S initial.
    montant_emf = total Vi * emf_rate ; montant_tva = montant_emf * tva_rate.
    Aucune rubrique applicable donne un total nul, sans erreur.
    """
    rules = rules or CommissionRules.default_rules()
    s = sanitize_amount(montant_s, field="montant_s")
    if s < ZERO:
        raise ValidationError(f"S doit être positif ou nul: {s}", {"collecteur_id": collecteur_id})

    retenues = applicable_rubriques(collecteur_id, rubriques, as_of)
    logger.info("[RUBRIQUE] Collecteur %s - %s rubrique(s) applicable(s), S=%s", collecteur_id, len(retenues), s)

    contributions = []
    for rubrique in retenues:
        vi = rubrique.calculate_vi(s)
        logger.debug("[RUBRIQUE] '%s' (%s) - Vi: %s", rubrique.nom, rubrique.format_valeur(), vi)
        contributions.append(RubriqueContribution(
            rubrique_id=rubrique.id,
            nom=rubrique.nom,
            type=rubrique.type,
            valeur=rubrique.valeur,
            montant=vi,
        ))

    total_vi = sum((c.montant for c in contributions), ZERO)
    montant_emf = round_money(total_vi * rules.emf_rate)
    montant_tva = round_money(montant_emf * rules.tva_rate)

    return RemunerationResult(
        collecteur_id=collecteur_id,
        montant_s_initial=s,
        contributions=contributions,
        total_rubriques_vi=total_vi,
        montant_emf=montant_emf,
        montant_tva=montant_tva,
        mouvements=build_payout_movements(collecteur_id, s, contributions),
    )
