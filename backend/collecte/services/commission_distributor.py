"""
Répartition des commissions d'un collecteur entre collecteur, EMF et taxes.
"""
import logging
from datetime import date
from decimal import Decimal
from functools import reduce
from typing import List, NamedTuple, Optional, Sequence

from collecte.core.normalize import ZERO, round_money
from collecte.core.rules import CommissionRules
from collecte.schemas import CommissionCalculation, CommissionDistribution, Mouvement

logger = logging.getLogger(__name__)

# Comptes comptables
COMPTE_PASSAGE_COMMISSION = "CPCC"   # Compte de passage commission collecte
COMPTE_PASSAGE_TAXE = "CPT"          # Compte de passage taxe
COMPTE_PRODUIT_EMF = "PRODUIT_EMF"
COMPTE_TAXE = "TAXE"


def compte_client(client_id: int) -> str:
    return f"CLIENT:{client_id}"


def compte_remuneration(collecteur_id: int) -> str:
    return f"REMUNERATION:{collecteur_id}"


def compte_charge(collecteur_id: int) -> str:
    return f"CHARGE:{collecteur_id}"


class CommissionTotals(NamedTuple):
    total_commissions: Decimal
    total_tva: Decimal


def sum_calculations(calculations: Sequence[CommissionCalculation]) -> CommissionTotals:
    """Somme exacte (décimale) des bases et des TVA."""
    return reduce(
        lambda acc, calc: CommissionTotals(
            acc.total_commissions + calc.commission_base,
            acc.total_tva + calc.tva,
        ),
        calculations,
        CommissionTotals(ZERO, ZERO),
    )


def _mouvement(debit: str, credit: str, montant: Decimal, libelle: str) -> Optional[Mouvement]:
    if montant <= ZERO:
        return None
    return Mouvement(compte_debit=debit, compte_credit=credit, montant=montant, libelle=libelle)


def build_movements(collecteur_id: int,
                    calculations: Sequence[CommissionCalculation],
                    remuneration: Decimal,
                    part_emf: Decimal,
                    tva_emf: Decimal,
                    deficit: Decimal) -> List[Mouvement]:
    """
    Écritures de la répartition :
    - client → C.P.C.C (commission) et client → C.P.T (TVA)
    - C.P.C.C → rémunération collecteur (complément depuis le compte de charge si déficit)
    - C.P.C.C → produit EMF (net de TVA) et C.P.C.C → taxe (TVA sur part EMF)
    """
    mouvements = []
    for calc in calculations:
        mouvements.append(_mouvement(
            compte_client(calc.client_id), COMPTE_PASSAGE_COMMISSION, calc.commission_base,
            f"Commission collecte - Client {calc.client_id}",
        ))
        mouvements.append(_mouvement(
            compte_client(calc.client_id), COMPTE_PASSAGE_TAXE, calc.tva,
            f"TVA commission - Client {calc.client_id}",
        ))

    mouvements.append(_mouvement(
        COMPTE_PASSAGE_COMMISSION, compte_remuneration(collecteur_id), remuneration - deficit,
        "Rémunération collecteur",
    ))
    mouvements.append(_mouvement(
        compte_charge(collecteur_id), compte_remuneration(collecteur_id), deficit,
        "Complément rémunération depuis compte charge",
    ))
    mouvements.append(_mouvement(
        COMPTE_PASSAGE_COMMISSION, COMPTE_PRODUIT_EMF, part_emf - tva_emf,
        "Part EMF (net de TVA)",
    ))
    mouvements.append(_mouvement(
        COMPTE_PASSAGE_COMMISSION, COMPTE_TAXE, tva_emf,
        "TVA sur part EMF",
    ))
    return [m for m in mouvements if m is not None]


def distribute(collecteur_id: int,
               calculations: Sequence[CommissionCalculation],
               rules: CommissionRules,
               is_nouveau_collecteur: bool,
               date_debut: Optional[date] = None,
               date_fin: Optional[date] = None) -> CommissionDistribution:
    """
    Répartit les commissions d'un collecteur sur une période.

    - collecteur expérimenté : total_commissions * collecteur_rate
    - nouveau collecteur : montant fixe des règles, quel que soit le total
    - part EMF : reliquat total_commissions - rémunération (jamais négatif) ;
      un déficit éventuel est financé par le compte de charge
    - TVA EMF : part EMF * tva_rate
    """
    totals = sum_calculations(calculations)

    if is_nouveau_collecteur:
        remuneration = rules.nouveau_collecteur_montant
        logger.info("[DISTRIBUTION] Collecteur %s nouveau - rémunération fixe: %s", collecteur_id, remuneration)
    else:
        remuneration = round_money(totals.total_commissions * rules.collecteur_rate)
        logger.info("[DISTRIBUTION] Collecteur %s - rémunération (%s): %s",
                    collecteur_id, rules.collecteur_rate, remuneration)

    part_emf = max(totals.total_commissions - remuneration, ZERO)
    deficit = max(remuneration - totals.total_commissions, ZERO)
    tva_emf = round_money(part_emf * rules.tva_rate)

    return CommissionDistribution(
        collecteur_id=collecteur_id,
        date_debut=date_debut,
        date_fin=date_fin,
        calculations=list(calculations),
        total_commissions=totals.total_commissions,
        total_tva=totals.total_tva,
        remuneration_collecteur=remuneration,
        part_emf=part_emf,
        tva_emf=tva_emf,
        deficit_charge=deficit,
        nouveau_collecteur=is_nouveau_collecteur,
        mouvements=build_movements(collecteur_id, calculations, remuneration, part_emf, tva_emf, deficit),
    )
