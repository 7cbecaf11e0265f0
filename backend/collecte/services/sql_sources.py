"""
Chargement des paramètres et rubriques depuis la base.

Les objets retournés sont entièrement peuplés (paliers, collecteurs) :
le moteur ne dépend jamais d'un chargement paresseux.
"""
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from collecte.models import ParametreCommission, Rubrique
from collecte.schemas import CommissionParameter, Palier, RubriqueRemuneration

logger = logging.getLogger(__name__)


def to_commission_parameter(row: ParametreCommission) -> CommissionParameter:
    paliers = sorted(row.paliers or [], key=lambda p: p.montant_min)
    return CommissionParameter(
        id=row.id,
        type=row.type,
        valeur=row.valeur,
        paliers=[Palier(montant_min=p.montant_min, montant_max=p.montant_max, taux=p.taux) for p in paliers],
        actif=row.actif,
        date_debut=row.date_debut,
        date_fin=row.date_fin,
        code_produit=row.code_produit,
        client_id=row.client_id,
        collecteur_id=row.collecteur_id,
        agence_id=row.agence_id,
    )


def to_rubrique(row: Rubrique) -> RubriqueRemuneration:
    return RubriqueRemuneration(
        id=row.id,
        nom=row.nom,
        type=row.type,
        valeur=row.valeur,
        date_application=row.date_application,
        delai_jours=row.delai_jours,
        collecteur_ids=row.get_collecteur_ids(),
        active=row.active,
    )


def load_parametres(session: Session,
                    client_id: Optional[int] = None,
                    collecteur_id: Optional[int] = None,
                    agence_id: Optional[int] = None) -> List[CommissionParameter]:
    """
    Charge les paramètres actifs rattachés au client, au collecteur ou à l'agence.
    La sélection par priorité et par date est faite par le résolveur.
    """
    conditions = []
    if client_id is not None:
        conditions.append(ParametreCommission.client_id == client_id)
    if collecteur_id is not None:
        conditions.append(ParametreCommission.collecteur_id == collecteur_id)
    if agence_id is not None:
        conditions.append(ParametreCommission.agence_id == agence_id)
    if not conditions:
        return []

    statement = (
        select(ParametreCommission)
        .where(ParametreCommission.actif == True)  # noqa: E712
        .where(or_(*conditions))
        .options(selectinload(ParametreCommission.paliers))
    )
    rows = session.exec(statement).all()
    logger.debug("[SOURCE] %s paramètre(s) chargé(s) (client=%s collecteur=%s agence=%s)",
                 len(rows), client_id, collecteur_id, agence_id)
    return [to_commission_parameter(row) for row in rows]


def load_rubriques(session: Session, collecteur_id: int) -> List[RubriqueRemuneration]:
    """Charge les rubriques actives affectées au collecteur."""
    statement = select(Rubrique).where(Rubrique.active == True)  # noqa: E712
    rubriques = [to_rubrique(row) for row in session.exec(statement).all()]
    return [r for r in rubriques if r.applies_to(collecteur_id)]
