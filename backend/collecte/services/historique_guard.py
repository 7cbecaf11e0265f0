"""
Garde d'historique : idempotence des calculs et des rémunérations.

Cycle de vie d'un lot (collecteur, période) :
    CALCULE → VALIDE → PAYE, avec un indicateur remunere (false → true)
    positionné une seule fois par le traitement des rubriques.
Un recalcul forcé passe les lots chevauchants au statut ANNULE.

Les vérifications « check-and-set » reposent sur la base :
- index unique partiel (collecteur_id, date_debut, date_fin) hors ANNULE
- UPDATE conditionnel WHERE remunere = false, nombre de lignes vérifié
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from collecte.core.errors import (
    AlreadyProcessedError,
    AlreadyRemuneratedError,
    NotFoundError,
    ValidationError,
)
from collecte.models import HistoriqueCalculCommission, HistoriqueRemuneration, StatutCalcul, utcnow
from collecte.schemas import CommissionDistribution, RemunerationResult

logger = logging.getLogger(__name__)

Historique = HistoriqueCalculCommission


class HistoriqueGuard:
    """Collaborateur de stockage des historiques de calcul et de rémunération."""

    def __init__(self, engine: Optional[Engine] = None):
        if engine is None:
            from collecte.database import engine as default_engine
            engine = default_engine
        self.engine = engine

    # ------------------------------------------------------------------
    # Lecture
    # ------------------------------------------------------------------

    def get(self, historique_id: int) -> HistoriqueCalculCommission:
        with Session(self.engine) as session:
            historique = session.get(Historique, historique_id)
            if historique is None:
                raise NotFoundError(f"Historique {historique_id} introuvable", {"historique_id": historique_id})
            return historique

    def list_for_collecteur(self, collecteur_id: int, include_annules: bool = False) -> List[HistoriqueCalculCommission]:
        with Session(self.engine) as session:
            statement = select(Historique).where(Historique.collecteur_id == collecteur_id)
            if not include_annules:
                statement = statement.where(Historique.statut != StatutCalcul.ANNULE)
            statement = statement.order_by(Historique.date_debut, Historique.id)
            return list(session.exec(statement).all())

    def get_remuneration(self, historique_id: int) -> Optional[HistoriqueRemuneration]:
        with Session(self.engine) as session:
            statement = select(HistoriqueRemuneration).where(
                HistoriqueRemuneration.historique_calcul_id == historique_id
            )
            return session.exec(statement).first()

    # ------------------------------------------------------------------
    # Calcul
    # ------------------------------------------------------------------

    def _overlapping(self, session: Session, collecteur_id: int,
                     date_debut: date, date_fin: date) -> List[HistoriqueCalculCommission]:
        statement = select(Historique).where(
            Historique.collecteur_id == collecteur_id,
            Historique.statut != StatutCalcul.ANNULE,
            Historique.date_debut <= date_fin,
            Historique.date_fin >= date_debut,
        )
        return list(session.exec(statement).all())

    def _check_period(self, session: Session, collecteur_id: int, date_debut: date,
                      date_fin: date, force_recalcul: bool) -> List[int]:
        """Retourne les ids des lots à remplacer (recalcul forcé) ou lève."""
        if date_debut > date_fin:
            raise ValidationError(
                f"Période invalide: {date_debut} > {date_fin}",
                {"date_debut": date_debut.isoformat(), "date_fin": date_fin.isoformat()},
            )
        existing = self._overlapping(session, collecteur_id, date_debut, date_fin)
        if not existing:
            return []

        details = {
            "collecteur_id": collecteur_id,
            "date_debut": date_debut.isoformat(),
            "date_fin": date_fin.isoformat(),
            "historique_ids": [h.id for h in existing],
        }
        if not force_recalcul:
            raise AlreadyProcessedError(
                f"Commissions déjà calculées pour le collecteur {collecteur_id} sur {existing[0].periode_description}",
                details,
            )
        remuneres = [h.id for h in existing if h.remunere]
        if remuneres:
            raise AlreadyRemuneratedError(
                f"Recalcul impossible : lot(s) {remuneres} déjà rémunéré(s)",
                details,
            )
        return [h.id for h in existing]

    def begin_calculation(self, collecteur_id: int, date_debut: date, date_fin: date,
                          force_recalcul: bool = False) -> None:
        """
        Précondition d'un calcul : aucun lot non annulé ne chevauche la période,
        sauf recalcul forcé sur des lots non rémunérés. Ne modifie rien.
        """
        with Session(self.engine) as session:
            self._check_period(session, collecteur_id, date_debut, date_fin, force_recalcul)

    def record_calculation(self,
                           distribution: CommissionDistribution,
                           date_debut: date,
                           date_fin: date,
                           agence_id: Optional[int] = None,
                           details_calcul: Optional[str] = None,
                           calcule_par: Optional[str] = None,
                           force_recalcul: bool = False) -> HistoriqueCalculCommission:
        """
        Enregistre un lot CALCULE. La vérification de période, le remplacement
        éventuel des lots chevauchants et l'insertion forment une seule transaction.
        """
        collecteur_id = distribution.collecteur_id
        with Session(self.engine) as session:
            a_remplacer = self._check_period(session, collecteur_id, date_debut, date_fin, force_recalcul)

            if a_remplacer:
                result = session.connection().execute(
                    update(Historique)
                    .where(
                        Historique.id.in_(a_remplacer),
                        Historique.remunere == False,  # noqa: E712
                        Historique.statut != StatutCalcul.ANNULE,
                    )
                    .values(statut=StatutCalcul.ANNULE)
                )
                if result.rowcount != len(a_remplacer):
                    session.rollback()
                    raise AlreadyRemuneratedError(
                        "Recalcul impossible : un lot a été rémunéré entre-temps",
                        {"collecteur_id": collecteur_id, "historique_ids": a_remplacer},
                    )
                logger.info("[HISTORIQUE] Lots %s annulés (recalcul forcé)", a_remplacer)

            historique = Historique(
                collecteur_id=collecteur_id,
                agence_id=agence_id,
                date_debut=date_debut,
                date_fin=date_fin,
                montant_commission_total=distribution.total_commissions,
                montant_tva_total=distribution.total_tva,
                montant_remuneration_collecteur=distribution.remuneration_collecteur,
                nombre_clients=distribution.nombre_clients,
                statut=StatutCalcul.CALCULE,
                details_calcul=details_calcul,
                calcule_par=calcule_par,
            )
            session.add(historique)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise AlreadyProcessedError(
                    f"Commissions déjà calculées pour le collecteur {collecteur_id} ({date_debut} → {date_fin})",
                    {"collecteur_id": collecteur_id,
                     "date_debut": date_debut.isoformat(),
                     "date_fin": date_fin.isoformat()},
                )
            session.refresh(historique)
            logger.info("[HISTORIQUE] Lot %s CALCULE - collecteur %s, %s",
                        historique.id, collecteur_id, historique.periode_description)
            return historique

    # ------------------------------------------------------------------
    # Rémunération
    # ------------------------------------------------------------------

    def _mark_remunerated(self, session: Session, historique_id: int,
                          remuneration_id: Optional[int] = None) -> None:
        result = session.connection().execute(
            update(Historique)
            .where(
                Historique.id == historique_id,
                Historique.remunere == False,  # noqa: E712
                Historique.statut != StatutCalcul.ANNULE,
            )
            .values(remunere=True, date_remuneration=utcnow(), remuneration_id=remuneration_id)
        )
        if result.rowcount == 1:
            return

        historique = session.get(Historique, historique_id)
        if historique is None:
            raise NotFoundError(f"Historique {historique_id} introuvable", {"historique_id": historique_id})
        if historique.remunere:
            raise AlreadyRemuneratedError(
                f"Lot {historique_id} déjà rémunéré",
                {"historique_id": historique_id, "remuneration_id": historique.remuneration_id},
            )
        raise ValidationError(f"Lot {historique_id} annulé : rémunération impossible", {"historique_id": historique_id})

    def mark_remunerated(self, historique_id: int, remuneration_id: Optional[int] = None) -> None:
        """Passe remunere à true ; échoue si le lot l'est déjà."""
        with Session(self.engine) as session:
            self._mark_remunerated(session, historique_id, remuneration_id)
            session.commit()
        logger.info("[HISTORIQUE] Lot %s marqué rémunéré", historique_id)

    def record_remuneration(self, historique_id: int, result: RemunerationResult,
                            effectue_par: Optional[str] = None,
                            details: Optional[str] = None) -> HistoriqueRemuneration:
        """Enregistre la rémunération et marque le lot dans la même transaction."""
        with Session(self.engine) as session:
            historique = session.get(Historique, historique_id)
            if historique is None:
                raise NotFoundError(f"Historique {historique_id} introuvable", {"historique_id": historique_id})

            remuneration = HistoriqueRemuneration(
                collecteur_id=historique.collecteur_id,
                historique_calcul_id=historique_id,
                date_debut_periode=historique.date_debut,
                date_fin_periode=historique.date_fin,
                montant_s_initial=result.montant_s_initial,
                total_rubriques_vi=result.total_rubriques_vi,
                montant_emf=result.montant_emf,
                montant_tva=result.montant_tva,
                effectue_par=effectue_par,
                details=details,
            )
            session.add(remuneration)
            try:
                session.flush()
            except IntegrityError:
                session.rollback()
                raise AlreadyRemuneratedError(f"Lot {historique_id} déjà rémunéré", {"historique_id": historique_id})

            self._mark_remunerated(session, historique_id, remuneration.id)
            session.commit()
            session.refresh(remuneration)
            logger.info("[HISTORIQUE] Rémunération %s enregistrée pour le lot %s", remuneration.id, historique_id)
            return remuneration

    # ------------------------------------------------------------------
    # Statut
    # ------------------------------------------------------------------

    def _transition(self, historique_id: int, depuis: StatutCalcul, vers: StatutCalcul) -> HistoriqueCalculCommission:
        with Session(self.engine) as session:
            result = session.connection().execute(
                update(Historique)
                .where(Historique.id == historique_id, Historique.statut == depuis)
                .values(statut=vers)
            )
            if result.rowcount != 1:
                historique = session.get(Historique, historique_id)
                if historique is None:
                    raise NotFoundError(f"Historique {historique_id} introuvable", {"historique_id": historique_id})
                raise ValidationError(
                    f"Transition {historique.statut.value} → {vers.value} impossible pour le lot {historique_id}",
                    {"historique_id": historique_id, "statut": historique.statut.value},
                )
            session.commit()
            historique = session.get(Historique, historique_id)
            session.refresh(historique)
            logger.info("[HISTORIQUE] Lot %s : %s → %s", historique_id, depuis.value, vers.value)
            return historique

    def valider(self, historique_id: int) -> HistoriqueCalculCommission:
        return self._transition(historique_id, StatutCalcul.CALCULE, StatutCalcul.VALIDE)

    def marquer_paye(self, historique_id: int) -> HistoriqueCalculCommission:
        return self._transition(historique_id, StatutCalcul.VALIDE, StatutCalcul.PAYE)
