"""
Service de traitement des commissions et des rémunérations d'un collecteur.
"""
import json
import logging
import time
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from collecte.core.errors import AlreadyRemuneratedError, CommissionError, ValidationError
from collecte.core.rules import CommissionRules
from collecte.schemas import (
    CollecteurFailure,
    CollecteurInfo,
    CommissionBatchResult,
    CommissionCalculation,
    CommissionParameter,
    CommissionProcessingResult,
    RemunerationResult,
    RubriqueRemuneration,
    Transaction,
)
from collecte.services import commission_calculator, commission_distributor, remuneration_processor
from collecte.services.aggregation import aggregate_collected
from collecte.services.historique_guard import HistoriqueGuard
from collecte.services.parameter_resolver import resolve

logger = logging.getLogger(__name__)


def _details_json(calculations: List[CommissionCalculation], warnings: List[str]) -> str:
    return json.dumps({
        "commissions": [calc.model_dump(mode="json") for calc in calculations],
        "warnings": warnings,
    }, ensure_ascii=False)


def compute_calculations(collecteur: CollecteurInfo,
                         collected: Dict[int, Decimal],
                         parametres: List[CommissionParameter],
                         rules: CommissionRules,
                         as_of: date,
                         code_produit: Optional[str] = None,
                         best_effort: bool = False):
    """
    Calcule la commission de chaque client.

    Retourne (calculations, warnings). Hors mode best_effort, la première
    erreur interrompt tout le lot.
    """
    calculations = []
    warnings = []

    for client_id, montant in collected.items():
        try:
            parameter = resolve(client_id, collecteur.id, collecteur.agence_id, code_produit, as_of, parametres)
            calculations.append(commission_calculator.calculate(montant, parameter, rules, client_id=client_id))
        except CommissionError as exc:
            if not best_effort:
                raise
            message = f"Client {client_id} ignoré : {exc.message}"
            logger.warning("[CALCUL] %s", message)
            warnings.append(message)

    return calculations, warnings


def process_commissions(collecteur: CollecteurInfo,
                        date_debut: date,
                        date_fin: date,
                        transactions: Iterable[Union[Transaction, Dict]],
                        parametres: Iterable[CommissionParameter],
                        rules: Optional[CommissionRules] = None,
                        store: Optional[HistoriqueGuard] = None,
                        force_recalcul: bool = False,
                        best_effort: bool = False,
                        calcule_par: Optional[str] = None,
                        code_produit: Optional[str] = None) -> CommissionProcessingResult:
    """
    Traite les commissions d'un collecteur sur une période.

    Étapes :
    1) garde d'historique (période déjà calculée ?)
    2) agrégation des épargnes par client
    3) résolution du paramètre et calcul par client
    4) répartition collecteur / EMF / taxes
    5) enregistrement du lot CALCULE (si store fourni)

    Sans store, le traitement est une simulation : rien n'est enregistré.
    """
    started = time.perf_counter()
    rules = rules or CommissionRules.default_rules()
    parametres = list(parametres)

    if date_debut > date_fin:
        raise ValidationError(
            f"Période invalide: {date_debut} > {date_fin}",
            {"date_debut": date_debut.isoformat(), "date_fin": date_fin.isoformat()},
        )

    logger.info("[CALCUL] Collecteur %s - période %s → %s", collecteur.id, date_debut, date_fin)

    if store is not None:
        store.begin_calculation(collecteur.id, date_debut, date_fin, force_recalcul=force_recalcul)

    collected = aggregate_collected(transactions, date_debut, date_fin)
    logger.info("[CALCUL] %s client(s) avec épargne", len(collected))

    calculations, warnings = compute_calculations(
        collecteur, collected, parametres, rules, date_fin,
        code_produit=code_produit, best_effort=best_effort,
    )

    distribution = commission_distributor.distribute(
        collecteur.id,
        calculations,
        rules,
        rules.is_nouveau_collecteur(collecteur.anciennete_mois),
        date_debut=date_debut,
        date_fin=date_fin,
    )

    historique_id = None
    if store is not None:
        historique = store.record_calculation(
            distribution,
            date_debut,
            date_fin,
            agence_id=collecteur.agence_id,
            details_calcul=_details_json(calculations, warnings),
            calcule_par=calcule_par,
            force_recalcul=force_recalcul,
        )
        historique_id = historique.id

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "[CALCUL] OK - collecteur %s : total=%s TVA=%s S=%s (%s ms, %s avertissement(s))",
        collecteur.id, distribution.total_commissions, distribution.total_tva,
        distribution.remuneration_collecteur, elapsed_ms, len(warnings),
    )

    return CommissionProcessingResult(
        collecteur_id=collecteur.id,
        date_debut=date_debut,
        date_fin=date_fin,
        calculations=calculations,
        distribution=distribution,
        historique_id=historique_id,
        warnings=warnings,
        processing_time_ms=elapsed_ms,
    )


def process_remuneration(historique_id: int,
                         rubriques: Iterable[RubriqueRemuneration],
                         rules: Optional[CommissionRules] = None,
                         store: Optional[HistoriqueGuard] = None,
                         as_of: Optional[date] = None,
                         effectue_par: Optional[str] = None,
                         montant_s: Optional[Decimal] = None) -> RemunerationResult:
    """
    Rémunère un lot de calcul par rubriques.

    S vaut par défaut la rémunération collecteur enregistrée dans le lot.
    Le lot est marqué rémunéré une seule fois ; un second appel lève
    AlreadyRemuneratedError sans créer de second historique.
    """
    store = store or HistoriqueGuard()
    historique = store.get(historique_id)
    if historique.remunere:
        raise AlreadyRemuneratedError(
            f"Lot {historique_id} déjà rémunéré",
            {"historique_id": historique_id, "remuneration_id": historique.remuneration_id},
        )
    if not historique.peut_etre_remunere():
        raise ValidationError(f"Lot {historique_id} annulé : rémunération impossible", {"historique_id": historique_id})

    s = montant_s if montant_s is not None else historique.montant_remuneration_collecteur
    result = remuneration_processor.process(
        historique.collecteur_id, s, rubriques, as_of or date.today(), rules,
    )

    details = json.dumps({
        "contributions": [c.model_dump(mode="json") for c in result.contributions],
        "mouvements": [m.model_dump(mode="json") for m in result.mouvements],
    }, ensure_ascii=False)
    remuneration = store.record_remuneration(historique_id, result, effectue_par=effectue_par, details=details)

    logger.info(
        "[RUBRIQUE] OK - lot %s : S=%s, total Vi=%s, EMF=%s, TVA=%s",
        historique_id, result.montant_s_initial, result.total_rubriques_vi,
        result.montant_emf, result.montant_tva,
    )
    return result.model_copy(update={
        "historique_calcul_id": historique_id,
        "historique_remuneration_id": remuneration.id,
    })


def previous_month(reference: date) -> Tuple[date, date]:
    """Premier et dernier jour du mois civil précédant reference."""
    fin = reference.replace(day=1) - timedelta(days=1)
    return fin.replace(day=1), fin


def process_monthly_commissions(collecteurs: Iterable[CollecteurInfo],
                                reference: date,
                                transactions_for: Callable[[int, date, date], Iterable[Union[Transaction, Dict]]],
                                parametres: Iterable[CommissionParameter],
                                rules: Optional[CommissionRules] = None,
                                store: Optional[HistoriqueGuard] = None,
                                calcule_par: Optional[str] = None) -> CommissionBatchResult:
    """
    Calcul mensuel : commissions du mois précédent pour chaque collecteur.

    transactions_for(collecteur_id, date_debut, date_fin) fournit les opérations.
    L'échec d'un collecteur (période déjà calculée, paramètre manquant...) est
    consigné dans failures et n'interrompt pas les autres.
    """
    date_debut, date_fin = previous_month(reference)
    parametres = list(parametres)
    logger.info("[BATCH] Calcul mensuel des commissions : %s → %s", date_debut, date_fin)

    results = []
    failures = []
    for collecteur in collecteurs:
        try:
            results.append(process_commissions(
                collecteur,
                date_debut,
                date_fin,
                transactions_for(collecteur.id, date_debut, date_fin),
                parametres,
                rules,
                store,
                calcule_par=calcule_par,
            ))
        except CommissionError as exc:
            logger.error("[BATCH] Collecteur %s en échec : %s", collecteur.id, exc)
            failures.append(CollecteurFailure(
                collecteur_id=collecteur.id,
                code=exc.error_code.value,
                message=exc.message,
            ))

    logger.info("[BATCH] Fin du calcul mensuel : %s traité(s), %s échec(s)", len(results), len(failures))
    return CommissionBatchResult(date_debut=date_debut, date_fin=date_fin, results=results, failures=failures)
