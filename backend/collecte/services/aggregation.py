"""
Service d'agrégation des montants collectés par client.
"""
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Union

from collecte.core.normalize import ZERO, sanitize_amount
from collecte.models import SensTransaction
from collecte.schemas import Transaction


def _as_transaction(row: Union[Transaction, Dict]) -> Transaction:
    if isinstance(row, Transaction):
        return row
    return Transaction(
        client_id=int(row["client_id"]),
        montant=sanitize_amount(row.get("montant")),
        sens=SensTransaction(str(row.get("sens", "")).strip().upper()),
        date_operation=row["date_operation"],
    )


def aggregate_collected(transactions: Iterable[Union[Transaction, Dict]],
                        date_debut: Optional[date] = None,
                        date_fin: Optional[date] = None) -> Dict[int, Decimal]:
    """
    Agrège les épargnes par client.
    Retourne un dict : client_id -> montant collecté.

    Les retraits ne génèrent pas de commission et sont ignorés ; les clients
    sans épargne positive sont omis. Ordre d'insertion = première opération.
    """
    aggregated: Dict[int, Decimal] = {}

    for row in transactions:
        tx = _as_transaction(row)
        if tx.sens is not SensTransaction.EPARGNE:
            continue
        if date_debut is not None and tx.date_operation < date_debut:
            continue
        if date_fin is not None and tx.date_operation > date_fin:
            continue

        montant = sanitize_amount(tx.montant)
        aggregated[tx.client_id] = aggregated.get(tx.client_id, ZERO) + montant

    return {client_id: total for client_id, total in aggregated.items() if total > ZERO}
