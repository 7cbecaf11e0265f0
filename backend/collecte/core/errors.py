"""
Erreurs du moteur de commissions.

Chaque erreur porte un code standardisé et un statut HTTP indicatif,
utilisé par la couche web pour produire la réponse.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Codes d'erreur standardisés."""
    VALIDATION = "VAL_2001"
    CONFIGURATION = "CFG_3001"
    NOT_FOUND = "RES_4001"
    ALREADY_PROCESSED = "HIS_5001"
    ALREADY_REMUNERATED = "HIS_5002"


class CommissionError(Exception):
    """Erreur de base du moteur de commissions."""

    error_code: ErrorCode = ErrorCode.VALIDATION
    http_status: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(f"{self.error_code.value}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(CommissionError):
    """Montant négatif ou nul, barème mal formé, S négatif."""
    error_code = ErrorCode.VALIDATION
    http_status = 400


class ConfigurationError(CommissionError):
    """Paramètre manquant ou ambigu, barème avec trou."""
    error_code = ErrorCode.CONFIGURATION
    http_status = 422


class NotFoundError(CommissionError):
    """Collecteur, client, paramètre ou rubrique introuvable."""
    error_code = ErrorCode.NOT_FOUND
    http_status = 404


class AlreadyProcessedError(CommissionError):
    """Période déjà calculée pour ce collecteur."""
    error_code = ErrorCode.ALREADY_PROCESSED
    http_status = 409


class AlreadyRemuneratedError(CommissionError):
    """Lot de calcul déjà rémunéré."""
    error_code = ErrorCode.ALREADY_REMUNERATED
    http_status = 409


CommissionAlreadyProcessedException = AlreadyProcessedError
