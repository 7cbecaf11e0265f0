"""
Validation des paramètres de commission avant enregistrement.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from collecte.core.errors import ConfigurationError, ValidationError
from collecte.core.normalize import HUNDRED, ZERO
from collecte.core.rules import CommissionRules
from collecte.models import CommissionType
from collecte.schemas import CommissionParameter
from collecte.services.tier_engine import check_paliers, find_gaps

logger = logging.getLogger(__name__)

POURCENTAGE_ELEVE = Decimal("20")


@dataclass
class ParameterValidationReport:
    """Erreurs bloquantes et avertissements d'un paramètre."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    gaps: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors and not self.gaps

    def ensure_valid(self) -> None:
        if self.errors:
            raise ValidationError("Paramètre de commission invalide", {"errors": self.errors})
        if self.gaps:
            raise ConfigurationError("Barème de paliers incomplet", {"errors": self.gaps})


def validate_parameter(parameter: CommissionParameter,
                       rules: Optional[CommissionRules] = None,
                       today: Optional[date] = None) -> ParameterValidationReport:
    rules = rules or CommissionRules.default_rules()
    today = today or date.today()
    report = ParameterValidationReport()

    scopes = parameter.scopes
    if not scopes:
        report.errors.append("Au moins une relation (client, collecteur ou agence) doit être définie")
    elif len(scopes) > 1:
        report.errors.append("Un seul scope doit être défini")

    if parameter.type is CommissionType.FIXED:
        if parameter.valeur is None or parameter.valeur <= ZERO:
            report.errors.append("Une valeur positive est requise pour le type FIXED")
        elif parameter.valeur > rules.plafond_commission_fixe:
            report.warnings.append(f"Montant fixe supérieur au plafond: {parameter.valeur}")
    elif parameter.type is CommissionType.PERCENTAGE:
        if parameter.valeur is None or parameter.valeur <= ZERO or parameter.valeur > HUNDRED:
            report.errors.append("Le pourcentage doit être entre 0 et 100")
        elif parameter.valeur > POURCENTAGE_ELEVE:
            report.warnings.append(f"Pourcentage élevé: {parameter.valeur} %")
    elif parameter.type is CommissionType.TIER:
        tier_errors = check_paliers(parameter.paliers)
        report.errors.extend(tier_errors)
        if not tier_errors:
            report.gaps.extend(find_gaps(parameter.paliers))

    if parameter.date_debut and parameter.date_fin and parameter.date_debut > parameter.date_fin:
        report.errors.append("La date de début doit être antérieure à la date de fin")
    elif parameter.date_fin and parameter.date_fin < today:
        report.warnings.append("Ce paramètre est expiré")

    if not report.is_valid:
        logger.info("[VALIDATION] Paramètre %s invalide: %s", parameter.id, report.errors + report.gaps)
    return report
