"""
Objets valeur (pydantic) échangés avec le moteur de commissions.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from collecte.core.normalize import HUNDRED, ZERO, round_money
from collecte.models import CommissionType, ParameterScope, SensTransaction, TypeRubrique


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Transaction(_Frozen):
    """Opération de collecte d'un client."""
    client_id: int
    montant: Decimal
    sens: SensTransaction
    date_operation: date


class CollecteurInfo(_Frozen):
    """Métadonnées d'un collecteur."""
    id: int
    agence_id: Optional[int] = None
    anciennete_mois: int = Field(ge=0)  # obligatoire, pas de défaut
    nom: Optional[str] = None


class Palier(_Frozen):
    """Palier [montant_min, montant_max) ; montant_max None = sans plafond."""
    montant_min: Decimal
    montant_max: Optional[Decimal] = None
    taux: Decimal

    def contains(self, montant: Decimal) -> bool:
        if montant < self.montant_min:
            return False
        return self.montant_max is None or montant < self.montant_max

    @property
    def range_description(self) -> str:
        upper = f"{self.montant_max}" if self.montant_max is not None else "∞"
        return f"[{self.montant_min} - {upper}) FCFA ({self.taux} %)"


class CommissionParameter(_Frozen):
    """Paramètre de commission résolu, paliers compris."""
    id: Optional[int] = None
    type: CommissionType
    valeur: Optional[Decimal] = None
    paliers: List[Palier] = Field(default_factory=list)
    actif: bool = True
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None
    code_produit: Optional[str] = None
    client_id: Optional[int] = None
    collecteur_id: Optional[int] = None
    agence_id: Optional[int] = None

    @property
    def scopes(self) -> List[ParameterScope]:
        scopes = []
        if self.client_id is not None:
            scopes.append(ParameterScope.CLIENT)
        if self.collecteur_id is not None:
            scopes.append(ParameterScope.COLLECTEUR)
        if self.agence_id is not None:
            scopes.append(ParameterScope.AGENCE)
        return scopes

    @property
    def scope(self) -> Optional[ParameterScope]:
        scopes = self.scopes
        return scopes[0] if len(scopes) == 1 else None

    def is_valid_on(self, as_of: date) -> bool:
        if not self.actif:
            return False
        if self.date_debut is not None and as_of < self.date_debut:
            return False
        if self.date_fin is not None and as_of > self.date_fin:
            return False
        return True

    def format_valeur(self) -> str:
        if self.type is CommissionType.FIXED:
            return f"{self.valeur:,.0f} FCFA".replace(",", " ")
        if self.type is CommissionType.PERCENTAGE:
            return f"{self.valeur:.2f} %"
        if self.type is CommissionType.TIER:
            return f"Paliers ({len(self.paliers)})"
        raise AssertionError(f"Type de commission non géré: {self.type}")


class CommissionCalculation(_Frozen):
    """Commission d'un client sur une période."""
    client_id: int
    montant_collecte: Decimal
    commission_base: Decimal
    tva: Decimal
    commission_net: Decimal
    type_commission: CommissionType
    valeur_parametre: Optional[Decimal] = None
    taux_applique: Optional[Decimal] = None
    parameter_id: Optional[int] = None
    scope: Optional[ParameterScope] = None
    calculated_at: datetime = Field(default_factory=datetime.now)


class Mouvement(_Frozen):
    """Écriture comptable : débit d'un compte, crédit d'un autre."""
    compte_debit: str
    compte_credit: str
    montant: Decimal
    libelle: str


class CommissionDistribution(_Frozen):
    """Répartition des commissions d'un collecteur sur une période."""
    collecteur_id: int
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None
    calculations: List[CommissionCalculation] = Field(default_factory=list)
    total_commissions: Decimal = ZERO
    total_tva: Decimal = ZERO
    remuneration_collecteur: Decimal = ZERO
    part_emf: Decimal = ZERO
    tva_emf: Decimal = ZERO
    deficit_charge: Decimal = ZERO
    nouveau_collecteur: bool = False
    mouvements: List[Mouvement] = Field(default_factory=list)

    @property
    def nombre_clients(self) -> int:
        return len(self.calculations)

    @property
    def montant_total_distribue(self) -> Decimal:
        return self.remuneration_collecteur + self.part_emf + self.tva_emf


class RubriqueRemuneration(_Frozen):
    """Rubrique de rémunération Vi."""
    id: Optional[int] = None
    nom: str
    type: TypeRubrique
    valeur: Decimal
    date_application: date
    delai_jours: Optional[int] = None
    collecteur_ids: List[int] = Field(default_factory=list)
    active: bool = True

    @property
    def date_expiration(self) -> Optional[date]:
        if self.delai_jours is None:
            return None
        return self.date_application + timedelta(days=self.delai_jours)

    def is_currently_valid(self, as_of: Optional[date] = None) -> bool:
        """Active et as_of dans [date_application, date_expiration]."""
        if not self.active:
            return False
        today = as_of or date.today()
        if today < self.date_application:
            return False
        expiration = self.date_expiration
        return expiration is None or today <= expiration

    def applies_to(self, collecteur_id: int) -> bool:
        return collecteur_id in self.collecteur_ids

    def calculate_vi(self, montant_s: Decimal) -> Decimal:
        if self.type is TypeRubrique.CONSTANT:
            return self.valeur
        if self.type is TypeRubrique.PERCENTAGE:
            return round_money(montant_s * self.valeur / HUNDRED)
        raise AssertionError(f"Type de rubrique non géré: {self.type}")

    def format_valeur(self) -> str:
        if self.type is TypeRubrique.CONSTANT:
            return f"{self.valeur:,.0f} FCFA".replace(",", " ")
        if self.type is TypeRubrique.PERCENTAGE:
            return f"{self.valeur:.2f} % de S"
        raise AssertionError(f"Type de rubrique non géré: {self.type}")


class RubriqueContribution(_Frozen):
    """Contribution Vi d'une rubrique."""
    rubrique_id: Optional[int] = None
    nom: str
    type: TypeRubrique
    valeur: Decimal
    montant: Decimal


class RemunerationResult(_Frozen):
    """Résultat d'une rémunération par rubriques."""
    collecteur_id: int
    montant_s_initial: Decimal
    contributions: List[RubriqueContribution] = Field(default_factory=list)
    total_rubriques_vi: Decimal = ZERO
    montant_emf: Decimal = ZERO
    montant_tva: Decimal = ZERO
    mouvements: List[Mouvement] = Field(default_factory=list)
    historique_calcul_id: Optional[int] = None
    historique_remuneration_id: Optional[int] = None


class CommissionProcessingResult(_Frozen):
    """Résumé d'un traitement de commissions pour un collecteur."""
    collecteur_id: int
    date_debut: date
    date_fin: date
    calculations: List[CommissionCalculation] = Field(default_factory=list)
    distribution: CommissionDistribution
    historique_id: Optional[int] = None
    warnings: List[str] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=datetime.now)
    processing_time_ms: int = 0

    @property
    def nombre_clients(self) -> int:
        return len(self.calculations)

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def montant_s(self) -> Decimal:
        """S : rémunération du collecteur, base des rubriques."""
        return self.distribution.remuneration_collecteur


class CollecteurFailure(_Frozen):
    """Échec du traitement d'un collecteur dans un lot mensuel."""
    collecteur_id: int
    code: str
    message: str


class CommissionBatchResult(_Frozen):
    """Résultat du calcul mensuel de tous les collecteurs."""
    date_debut: date
    date_fin: date
    results: List[CommissionProcessingResult] = Field(default_factory=list)
    failures: List[CollecteurFailure] = Field(default_factory=list)

    @property
    def nombre_traites(self) -> int:
        return len(self.results)

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0
