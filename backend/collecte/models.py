"""
Modèles SQLModel pour la base de données.
"""
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, Index, text
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    """Horodatage UTC avec fuseau."""
    return datetime.now(timezone.utc)


class CommissionType(str, Enum):
    """Mode de calcul d'un paramètre de commission."""
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"
    TIER = "TIER"

    @property
    def libelle(self) -> str:
        if self is CommissionType.FIXED:
            return "Montant fixe"
        if self is CommissionType.PERCENTAGE:
            return "Pourcentage"
        if self is CommissionType.TIER:
            return "Paliers"
        raise AssertionError(f"Type de commission non géré: {self}")


class ParameterScope(str, Enum):
    """Portée d'un paramètre (du plus spécifique au plus large)."""
    CLIENT = "CLIENT"
    COLLECTEUR = "COLLECTEUR"
    AGENCE = "AGENCE"


class TypeRubrique(str, Enum):
    """Type de rubrique de rémunération."""
    CONSTANT = "CONSTANT"      # Montant fixe
    PERCENTAGE = "PERCENTAGE"  # Pourcentage de S

    @property
    def libelle(self) -> str:
        if self is TypeRubrique.CONSTANT:
            return "Montant fixe"
        if self is TypeRubrique.PERCENTAGE:
            return "Pourcentage de S"
        raise AssertionError(f"Type de rubrique non géré: {self}")


class StatutCalcul(str, Enum):
    """Statut d'un lot de calcul de commission."""
    CALCULE = "CALCULE"
    VALIDE = "VALIDE"
    PAYE = "PAYE"
    ANNULE = "ANNULE"  # Remplacé par un recalcul forcé


class SensTransaction(str, Enum):
    """Sens d'une opération de collecte."""
    EPARGNE = "EPARGNE"
    RETRAIT = "RETRAIT"


class ParametreCommission(SQLModel, table=True):
    """Paramètre de commission rattaché à un client, un collecteur ou une agence."""
    id: Optional[int] = Field(default=None, primary_key=True)
    type: CommissionType = Field(index=True)
    valeur: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=4)
    code_produit: Optional[str] = Field(default=None, index=True)
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None
    actif: bool = Field(default=True, index=True)

    # Un seul des trois est renseigné
    client_id: Optional[int] = Field(default=None, index=True)
    collecteur_id: Optional[int] = Field(default=None, index=True)
    agence_id: Optional[int] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    paliers: List["PalierCommission"] = Relationship(back_populates="parametre")


class PalierCommission(SQLModel, table=True):
    """Palier [montant_min, montant_max) d'un paramètre de type TIER."""
    id: Optional[int] = Field(default=None, primary_key=True)
    parametre_id: int = Field(foreign_key="parametrecommission.id", index=True)
    montant_min: Decimal = Field(max_digits=15, decimal_places=2)
    montant_max: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)  # None = sans plafond
    taux: Decimal = Field(max_digits=7, decimal_places=4)

    parametre: Optional[ParametreCommission] = Relationship(back_populates="paliers")


class Rubrique(SQLModel, table=True):
    """Rubrique de rémunération (Vi) applicable à un ou plusieurs collecteurs."""
    id: Optional[int] = Field(default=None, primary_key=True)
    nom: str = Field(index=True)
    type: TypeRubrique
    valeur: Decimal = Field(max_digits=15, decimal_places=2)
    date_application: date
    delai_jours: Optional[int] = None  # None = indéfini
    active: bool = Field(default=True, index=True)

    # JSON: [12, 15, ...]
    collecteur_ids: str = Field(default="[]")

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    def get_collecteur_ids(self) -> List[int]:
        return [int(c) for c in json.loads(self.collecteur_ids or "[]")]

    def set_collecteur_ids(self, ids: List[int]) -> None:
        self.collecteur_ids = json.dumps(sorted(set(int(c) for c in ids)))


class HistoriqueCalculCommission(SQLModel, table=True):
    """Lot de calcul de commission d'un collecteur sur une période."""
    __table_args__ = (
        # Un seul lot non annulé par (collecteur, période)
        Index(
            "uq_historique_calcul_periode_actif",
            "collecteur_id", "date_debut", "date_fin",
            unique=True,
            sqlite_where=text("statut != 'ANNULE'"),
            postgresql_where=text("statut != 'ANNULE'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    collecteur_id: int = Field(index=True)
    agence_id: Optional[int] = None
    date_debut: date = Field(index=True)
    date_fin: date = Field(index=True)

    montant_commission_total: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    montant_tva_total: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    montant_remuneration_collecteur: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2)
    nombre_clients: int = 0

    statut: StatutCalcul = Field(default=StatutCalcul.CALCULE, index=True)
    details_calcul: Optional[str] = None  # JSON des commissions par client
    calcule_par: Optional[str] = None
    date_calcul: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    remunere: bool = Field(default=False, index=True)
    date_remuneration: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    remuneration_id: Optional[int] = None

    @property
    def periode_description(self) -> str:
        return f"{self.date_debut} → {self.date_fin}"

    @property
    def montant_total_avec_tva(self) -> Decimal:
        return self.montant_commission_total + self.montant_tva_total

    def peut_etre_remunere(self) -> bool:
        return self.statut != StatutCalcul.ANNULE and not self.remunere


class HistoriqueRemuneration(SQLModel, table=True):
    """Rémunération par rubriques effectuée pour un lot de calcul."""
    id: Optional[int] = Field(default=None, primary_key=True)
    collecteur_id: int = Field(index=True)
    historique_calcul_id: int = Field(foreign_key="historiquecalculcommission.id", index=True, unique=True)
    date_debut_periode: date
    date_fin_periode: date
    montant_s_initial: Decimal = Field(max_digits=15, decimal_places=2)
    total_rubriques_vi: Decimal = Field(max_digits=15, decimal_places=2)
    montant_emf: Decimal = Field(max_digits=15, decimal_places=2)
    montant_tva: Decimal = Field(max_digits=15, decimal_places=2)
    date_remuneration: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    effectue_par: Optional[str] = None
    details: Optional[str] = None
