"""
Règles de calcul des commissions (politique immuable).
"""
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, model_validator

from collecte.core.errors import ConfigurationError

DEFAULT_TVA_RATE = Decimal("0.1925")
DEFAULT_EMF_RATE = Decimal("0.30")
DEFAULT_NOUVEAU_COLLECTEUR_MONTANT = Decimal("40000")
DEFAULT_NOUVEAU_COLLECTEUR_DUREE_MOIS = 3
DEFAULT_PLAFOND_COMMISSION_FIXE = Decimal("1000000")


class CommissionRules(BaseModel):
    """
    Taux et paramètres métier.

    collecteur_rate est toujours égal à 1 - emf_rate.
    """
    model_config = ConfigDict(frozen=True)

    tva_rate: Decimal = DEFAULT_TVA_RATE
    emf_rate: Decimal = DEFAULT_EMF_RATE
    collecteur_rate: Decimal = Decimal("1") - DEFAULT_EMF_RATE
    nouveau_collecteur_montant: Decimal = DEFAULT_NOUVEAU_COLLECTEUR_MONTANT
    nouveau_collecteur_duree_mois: int = DEFAULT_NOUVEAU_COLLECTEUR_DUREE_MOIS
    plafond_commission_fixe: Decimal = DEFAULT_PLAFOND_COMMISSION_FIXE

    @model_validator(mode="before")
    @classmethod
    def _derive_collecteur_rate(cls, data):
        if isinstance(data, dict) and data.get("collecteur_rate") is None:
            emf_rate = Decimal(str(data.get("emf_rate", DEFAULT_EMF_RATE)))
            data = {**data, "collecteur_rate": Decimal("1") - emf_rate}
        return data

    @model_validator(mode="after")
    def _check_rates(self):
        for name in ("tva_rate", "emf_rate", "collecteur_rate"):
            rate = getattr(self, name)
            if rate < 0 or rate > 1:
                raise ConfigurationError(f"{name} hors de [0, 1]: {rate}", {"field": name})
        if self.emf_rate + self.collecteur_rate != Decimal("1"):
            raise ConfigurationError(
                "emf_rate + collecteur_rate doit valoir 1",
                {"emf_rate": str(self.emf_rate), "collecteur_rate": str(self.collecteur_rate)},
            )
        if self.nouveau_collecteur_duree_mois < 0:
            raise ConfigurationError("nouveau_collecteur_duree_mois négatif")
        if self.nouveau_collecteur_montant < 0 or self.plafond_commission_fixe < 0:
            raise ConfigurationError("montants de règles négatifs")
        return self

    @classmethod
    def default_rules(cls) -> "CommissionRules":
        return cls()

    @classmethod
    def custom_rules(cls, tva_rate: Decimal, emf_rate: Decimal) -> "CommissionRules":
        return cls(tva_rate=tva_rate, emf_rate=emf_rate)

    def is_nouveau_collecteur(self, anciennete_mois: int) -> bool:
        return anciennete_mois <= self.nouveau_collecteur_duree_mois
