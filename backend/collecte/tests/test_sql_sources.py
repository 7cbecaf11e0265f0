"""
Tests pour le chargement des paramètres et rubriques depuis la base.
"""
from datetime import date
from decimal import Decimal

from sqlmodel import Session

from collecte.models import CommissionType, PalierCommission, ParametreCommission, Rubrique, TypeRubrique
from collecte.services.parameter_resolver import resolve
from collecte.services.sql_sources import load_parametres, load_rubriques


def _seed(session):
    tier = ParametreCommission(type=CommissionType.TIER, collecteur_id=1)
    session.add(tier)
    session.commit()
    session.refresh(tier)
    # Insérés dans le désordre
    session.add(PalierCommission(parametre_id=tier.id, montant_min=Decimal("1000"), montant_max=None, taux=Decimal("2")))
    session.add(PalierCommission(parametre_id=tier.id, montant_min=Decimal("0"), montant_max=Decimal("1000"), taux=Decimal("1")))
    session.add(ParametreCommission(type=CommissionType.PERCENTAGE, valeur=Decimal("2"), agence_id=10))
    session.add(ParametreCommission(type=CommissionType.FIXED, valeur=Decimal("500"), client_id=101, actif=False))
    session.add(ParametreCommission(type=CommissionType.FIXED, valeur=Decimal("700"), agence_id=20))

    rubrique = Rubrique(nom="Prime", type=TypeRubrique.CONSTANT, valeur=Decimal("1000"), date_application=date(2025, 1, 1))
    rubrique.set_collecteur_ids([2, 1, 1])
    session.add(rubrique)
    autre = Rubrique(nom="Autre", type=TypeRubrique.CONSTANT, valeur=Decimal("50"), date_application=date(2025, 1, 1))
    autre.set_collecteur_ids([3])
    session.add(autre)
    inactive = Rubrique(nom="Ancienne", type=TypeRubrique.PERCENTAGE, valeur=Decimal("5"),
                        date_application=date(2024, 1, 1), active=False)
    inactive.set_collecteur_ids([1])
    session.add(inactive)
    session.commit()
    return tier.id


def test_load_parametres(engine):
    """Paramètres actifs des trois niveaux, paliers triés"""
    with Session(engine) as session:
        tier_id = _seed(session)
        parametres = load_parametres(session, client_id=101, collecteur_id=1, agence_id=10)

    assert sorted(p.type.value for p in parametres) == ["PERCENTAGE", "TIER"]
    tier = next(p for p in parametres if p.id == tier_id)
    assert [p.montant_min for p in tier.paliers] == [Decimal("0"), Decimal("1000")]
    assert tier.paliers[1].montant_max is None

    # Sans paramètre client actif, le collecteur l'emporte
    assert resolve(101, 1, 10, None, date(2025, 1, 31), parametres).id == tier_id


def test_load_parametres_without_scope(engine):
    """Aucun critère -> liste vide"""
    with Session(engine) as session:
        _seed(session)
        assert load_parametres(session) == []


def test_load_rubriques(engine):
    """Rubriques actives affectées au collecteur"""
    with Session(engine) as session:
        _seed(session)
        rubriques = load_rubriques(session, 1)

    assert [r.nom for r in rubriques] == ["Prime"]
    assert rubriques[0].collecteur_ids == [1, 2]
    assert rubriques[0].format_valeur() == "1 000 FCFA"
