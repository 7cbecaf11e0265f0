"""
Tests pour la répartition collecteur / EMF / taxes.
"""
from decimal import Decimal

from collecte.models import CommissionType
from collecte.schemas import CommissionCalculation, Mouvement
from collecte.services.commission_calculator import calculate
from collecte.services.commission_distributor import (
    COMPTE_PASSAGE_COMMISSION,
    COMPTE_PRODUIT_EMF,
    COMPTE_TAXE,
    distribute,
    sum_calculations,
)


def _calc(client_id, base, tva):
    return CommissionCalculation(
        client_id=client_id,
        montant_collecte=Decimal("1"),
        commission_base=Decimal(base),
        tva=Decimal(tva),
        commission_net=Decimal(base) - Decimal(tva),
        type_commission=CommissionType.FIXED,
    )


def _solde(mouvements, compte):
    credit = sum((m.montant for m in mouvements if m.compte_credit == compte), Decimal("0"))
    debit = sum((m.montant for m in mouvements if m.compte_debit == compte), Decimal("0"))
    return credit - debit


def test_distribute_scenario_collecteur_experimente(rules, agence_2pct):
    """Scénario complet : 10 000 et 20 000 à 2 %, collecteur de 12 mois"""
    calculations = [
        calculate(Decimal("10000"), agence_2pct, rules, client_id=101),
        calculate(Decimal("20000"), agence_2pct, rules, client_id=102),
    ]
    distribution = distribute(1, calculations, rules, rules.is_nouveau_collecteur(12))

    assert distribution.total_commissions == Decimal("600.00")
    assert distribution.total_tva == Decimal("115.50")
    assert distribution.remuneration_collecteur == Decimal("420.00")
    assert distribution.part_emf == Decimal("180.00")
    assert distribution.tva_emf == Decimal("34.65")
    assert distribution.deficit_charge == Decimal("0")
    assert distribution.nouveau_collecteur is False
    assert distribution.nombre_clients == 2


def test_distribute_movements_balance_passage_account(rules, agence_2pct):
    """Le compte de passage commission est soldé par la répartition"""
    calculations = [
        calculate(Decimal("10000"), agence_2pct, rules, client_id=101),
        calculate(Decimal("20000"), agence_2pct, rules, client_id=102),
    ]
    distribution = distribute(1, calculations, rules, False)
    mouvements = distribution.mouvements

    assert _solde(mouvements, COMPTE_PASSAGE_COMMISSION) == Decimal("0")
    assert _solde(mouvements, "REMUNERATION:1") == Decimal("420.00")
    assert _solde(mouvements, COMPTE_PRODUIT_EMF) == Decimal("145.35")
    assert _solde(mouvements, COMPTE_TAXE) == Decimal("34.65")
    assert Mouvement(
        compte_debit="CLIENT:101", compte_credit="CPT", montant=Decimal("38.50"),
        libelle="TVA commission - Client 101",
    ) in mouvements


def test_sum_calculations_exact():
    """Additivité exacte : dix fois 0.10 font 1.00"""
    calculations = [_calc(i, "0.10", "0.02") for i in range(10)]
    totals = sum_calculations(calculations)

    assert totals.total_commissions == Decimal("1.00")
    assert totals.total_tva == Decimal("0.20")


def test_distribute_split_conservation(rules):
    """Rémunération + part EMF = total des commissions"""
    calculations = [_calc(1, "333.33", "64.17"), _calc(2, "0.01", "0.00")]
    distribution = distribute(1, calculations, rules, False)

    assert distribution.remuneration_collecteur == Decimal("233.34")
    assert distribution.remuneration_collecteur + distribution.part_emf == distribution.total_commissions


def test_distribute_nouveau_collecteur(rules):
    """Collecteur de 1 mois : rémunération fixe, pas 70 % de 500 000"""
    calculations = [_calc(1, "500000", "96250.00")]
    distribution = distribute(1, calculations, rules, rules.is_nouveau_collecteur(1))

    assert distribution.nouveau_collecteur is True
    assert distribution.remuneration_collecteur == Decimal("40000")
    assert distribution.part_emf == Decimal("460000")
    assert distribution.tva_emf == Decimal("88550.00")
    assert distribution.deficit_charge == Decimal("0")


def test_distribute_nouveau_collecteur_deficit(rules):
    """Rémunération fixe supérieure aux commissions : complément du compte de charge"""
    calculations = [_calc(1, "600", "115.50")]
    distribution = distribute(1, calculations, rules, True)

    assert distribution.part_emf == Decimal("0")
    assert distribution.tva_emf == Decimal("0.00")
    assert distribution.deficit_charge == Decimal("39400")
    assert _solde(distribution.mouvements, "REMUNERATION:1") == Decimal("40000")
    assert _solde(distribution.mouvements, "CHARGE:1") == Decimal("-39400")
    assert _solde(distribution.mouvements, COMPTE_PASSAGE_COMMISSION) == Decimal("0")


def test_distribute_empty(rules):
    """Aucun calcul -> totaux nuls, aucun mouvement"""
    distribution = distribute(1, [], rules, False)

    assert distribution.total_commissions == Decimal("0")
    assert distribution.remuneration_collecteur == Decimal("0.00")
    assert distribution.part_emf == Decimal("0")
    assert distribution.mouvements == []
