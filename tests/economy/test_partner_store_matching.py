from __future__ import annotations

from types import SimpleNamespace

from drc_loyalty.economy.receipts.matching import normalize_store_name, resolve_partner_store


def _store(name: str, *, active: bool = True) -> SimpleNamespace:
    return SimpleNamespace(name=name, active=active)


def test_normalize_store_name_strips_accents_and_punctuation() -> None:
    assert normalize_store_name("  KIN-Marché!! ") == "kin marche"


def test_resolve_partner_store_prefers_exact_match() -> None:
    kin_marche = _store("Kin Marché")
    kin_marche_gombe = _store("Kin Marché Gombe")

    assert resolve_partner_store("KIN MARCHE", [kin_marche_gombe, kin_marche]) is kin_marche


def test_resolve_partner_store_accepts_close_ocr_spelling() -> None:
    kin_marche = _store("Kin Marché")
    city_market = _store("City Market")

    assert resolve_partner_store("Kin Marchee", [city_market, kin_marche]) is kin_marche


def test_resolve_partner_store_rejects_unrelated_names() -> None:
    assert resolve_partner_store("Pharmacie du Fleuve", [_store("Kin Marché")]) is None


def test_resolve_partner_store_ignores_inactive_partners() -> None:
    assert resolve_partner_store("Kin Marché", [_store("Kin Marché", active=False)]) is None


def test_resolve_partner_store_handles_empty_name() -> None:
    assert resolve_partner_store("!!!", [_store("Kin Marché")]) is None
