from __future__ import annotations

from decimal import Decimal

import pytest
from customs_core.errors import UnknownTariffCodeError
from customs_core.liquidation.models import Liquidation
from customs_core.liquidation.pipeline import LiquidationService
from customs_core.liquidation.rows import ManifestRow
from customs_core.review.search import search_tariffs
from customs_core.review.workflow import ManualReviewWorkflow, recalculate, split_observations


def _pending(cif: str = "40") -> Liquidation:
    return Liquidation(
        manifest_id="MAN-1",
        tracking_guide="PA123",
        customs_category="B",
        cif_value=Decimal(cif),
        customs_fee=Decimal("2.00"),
        status="requires_manual_review",
        requires_manual_review=True,
        manual_review_reason="Sin clasificación arancelaria confiable",
        observations=["Valor no numérico en flete ('n/a'); se usó 0.00"],
    )


def test_search_matches_description_code_and_category(pack) -> None:
    assert [entry.code for entry in search_tariffs("laptop", pack.store)] == ["8471.30.00.00"]
    assert [entry.code for entry in search_tariffs("2402", pack.store)] == ["2402.20.00.00"]
    assert {entry.code for entry in search_tariffs("tabaco", pack.store)} == {
        "2402.20.00.00",
        "9614.00.00.00",
    }


def test_search_uses_keyword_index(pack) -> None:
    assert "8471.30.00.00" in [entry.code for entry in search_tariffs("lenovo", pack.store)]


def test_search_limits_and_short_queries(pack) -> None:
    assert search_tariffs("a", pack.store) == []
    assert search_tariffs("  ", pack.store) == []
    assert len(search_tariffs("de", pack.store)) == 10
    assert len(search_tariffs("de", pack.store, limit=3)) == 3


def test_recalculate_with_manual_cif(pack) -> None:
    entry = pack.store.require("1806.32.00.00")
    updated = recalculate(_pending(), entry, "45", "Factura verificada\n\n  Cliente notificado  \n")
    assert updated.tariff_code == "1806.32.00.00"
    assert updated.cif_value == Decimal("45.00")
    assert updated.duty_amount == Decimal("4.50")
    assert updated.vat_amount == Decimal("3.47")
    assert updated.total_taxes == Decimal("7.97")
    assert updated.total_payable == Decimal("52.97")
    assert updated.status == "calculated"
    assert not updated.requires_manual_review
    assert updated.manual_review_reason is None
    assert updated.observations[-2:] == ["Factura verificada", "Cliente notificado"]
    assert updated.customs_fee == Decimal("2.00")
    assert updated.total_charges == Decimal("9.97")


def test_recalculate_falls_back_to_existing_cif(pack) -> None:
    entry = pack.store.require("1806.32.00.00")
    for override in (None, "", "abc", "-3", 0):
        updated = recalculate(_pending(), entry, override)
        assert updated.cif_value == Decimal("40.00")
        assert updated.total_payable == Decimal("47.08")


def test_recalculate_leaves_original_untouched(pack) -> None:
    original = _pending()
    recalculate(original, pack.store.require("1806.32.00.00"), "45")
    assert original.status == "requires_manual_review"
    assert original.tariff_code is None


def test_workflow_resolves_codes(pack) -> None:
    workflow = ManualReviewWorkflow.from_pack(pack)
    assert workflow.search("whisky")[0].code == "2208.30.00.00"
    updated = workflow.recalculate(_pending("100"), "2208.30.00.00")
    assert updated.consumption_amount == Decimal("11.50")
    with pytest.raises(UnknownTariffCodeError):
        workflow.recalculate(_pending(), "0000.00.00.00")


def test_split_observations() -> None:
    assert split_observations(None) == []
    assert split_observations("uno\r\n\r\ndos") == ["uno", "dos"]


def test_review_rebuilds_restrictions_and_band(pack) -> None:
    row = ManifestRow(tracking_guide="PA9", recipient="Ana Pérez", description="Pollo congelado", fob_value=500)
    classified = LiquidationService(pack).liquidate_row(row, "MAN-1", "2024-05-01T12:00:00+00:00", 1)
    assert classified.tariff_code == "0207.12.00.00"
    assert {item.authority for item in classified.restrictions} >= {"MIDA", "MINSA"}

    workflow = ManualReviewWorkflow.from_pack(pack)
    updated = workflow.recalculate(classified, "8471.30.00.00", "2500")
    assert updated.tariff_code == "8471.30.00.00"
    assert [(item.type, item.authority) for item in updated.restrictions] == [("permit", "ACODECO")]
    assert updated.has_restrictions
    assert updated.customs_category == "D"
    assert updated.customs_fee == Decimal("0.00")
    assert updated.status == "requires_manual_review"
    assert updated.requires_manual_review
    assert "corredor" in updated.manual_review_reason

    mid_value = workflow.recalculate(classified, "8471.30.00.00", "500")
    assert mid_value.customs_category == "C"
    assert mid_value.status == "calculated"
    assert mid_value.total_payable == Decimal("535.00")


def test_review_keeps_low_value_cascade(pack) -> None:
    workflow = ManualReviewWorkflow.from_pack(pack)
    updated = workflow.recalculate(_pending(), "1806.32.00.00", "45")
    assert updated.customs_category == "B"
    assert updated.customs_fee == Decimal("2.00")
    assert updated.total_payable == Decimal("52.97")
    assert updated.status == "calculated"
    assert not updated.has_restrictions
