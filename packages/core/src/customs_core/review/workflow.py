from __future__ import annotations

import logging
from decimal import Decimal

from customs_core.liquidation.models import Liquidation, Restriction
from customs_core.packs.loader import ReferencePack
from customs_core.regulatory.rules import RegulatoryRuleEngine
from customs_core.review.search import DEFAULT_LIMIT, search_tariffs
from customs_core.tariffs.models import TariffEntry
from customs_core.tariffs.store import TariffReferenceStore
from customs_core.taxes.bands import BandPolicy
from customs_core.taxes.calculator import calculate_taxes
from customs_core.utils.money import parse_amount

logger = logging.getLogger(__name__)


def split_observations(block: str | None) -> list[str]:
    if not block:
        return []
    return [line.strip() for line in block.splitlines() if line.strip()]



def recalculate(
    liquidation: Liquidation,
    entry: TariffEntry,
    manual_cif: Decimal | float | int | str | None = None,
    observations: str | None = None,
    *,
    rules: RegulatoryRuleEngine | None = None,
    bands: BandPolicy | None = None,
) -> Liquidation:
    """Re-liquidate a package against an operator-selected tariff entry.

    ``manual_cif`` replaces the stored CIF only when it parses to a positive
    amount. The tax cascade always runs for the selected entry. With ``rules``
    the restrictions are rebuilt for the new code; with ``bands`` the band and
    handling fee follow the new CIF, and a band that requires a broker keeps
    the package in manual review. Without them those fields are left as they
    were, as are additional fees.
    """
    override = parse_amount(manual_cif)
    cif = override if override is not None and override > 0 else liquidation.cif_value
    taxes = calculate_taxes(entry, cif)
    update: dict[str, object] = {
        "tariff_code": entry.code,
        "tariff_description": entry.description,
        "cif_value": taxes.cif_value,
        "duty_percent": taxes.duty_percent,
        "duty_amount": taxes.duty_amount,
        "consumption_percent": taxes.consumption_percent,
        "consumption_amount": taxes.consumption_amount,
        "vat_percent": taxes.vat_percent,
        "vat_amount": taxes.vat_amount,
        "total_taxes": taxes.total_taxes,
        "total_payable": taxes.total_payable,
        "status": "calculated",
        "requires_manual_review": False,
        "manual_review_reason": None,
        "observations": [*liquidation.observations, *split_observations(observations)],
    }
    if rules is not None:
        restrictions = [Restriction.from_alert(alert) for alert in rules.get_required_permits(entry)]
        update["restrictions"] = restrictions
        update["has_restrictions"] = bool(restrictions)
    if bands is not None:
        band = bands.assign(taxes.cif_value, liquidation.description, entry.category)
        update["customs_category"] = band.band
        update["customs_fee"] = band.handling_fee
        if band.requires_broker:
            update["status"] = "requires_manual_review"
            update["requires_manual_review"] = True
            update["manual_review_reason"] = band.reason
    updated = liquidation.model_copy(update=update)
    logger.info(
        "Manual review of %s: %s -> %s, CIF %s, band %s, total %s",
        liquidation.tracking_guide,
        liquidation.tariff_code,
        entry.code,
        taxes.cif_value,
        updated.customs_category,
        taxes.total_payable,
    )
    return updated


class ManualReviewWorkflow:
    def __init__(
        self,
        store: TariffReferenceStore,
        rules: RegulatoryRuleEngine,
        bands: BandPolicy,
    ) -> None:
        self._store = store
        self._rules = rules
        self._bands = bands

    @classmethod
    def from_pack(cls, pack: ReferencePack) -> ManualReviewWorkflow:
        return cls(pack.store, pack.rules, pack.bands)

    @property
    def store(self) -> TariffReferenceStore:
        return self._store

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> list[TariffEntry]:
        return search_tariffs(query, self._store, limit)

    def recalculate(
        self,
        liquidation: Liquidation,
        code: str,
        manual_cif: Decimal | float | int | str | None = None,
        observations: str | None = None,
    ) -> Liquidation:
        return recalculate(
            liquidation,
            self._store.require(code),
            manual_cif,
            observations,
            rules=self._rules,
            bands=self._bands,
        )
