from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

from customs_core.config import ValuationPolicy, get_pack_name, get_packs_root, get_valuation_policy
from customs_core.errors import PackLoadError
from customs_core.liquidation.rows import ManifestRow
from customs_core.packs.files import read_pack_json
from customs_core.utils.money import HUNDRED, ZERO, format_amount, percent_of, to_amount
from customs_core.utils.normalize import normalize_text
from customs_core.valuation.models import (
    ReferenceProduct,
    SubvaluationResult,
    SubvaluationSummary,
    UndervaluedProduct,
)

logger = logging.getLogger(__name__)

NAME_WEIGHT = 3
KEYWORD_WEIGHT = 2
CATEGORY_WEIGHT = 1
TOP_PRODUCTS = 5


def load_reference_products(path: Path) -> list[ReferenceProduct]:
    if not path.exists():
        return []
    payload = read_pack_json(path)
    if not isinstance(payload, list):
        raise PackLoadError(f"{path.name} must contain a list of reference products")
    try:
        products = [ReferenceProduct.model_validate(entry) for entry in payload]
    except ValidationError as exc:
        raise PackLoadError(f"Invalid reference product in {path.name}: {exc}") from exc
    return sorted(products, key=lambda item: item.product_name)


class SubvaluationDetector:
    def __init__(
        self,
        products: Iterable[ReferenceProduct],
        policy: ValuationPolicy | None = None,
    ) -> None:
        self._products = list(products)
        self._policy = policy or get_valuation_policy()
        self._terms = [
            (
                product,
                normalize_text(product.product_name),
                [term for term in (normalize_text(word) for word in product.keywords) if term],
                normalize_text(product.category),
            )
            for product in self._products
        ]

    @classmethod
    def from_pack(cls, root: Path | None = None, pack_name: str | None = None) -> SubvaluationDetector:
        pack_path = (root or get_packs_root()) / (pack_name or get_pack_name())
        return cls(load_reference_products(pack_path / "reference_products.json"))

    def detect_product(self, description: str) -> ReferenceProduct | None:
        text = normalize_text(description)
        if not text:
            return None
        best: tuple[int, ReferenceProduct] | None = None
        for product, name, keywords, category in self._terms:
            score = 0
            if name and name in text:
                score = NAME_WEIGHT
            elif any(term in text for term in keywords):
                score = KEYWORD_WEIGHT
            elif category and category in text:
                score = CATEGORY_WEIGHT
            if score and (best is None or score > best[0]):
                best = (score, product)
        return best[1] if best else None

    def evaluate(self, row: ManifestRow, package_id: str | None = None) -> SubvaluationResult:
        declared = to_amount(row.fob_value)
        package = package_id or row.tracking_guide
        product = self.detect_product(row.description)
        if product is None or product.min_price <= 0:
            return SubvaluationResult(
                package_id=package,
                tracking_number=row.tracking_guide,
                declared_value=declared,
                description=row.description,
                detected_product=product.product_name if product else None,
                valuation_state="requires_manual_review",
                alert_level="warning",
                message="Producto sin precio de referencia; requiere revisión manual del valor",
                required_action="Verificar el valor con factura comercial",
            )

        reference_min = to_amount(product.min_price)
        shortfall = reference_min - declared
        common = {
            "package_id": package,
            "tracking_number": row.tracking_guide,
            "declared_value": declared,
            "description": row.description,
            "detected_product": product.product_name,
            "reference_min_price": reference_min,
            "reference_max_price": to_amount(product.max_price),
        }
        if shortfall <= 0:
            return SubvaluationResult(
                **common,
                difference_percent=ZERO,
                valuation_state="ok",
                alert_level="none",
                message="Valor declarado dentro del rango de referencia",
                required_action="Ninguna",
            )

        difference_percent = to_amount(shortfall / reference_min * HUNDRED)
        if difference_percent < Decimal(str(self._policy.warning_pct)):
            return SubvaluationResult(
                **common,
                difference_percent=difference_percent,
                difference_amount=shortfall,
                valuation_state="suspicious",
                alert_level="warning",
                message=(
                    f"Valor declarado {difference_percent}% por debajo del mínimo de referencia "
                    f"para {product.product_name} (${format_amount(reference_min)})"
                ),
                required_action="Solicitar factura comercial",
            )

        is_blocked = difference_percent > Decimal(str(self._policy.block_pct))
        return SubvaluationResult(
            **common,
            difference_percent=difference_percent,
            difference_amount=shortfall,
            valuation_state="underdeclared",
            alert_level="critical",
            message=(
                f"Posible subvaluación: {difference_percent}% por debajo del mínimo de referencia "
                f"para {product.product_name} (${format_amount(reference_min)})"
            ),
            required_action=(
                "Retener el paquete hasta comprobar el valor"
                if is_blocked
                else "Requerir factura y comprobante de pago"
            ),
            is_blocked=is_blocked,
        )

    def analyze(self, rows: Iterable[ManifestRow]) -> list[SubvaluationResult]:
        results = [
            self.evaluate(row, row.tracking_guide or f"PKG-{index}")
            for index, row in enumerate(rows, start=1)
        ]
        flagged = sum(1 for result in results if result.valuation_state != "ok")
        logger.info("Valuation analysis: %d packages, %d flagged", len(results), flagged)
        return results

    def summarize(self, results: Iterable[SubvaluationResult]) -> SubvaluationSummary:
        return summarize_subvaluation(results, self._policy)


def summarize_subvaluation(
    results: Iterable[SubvaluationResult],
    policy: ValuationPolicy | None = None,
) -> SubvaluationSummary:
    policy = policy or get_valuation_policy()
    results = list(results)
    counts = {"ok": 0, "suspicious": 0, "underdeclared": 0, "requires_manual_review": 0}
    total_declared = ZERO
    total_reference = ZERO
    total_difference = ZERO
    by_product: dict[str, tuple[int, Decimal]] = {}
    for result in results:
        counts[result.valuation_state] += 1
        total_declared += result.declared_value
        if result.reference_min_price is not None:
            total_reference += result.reference_min_price
        if result.difference_amount > 0:
            total_difference += result.difference_amount
            product = result.detected_product or result.description
            count, difference = by_product.get(product, (0, ZERO))
            by_product[product] = (count + 1, difference + result.difference_amount)

    top_products = [
        UndervaluedProduct(product=product, count=count, difference=difference)
        for product, (count, difference) in sorted(
            by_product.items(),
            key=lambda item: (-item[1][1], item[0]),
        )[:TOP_PRODUCTS]
    ]
    return SubvaluationSummary(
        total=len(results),
        ok=counts["ok"],
        suspicious=counts["suspicious"],
        underdeclared=counts["underdeclared"],
        requires_manual_review=counts["requires_manual_review"],
        blocked=sum(1 for result in results if result.is_blocked),
        total_declared=total_declared,
        total_reference=total_reference,
        total_difference=total_difference,
        estimated_additional_tax=percent_of(total_difference, policy.additional_tax_rate_pct),
        top_products=top_products,
    )
