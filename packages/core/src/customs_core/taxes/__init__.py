from customs_core.taxes.bands import BandPolicy, BandRule
from customs_core.taxes.calculator import calculate_cascade, calculate_taxes
from customs_core.taxes.models import BandAssignment, CustomsBand, TaxBreakdownLine, TaxCalculation

__all__ = [
    "BandAssignment",
    "BandPolicy",
    "BandRule",
    "CustomsBand",
    "TaxBreakdownLine",
    "TaxCalculation",
    "calculate_cascade",
    "calculate_taxes",
]
