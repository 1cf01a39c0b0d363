from customs_core.tariffs.models import TariffEntry
from customs_core.tariffs.store import TariffReferenceStore

__all__ = ["TariffEntry", "TariffReferenceStore"]
