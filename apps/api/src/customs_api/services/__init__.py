from customs_api.services.job_store import ManifestJobStore
from customs_api.services.manifest_store import ManifestStore

__all__ = ["ManifestJobStore", "ManifestStore"]
