from __future__ import annotations

import pytest
from customs_api.db.models import LiquidationRecord, Manifest
from customs_api.services.manifest_store import ManifestStore
from sqlalchemy.exc import SQLAlchemyError


@pytest.fixture
def batch(app, sample_rows):
    return app.state.liquidation_service.process_batch(sample_rows, "MAN-STORE")


def test_save_and_reload_liquidations(session, batch) -> None:
    store = ManifestStore()
    manifest = store.save(session, batch, "aduana_pa")

    assert manifest.batch_status == "completed"
    assert manifest.pack_fingerprint == batch.pack_fingerprint
    assert store.liquidations_for(session, "MAN-STORE") == batch.liquidations


def test_failed_save_rolls_back(session, batch, monkeypatch) -> None:
    def _fail() -> None:
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(session, "commit", _fail)

    with pytest.raises(SQLAlchemyError):
        ManifestStore().save(session, batch, "aduana_pa")

    monkeypatch.undo()
    assert session.get(Manifest, "MAN-STORE") is None
    assert session.query(LiquidationRecord).count() == 0


def test_update_liquidation_refreshes_summary(session, batch) -> None:
    store = ManifestStore()
    store.save(session, batch, "aduana_pa")
    paid = batch.liquidations[0].mark_paid()

    assert store.update_liquidation(session, "MAN-STORE", paid) == paid
    assert store.liquidations_for(session, "MAN-STORE")[0].status == "paid"
    assert store.update_liquidation(session, "NOPE", paid) is None


def test_update_status_validates_value(session, batch) -> None:
    store = ManifestStore()
    store.save(session, batch, "aduana_pa")

    with pytest.raises(ValueError):
        store.update_status(session, "MAN-STORE", "perdido")
    assert store.update_status(session, "NOPE", "archivado") is None
    assert store.update_status(session, "MAN-STORE", "archivado").status == "archivado"


def test_delete_cascades_to_liquidations(session, batch) -> None:
    store = ManifestStore()
    store.save(session, batch, "aduana_pa")

    assert store.delete(session, "MAN-STORE") is True
    assert store.delete(session, "MAN-STORE") is False
    assert session.query(LiquidationRecord).count() == 0
