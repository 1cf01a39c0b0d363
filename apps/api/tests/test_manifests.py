from __future__ import annotations

import orjson
from customs_api.db.models import LiquidationRecord, ManifestJob


def _create(client, rows, manifest_id: str = "MAN-100") -> dict:
    response = client.post("/v1/manifests", json={"manifest_id": manifest_id, "rows": rows})
    assert response.status_code == 200
    return response.json()


def test_sync_manifest_is_liquidated_and_stored(client, sample_rows) -> None:
    payload = _create(client, sample_rows)

    assert payload["manifest_id"] == "MAN-100"
    assert payload["status"] == "procesado"
    assert payload["batch_status"] == "completed"
    assert payload["processed_rows"] == 3
    first, second, third = payload["liquidations"]
    assert first["tracking_guide"] == "PA-001"
    assert first["customs_category"] == "C"
    assert first["total_payable"] == "535.00"
    assert second["customs_category"] == "B"
    assert second["total_charges"] == "2.00"
    assert third["customs_category"] == "D"
    assert third["status"] == "requires_manual_review"
    assert payload["summary"]["total_cif"] == "3080.00"
    assert payload["summary"]["requires_review"] == 1

    stored = client.get("/v1/manifests/MAN-100").json()
    assert [item["tracking_guide"] for item in stored["liquidations"]] == ["PA-001", "PA-002", "PA-003"]
    assert stored["liquidations"][0] == first


def test_manifest_id_is_generated_when_missing(client, sample_rows) -> None:
    payload = client.post("/v1/manifests", json={"rows": sample_rows[:1]}).json()

    assert payload["manifest_id"].startswith("MAN-")
    assert client.get(f"/v1/manifests/{payload['manifest_id']}").status_code == 200


def test_empty_manifest_is_rejected(client) -> None:
    response = client.post("/v1/manifests", json={"rows": []})

    assert response.status_code == 400


def test_resubmitting_manifest_replaces_it(client, sample_rows, session) -> None:
    _create(client, sample_rows)
    _create(client, sample_rows[:1])

    listing = client.get("/v1/manifests").json()["manifests"]
    assert [item["manifest_id"] for item in listing] == ["MAN-100"]
    assert listing[0]["processed_rows"] == 1
    assert session.query(LiquidationRecord).count() == 1


def test_async_manifest_enqueues_job(client, app, sample_rows) -> None:
    response = client.post(
        "/v1/manifests",
        json={"manifest_id": "MAN-200", "rows": sample_rows, "mode": "async"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "queued"
    assert payload["manifest_id"] == "MAN-200"
    job_id = payload["job_id"]
    assert app.state.queue.enqueued == [
        (job_id, {"manifest_id": "MAN-200", "pack": "aduana_pa", "rows": sample_rows})
    ]

    session = app.state.SessionLocal()
    try:
        job = session.get(ManifestJob, job_id)
        assert job is not None
        assert job.status == "queued"
        assert job.total_rows == 3
        assert orjson.loads(job.payload_json)["manifest_id"] == "MAN-200"
    finally:
        session.close()
    assert client.get("/v1/manifests/MAN-200").status_code == 404


def test_status_transitions(client, sample_rows) -> None:
    _create(client, sample_rows)

    updated = client.patch("/v1/manifests/MAN-100/status", json={"status": "revisado"})
    invalid = client.patch("/v1/manifests/MAN-100/status", json={"status": "borrado"})
    missing = client.patch("/v1/manifests/NOPE/status", json={"status": "revisado"})

    assert updated.status_code == 200
    assert updated.json()["status"] == "revisado"
    assert invalid.status_code == 400
    assert missing.status_code == 404


def test_manual_review_recalculates_and_clears_flag(client, sample_rows) -> None:
    _create(client, sample_rows)

    response = client.post(
        "/v1/manifests/MAN-100/liquidations/pa-003/review",
        json={"code": "8471.30.00.00", "cif": "1500", "observations": "Factura verificada\nCorredor notificado"},
    )

    assert response.status_code == 200
    liquidation = response.json()
    assert liquidation["status"] == "calculated"
    assert liquidation["requires_manual_review"] is False
    assert liquidation["customs_category"] == "C"
    assert liquidation["vat_amount"] == "105.00"
    assert liquidation["total_payable"] == "1605.00"
    assert liquidation["observations"][-2:] == ["Factura verificada", "Corredor notificado"]

    stored = client.get("/v1/manifests/MAN-100").json()
    assert stored["liquidations"][2]["total_payable"] == "1605.00"
    assert stored["summary"]["requires_review"] == 0


def test_manual_review_with_manual_cif(client, sample_rows) -> None:
    _create(client, sample_rows)

    liquidation = client.post(
        "/v1/manifests/MAN-100/liquidations/PA-001/review",
        json={"code": "8528.72.00.00", "cif": "100"},
    ).json()

    assert liquidation["cif_value"] == "100.00"
    assert liquidation["duty_amount"] == "10.00"
    assert liquidation["vat_amount"] == "7.70"
    assert liquidation["total_payable"] == "117.70"
    assert liquidation["customs_category"] == "B"
    assert liquidation["customs_fee"] == "2.00"


def test_manual_review_keeps_broker_band_in_review(client, sample_rows) -> None:
    _create(client, sample_rows)

    liquidation = client.post(
        "/v1/manifests/MAN-100/liquidations/PA-003/review", json={"code": "8471.30.00.00"}
    ).json()
    blocked = client.post("/v1/manifests/MAN-100/liquidations/PA-003/pay")

    assert liquidation["customs_category"] == "D"
    assert liquidation["status"] == "requires_manual_review"
    assert "corredor" in liquidation["manual_review_reason"]
    assert liquidation["total_payable"] == "2675.00"
    assert [item["authority"] for item in liquidation["restrictions"]] == ["ACODECO"]
    assert blocked.status_code == 409


def test_manual_review_errors(client, sample_rows) -> None:
    _create(client, sample_rows)

    unknown_code = client.post(
        "/v1/manifests/MAN-100/liquidations/PA-003/review", json={"code": "0000.00.00.00"}
    )
    unknown_guide = client.post(
        "/v1/manifests/MAN-100/liquidations/PA-999/review", json={"code": "8471.30.00.00"}
    )
    unknown_manifest = client.post(
        "/v1/manifests/NOPE/liquidations/PA-003/review", json={"code": "8471.30.00.00"}
    )

    assert unknown_code.status_code == 400
    assert unknown_guide.status_code == 404
    assert unknown_manifest.status_code == 404


def test_payment_requires_calculated_liquidation(client, sample_rows) -> None:
    _create(client, sample_rows)

    blocked = client.post("/v1/manifests/MAN-100/liquidations/PA-003/pay")
    paid = client.post("/v1/manifests/MAN-100/liquidations/PA-001/pay")
    again = client.post("/v1/manifests/MAN-100/liquidations/PA-001/pay")
    review_after_payment = client.post(
        "/v1/manifests/MAN-100/liquidations/PA-001/review", json={"code": "8471.30.00.00"}
    )

    assert blocked.status_code == 409
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert again.status_code == 409
    assert review_after_payment.status_code == 409
    stored = client.get("/v1/manifests/MAN-100").json()
    assert stored["summary"]["by_status"]["paid"] == 1


def test_delete_manifest(client, sample_rows, session) -> None:
    _create(client, sample_rows)

    deleted = client.delete("/v1/manifests/MAN-100")
    missing = client.delete("/v1/manifests/MAN-100")

    assert deleted.status_code == 200
    assert missing.status_code == 404
    assert client.get("/v1/manifests/MAN-100").status_code == 404
    assert session.query(LiquidationRecord).count() == 0


def test_stats_aggregate_manifests(client, sample_rows) -> None:
    _create(client, sample_rows, "MAN-1")
    _create(client, sample_rows[:2], "MAN-2")
    client.patch("/v1/manifests/MAN-2/status", json={"status": "exportado"})

    stats = client.get("/v1/stats").json()

    assert stats["manifests"] == 2
    assert stats["by_status"] == {"exportado": 1, "procesado": 1}
    assert stats["total_rows"] == 5
    assert stats["requires_review"] == 1
    assert stats["total_cif"] == "3660.00"


def test_repeated_guides_are_addressed_by_row(client, sample_rows) -> None:
    rows = [
        {**sample_rows[0], "tracking_guide": "DUP-1", "recipient": "A"},
        {**sample_rows[0], "tracking_guide": "dup-1", "recipient": "B"},
    ]
    created = _create(client, rows, "MAN-DUP")
    assert all(item["status"] == "requires_manual_review" for item in created["liquidations"])
    assert all("duplicada" in item["manual_review_reason"] for item in created["liquidations"])

    unaddressed = client.post(
        "/v1/manifests/MAN-DUP/liquidations/DUP-1/review", json={"code": "8471.30.00.00"}
    )
    reviewed = client.post(
        "/v1/manifests/MAN-DUP/liquidations/DUP-1/review?row=2", json={"code": "8471.30.00.00"}
    )
    paid = client.post("/v1/manifests/MAN-DUP/liquidations/DUP-1/pay?row=2")
    missing_row = client.post("/v1/manifests/MAN-DUP/liquidations/DUP-1/pay?row=5")

    assert unaddressed.status_code == 409
    assert reviewed.status_code == 200
    assert reviewed.json()["recipient"] == "B"
    assert reviewed.json()["status"] == "calculated"
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert missing_row.status_code == 404
    stored = client.get("/v1/manifests/MAN-DUP").json()
    first, second = stored["liquidations"]
    assert (first["recipient"], first["status"]) == ("A", "requires_manual_review")
    assert (second["recipient"], second["status"]) == ("B", "paid")
