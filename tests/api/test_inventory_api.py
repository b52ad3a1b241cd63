# tests/api/test_inventory_api.py
from __future__ import annotations

import httpx
import pytest

pytestmark = [pytest.mark.asyncio, pytest.mark.contract]


async def test_inventory_round_over_http(client: httpx.AsyncClient, cells, place_unit):
    a = await place_unit("7101", "S1")
    b = await place_unit("7102", "S1")

    r = await client.get("/inventory/status")
    assert r.status_code == 200
    assert r.json()["active"] is False

    r = await client.post("/inventory/start", json={"actor": "lead"})
    assert r.status_code == 200, r.text
    status = r.json()
    assert status["active"] is True
    assert status["total"] == len(cells)

    r = await client.post("/inventory/start", json={"actor": "lead"})
    assert r.status_code == 409
    assert r.json()["error_code"] == "ALREADY_ACTIVE"

    s1 = cells["S1"].id
    r = await client.post(f"/inventory/cells/{s1}/claim", json={"worker_id": "w1"})
    assert r.status_code == 200
    assert sorted(r.json()["expected_unit_ids"]) == sorted([a, b])

    r = await client.post(f"/inventory/cells/{s1}/claim", json={"worker_id": "w2"})
    assert r.status_code == 409
    assert r.json()["error_code"] == "ALREADY_CLAIMED"

    r = await client.post(f"/inventory/cells/{s1}/scan", json={"worker_id": "w1", "barcode": "7101"})
    assert r.status_code == 200
    assert r.json()["known"] is True

    r = await client.post(f"/inventory/cells/{s1}/scan", json={"worker_id": "w1", "barcode": "7101"})
    assert r.status_code == 409
    assert r.json()["error_code"] == "DUPLICATE"

    r = await client.post(f"/inventory/cells/{s1}/save", json={"worker_id": "w1"})
    assert r.status_code == 200, r.text
    saved = r.json()
    assert saved["diff"] == {"missing": [b], "extra": [], "unknown": []}
    assert saved["cleared_unit_ids"] == [b]
    assert saved["session_closed"] is False

    r = await client.get("/inventory/tasks", params={"status": "scanned"})
    assert [t["cell_id"] for t in r.json()] == [s1]

    r = await client.get("/units/7102")
    assert r.json()["status"] == "not_located"

    r = await client.get("/inventory/report")
    report = r.json()
    assert report["active"] is True
    row = next(c for c in report["cells"] if c["cell_id"] == s1)
    assert row["missing"] == [b]
    assert row["scanned_by"] == "w1"

    r = await client.post("/inventory/stop", json={"actor": "lead"})
    assert r.status_code == 200
    assert r.json()["end_reason"] == "manual"

    r = await client.post("/inventory/stop", json={"actor": "lead"})
    assert r.status_code == 409
    assert r.json()["error_code"] == "INVENTORY_NOT_ACTIVE"


async def test_save_with_explicit_barcodes(client: httpx.AsyncClient, cells, place_unit):
    c = await place_unit("7201", "S2")
    await client.post("/inventory/start", json={"actor": "lead"})

    s1 = cells["S1"].id
    r = await client.post(f"/inventory/cells/{s1}/save", json={"barcodes": ["7201", "555-01"]})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["diff"]["extra"] == [c]
    assert body["placed_unit_ids"] == [c]
    assert body["diff"]["unknown"] == ["55501"]
    assert body["failures"] == []

    r = await client.get("/units/7201")
    assert r.json()["cell_id"] == s1


async def test_save_reports_unreadable_barcode_without_failing(client: httpx.AsyncClient, cells, place_unit):
    c = await place_unit("7251", "S2")
    await client.post("/inventory/start", json={"actor": "lead"})

    s1 = cells["S1"].id
    r = await client.post(f"/inventory/cells/{s1}/save", json={"barcodes": ["7251", "NO-LABEL"]})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["placed_unit_ids"] == [c]
    assert [(f["barcode"], f["code"], f["unit_id"]) for f in body["failures"]] == [
        ("NO-LABEL", "INVALID_BARCODE", None)
    ]

    r = await client.get("/units/7251")
    assert r.json()["cell_id"] == s1


async def test_inventory_errors(client: httpx.AsyncClient, cells):
    r = await client.post(f"/inventory/cells/{cells['S1'].id}/claim", json={"worker_id": "w1"})
    assert r.status_code == 409
    assert r.json()["error_code"] == "INVENTORY_NOT_ACTIVE"

    r = await client.post("/inventory/start", json={})
    assert r.status_code == 422
    assert r.json()["error_code"] == "request_validation_error"
