# tests/api/test_cells_api.py
from __future__ import annotations

import httpx
import pytest

pytestmark = [pytest.mark.asyncio, pytest.mark.contract]


async def test_create_get_list(client: httpx.AsyncClient):
    r = await client.post("/cells", json={"code": "cell:s-10", "cell_type": "storage", "attributes": {"row": 3}})
    assert r.status_code == 201, r.text
    cell = r.json()
    assert cell["code"] == "S-10"
    assert cell["cell_type"] == "storage"
    assert cell["is_active"] is True
    assert cell["is_blocked"] is False
    assert cell["attributes"] == {"row": 3}

    r = await client.post("/cells", json={"code": "S-10", "cell_type": "bin"})
    assert r.status_code == 409
    assert r.json()["error_code"] == "CELL_EXISTS"

    r = await client.post("/cells", json={"code": "Q1", "cell_type": "quarantine"})
    assert r.status_code == 422
    assert r.json()["error_code"] == "INVALID_CELL_TYPE"

    r = await client.get("/cells/s-10")
    assert r.status_code == 200
    assert r.json()["id"] == cell["id"]

    r = await client.get("/cells/NOPE")
    assert r.status_code == 404
    assert r.json()["error_code"] == "NOT_FOUND"

    r = await client.get("/cells", params={"cell_type": "storage"})
    assert [c["code"] for c in r.json()] == ["S-10"]


async def test_blocked_cell_rejects_moves(client: httpx.AsyncClient, cells, place_unit):
    await place_unit("4001", "B1")
    s1 = cells["S1"].id

    r = await client.post(f"/cells/{s1}/block", json={"blocked": True, "actor": "lead"})
    assert r.status_code == 200
    assert r.json()["is_blocked"] is True

    r = await client.post("/units/move", json={"barcode": "4001", "to_cell_code": "S1", "moved_by": "alice"})
    assert r.status_code == 409
    assert r.json()["error_code"] == "CELL_UNAVAILABLE"

    await client.post(f"/cells/{s1}/block", json={"blocked": False, "actor": "lead"})
    r = await client.post("/units/move", json={"barcode": "4001", "to_cell_code": "S1", "moved_by": "alice"})
    assert r.status_code == 200

    r = await client.get(f"/cells/{s1}/units")
    assert [u["barcode"] for u in r.json()] == ["4001"]

    r = await client.get(f"/cells/{s1}/history")
    assert [h["source"] for h in r.json()] == ["move"]


async def test_invalid_cell_code_problem(client: httpx.AsyncClient, cells, place_unit):
    await place_unit("4002", "B1")
    r = await client.post("/units/move", json={"barcode": "4002", "to_cell_code": "CELL: ", "moved_by": "alice"})
    assert r.status_code == 422
    assert r.json()["error_code"] == "INVALID_CELL_CODE"


async def test_health_and_metrics(client: httpx.AsyncClient):
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}

    r = await client.get("/")
    assert r.json()["name"] == "RWMS"

    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "rwms_unit_moves_total" in r.text
    assert "http_requests_total" in r.text
