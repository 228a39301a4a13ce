"""
BOM endpoints, and the builder committing through the real app.
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from procurehub.db.models import AuditLog, Bom, BomItem, UserSession
from procurehub.services.api_client import ProcurementClient
from procurehub.services.bom_builder import BomBuilder, MSG_CREATED, MSG_FAILED


@pytest.fixture
def catalogue(make_product):
    chair = make_product("Ergonomic Chair", base_price="500.00", category="Furniture", uom="pcs")
    desk = make_product("Standing Desk", base_price="1500.00", category="Furniture", uom="pcs")
    monitor = make_product("27in Monitor", base_price="320.00", category="IT Hardware", uom="pcs")
    return chair, desk, monitor


def api_client_for(client, headers) -> ProcurementClient:
    token = headers["Authorization"].split(" ", 1)[1]
    return ProcurementClient(token=token, http_client=client)


# ============= HEADER CRUD =============

def test_create_and_get_bom(client, buyer_headers, buyer):
    resp = client.post("/api/boms", json={"name": "Office Workstation Setup"}, headers=buyer_headers)
    assert resp.status_code == 201
    bom = resp.json()
    assert bom["version"] == "1.0"
    assert bom["item_count"] == 0
    assert bom["created_by"] == buyer.id

    resp = client.get(f"/api/boms/{bom['id']}", headers=buyer_headers)
    assert resp.status_code == 200
    assert resp.json()["items"] == []


def test_create_bom_rejects_inverted_validity_window(client, buyer_headers):
    resp = client.post("/api/boms", json={
        "name": "Bad window",
        "valid_from": "2026-06-01T00:00:00Z",
        "valid_to": "2026-01-01T00:00:00Z",
    }, headers=buyer_headers)
    assert resp.status_code == 422


def test_update_bom_rejects_inverted_validity_window(client, buyer_headers):
    bom = client.post("/api/boms", json={
        "name": "Window", "valid_from": "2026-06-01T00:00:00Z",
    }, headers=buyer_headers).json()

    resp = client.put(f"/api/boms/{bom['id']}", json={"valid_to": "2026-01-01T00:00:00Z"},
                      headers=buyer_headers)
    assert resp.status_code == 400

    resp = client.put(f"/api/boms/{bom['id']}", json={"valid_to": "2026-12-31T00:00:00Z", "version": "2.0"},
                      headers=buyer_headers)
    assert resp.status_code == 200
    assert resp.json()["version"] == "2.0"


def test_list_boms_search(client, buyer_headers):
    client.post("/api/boms", json={"name": "Office Workstation Setup"}, headers=buyer_headers)
    client.post("/api/boms", json={"name": "Lab Bench"}, headers=buyer_headers)

    resp = client.get("/api/boms", params={"search": "office"}, headers=buyer_headers)
    assert [b["name"] for b in resp.json()] == ["Office Workstation Setup"]


def test_missing_bom_is_404(client, buyer_headers):
    assert client.get("/api/boms/999", headers=buyer_headers).status_code == 404
    assert client.delete("/api/boms/999", headers=buyer_headers).status_code == 404


def test_vendor_cannot_touch_boms(client, vendor_login):
    _, headers = vendor_login
    resp = client.post("/api/boms", json={"name": "Nope"}, headers=headers)
    assert resp.status_code == 403


def test_bom_routes_require_login(client):
    assert client.get("/api/boms").status_code in (401, 403)


# ============= ITEMS =============

def test_add_update_delete_item(client, buyer_headers, catalogue):
    chair, _, _ = catalogue
    bom = client.post("/api/boms", json={"name": "Chairs"}, headers=buyer_headers).json()

    resp = client.post(f"/api/boms/{bom['id']}/items", json={
        "product_id": chair.id, "quantity": "4", "uom": "pcs",
        "unit_price": "500.00", "total_price": "2000.00",
    }, headers=buyer_headers)
    assert resp.status_code == 201
    item = resp.json()
    assert Decimal(item["total_price"]) == Decimal("2000.00")

    resp = client.put(f"/api/boms/{bom['id']}/items/{item['id']}",
                      json={"quantity": "5", "total_price": "2500.00"}, headers=buyer_headers)
    assert resp.status_code == 200
    assert Decimal(resp.json()["quantity"]) == 5

    items = client.get(f"/api/boms/{bom['id']}/items", headers=buyer_headers).json()
    assert len(items) == 1

    resp = client.delete(f"/api/boms/{bom['id']}/items/{item['id']}", headers=buyer_headers)
    assert resp.status_code == 200
    assert client.get(f"/api/boms/{bom['id']}/items", headers=buyer_headers).json() == []


def test_add_item_for_unknown_product_is_404(client, buyer_headers):
    bom = client.post("/api/boms", json={"name": "Ghost"}, headers=buyer_headers).json()
    resp = client.post(f"/api/boms/{bom['id']}/items",
                       json={"product_id": 12345, "quantity": "1"}, headers=buyer_headers)
    assert resp.status_code == 404
    assert "12345" in resp.json()["detail"]


def test_item_quantity_must_be_positive(client, buyer_headers, catalogue):
    chair, _, _ = catalogue
    bom = client.post("/api/boms", json={"name": "Zero"}, headers=buyer_headers).json()
    resp = client.post(f"/api/boms/{bom['id']}/items",
                       json={"product_id": chair.id, "quantity": "0"}, headers=buyer_headers)
    assert resp.status_code == 422


def test_item_of_other_bom_is_404(client, buyer_headers, catalogue):
    chair, _, _ = catalogue
    first = client.post("/api/boms", json={"name": "First"}, headers=buyer_headers).json()
    second = client.post("/api/boms", json={"name": "Second"}, headers=buyer_headers).json()
    item = client.post(f"/api/boms/{first['id']}/items",
                       json={"product_id": chair.id, "quantity": "1"}, headers=buyer_headers).json()

    resp = client.delete(f"/api/boms/{second['id']}/items/{item['id']}", headers=buyer_headers)
    assert resp.status_code == 404


def test_delete_bom_removes_items(client, buyer_headers, catalogue, db_session):
    chair, desk, _ = catalogue
    bom = client.post("/api/boms/full", json={
        "name": "Office Workstation Setup",
        "items": [
            {"product_id": chair.id, "quantity": "2", "total_price": "1000.00"},
            {"product_id": desk.id, "quantity": "1", "total_price": "1500.00"},
        ],
    }, headers=buyer_headers).json()

    resp = client.delete(f"/api/boms/{bom['id']}", headers=buyer_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "BOM deleted successfully"}

    assert db_session.query(Bom).count() == 0
    assert db_session.query(BomItem).count() == 0


# ============= FULL / SUMMARY =============

def test_create_full_bom(client, buyer_headers, catalogue):
    chair, desk, _ = catalogue
    resp = client.post("/api/boms/full", json={
        "name": "Office Workstation Setup",
        "items": [
            {"product_id": chair.id, "quantity": "2", "unit_price": "500.00", "total_price": "1000.00"},
            {"product_id": desk.id, "quantity": "1", "unit_price": "1500.00", "total_price": "1500.00"},
        ],
    }, headers=buyer_headers)
    assert resp.status_code == 201
    bom = resp.json()
    assert bom["item_count"] == 2
    assert [i["product_id"] for i in bom["items"]] == [chair.id, desk.id]


def test_full_bom_with_unknown_product_creates_nothing(client, buyer_headers, catalogue, db_session):
    chair, _, _ = catalogue
    resp = client.post("/api/boms/full", json={
        "name": "Half",
        "items": [
            {"product_id": chair.id, "quantity": "1"},
            {"product_id": 999, "quantity": "1"},
        ],
    }, headers=buyer_headers)
    assert resp.status_code == 404
    assert db_session.query(Bom).count() == 0


def test_full_bom_requires_items(client, buyer_headers):
    resp = client.post("/api/boms/full", json={"name": "Empty", "items": []}, headers=buyer_headers)
    assert resp.status_code == 422


def test_bom_summary(client, buyer_headers, catalogue):
    chair, desk, monitor = catalogue
    bom = client.post("/api/boms/full", json={
        "name": "Office Workstation Setup",
        "items": [
            {"product_id": chair.id, "quantity": "2", "total_price": "1000.00"},
            {"product_id": desk.id, "quantity": "1", "total_price": "1500.00"},
            {"product_id": monitor.id, "quantity": "2", "total_price": "640.00"},
        ],
    }, headers=buyer_headers).json()

    summary = client.get(f"/api/boms/{bom['id']}/summary", headers=buyer_headers).json()

    assert summary["item_count"] == 3
    assert Decimal(summary["total_quantity"]) == 5
    assert Decimal(summary["total_value"]) == Decimal("3140.00")
    breakdown = {k: Decimal(v) for k, v in summary["category_breakdown"].items()}
    assert breakdown == {"Furniture": Decimal("2500.00"), "IT Hardware": Decimal("640.00")}


def test_bom_changes_are_audited(client, buyer_headers, db_session):
    bom = client.post("/api/boms", json={"name": "Audited"}, headers=buyer_headers).json()
    client.delete(f"/api/boms/{bom['id']}", headers=buyer_headers)

    actions = [a.action for a in db_session.query(AuditLog).order_by(AuditLog.id).all()]
    assert actions == ["create_bom", "delete_bom"]


# ============= BUILDER AGAINST THE APP =============

def test_builder_commits_office_workstation(client, buyer_headers, catalogue):
    chair, desk, _ = catalogue
    api = api_client_for(client, buyer_headers)

    builder = BomBuilder(catalogue=api.list_products())
    builder.add_product(builder.catalogue[chair.id], quantity=2)
    builder.add_product(builder.catalogue[desk.id])
    assert builder.total_value == Decimal("2500.00")

    notifier = MagicMock()
    bom = builder.submit(api, {"name": "Office Workstation Setup", "version": "1.0"}, notifier=notifier)

    notifier.notify.assert_called_once_with("Success", MSG_CREATED)
    stored = client.get(f"/api/boms/{bom['id']}", headers=buyer_headers).json()
    assert [(i["product_id"], Decimal(i["quantity"]), Decimal(i["total_price"])) for i in stored["items"]] == [
        (chair.id, Decimal("2"), Decimal("1000.00")),
        (desk.id, Decimal("1"), Decimal("1500.00")),
    ]
    summary = client.get(f"/api/boms/{bom['id']}/summary", headers=buyer_headers).json()
    assert Decimal(summary["total_value"]) == Decimal("2500.00")


def test_builder_failure_leaves_no_partial_bom(client, buyer_headers, catalogue, db_session):
    chair, _, _ = catalogue
    api = api_client_for(client, buyer_headers)

    builder = BomBuilder()
    builder.add_product({"id": chair.id, "item_name": chair.item_name, "base_price": "500.00"})
    builder.add_product({"id": 4242, "item_name": "Discontinued", "base_price": "10.00"})

    notifier = MagicMock()
    assert builder.submit(api, {"name": "Doomed"}, notifier=notifier) is None

    notifier.notify.assert_called_once_with("Error", MSG_FAILED, destructive=True)
    assert db_session.query(Bom).count() == 0
    assert db_session.query(BomItem).count() == 0
    assert len(builder) == 2


def test_builder_atomic_commit(client, buyer_headers, catalogue):
    chair, desk, _ = catalogue
    api = api_client_for(client, buyer_headers)

    builder = BomBuilder()
    builder.add_product({"id": chair.id, "item_name": chair.item_name, "base_price": "500.00"}, quantity=2)
    builder.add_product({"id": desk.id, "item_name": desk.item_name, "base_price": "1500.00"})

    bom = builder.submit(api, {"name": "Atomic"}, notifier=MagicMock(), atomic=True)

    assert bom["item_count"] == 2
    assert builder.is_empty


def test_builder_with_revoked_session_is_unauthorized(client, buyer, login_headers, catalogue, db_session):

    headers = login_headers(buyer)
    db_session.query(UserSession).delete()
    db_session.commit()

    chair, _, _ = catalogue
    builder = BomBuilder()
    builder.add_product({"id": chair.id, "item_name": chair.item_name})
    notifier = MagicMock()

    with patch("procurehub.services.bom_builder.schedule_redirect") as redirect:
        assert builder.submit(api_client_for(client, headers), {"name": "Late"}, notifier=notifier) is None

    assert notifier.notify.call_args.args[0] == "Unauthorized"
    redirect.assert_called_once()
    assert db_session.query(Bom).count() == 0
