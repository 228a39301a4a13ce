"""
Tests for vendor onboarding and the product catalogue.
"""
from decimal import Decimal

from procurehub.db.models import AuditLog, Vendor


# ============= VENDORS =============

def test_create_vendor_starts_pending(client, buyer_headers, buyer):
    resp = client.post("/api/vendors", json={
        "company_name": "Northwind Furniture",
        "email": "sales@northwind.example.com",
        "categories": ["Furniture", "Office Supplies"],
    }, headers=buyer_headers)

    assert resp.status_code == 201
    vendor = resp.json()
    assert vendor["status"] == "pending"
    assert vendor["created_by"] == buyer.id


def test_create_vendor_validates_email(client, buyer_headers):
    resp = client.post("/api/vendors", json={"company_name": "Bad", "email": "not-an-email"},
                       headers=buyer_headers)
    assert resp.status_code == 422


def test_list_vendors_filters(client, buyer_headers, make_vendor):
    make_vendor("Acme Supplies", categories=["Furniture"])
    make_vendor("Bolt IT", email="hello@bolt.example.com", categories=["IT Hardware"], status="approved")

    names = lambda resp: [v["company_name"] for v in resp.json()]

    assert names(client.get("/api/vendors", headers=buyer_headers)) == ["Acme Supplies", "Bolt IT"]
    assert names(client.get("/api/vendors", params={"search": "bolt"}, headers=buyer_headers)) == ["Bolt IT"]
    assert names(client.get("/api/vendors", params={"status": "approved"}, headers=buyer_headers)) == ["Bolt IT"]
    assert names(client.get("/api/vendors", params={"category": "furniture"}, headers=buyer_headers)) == [
        "Acme Supplies"
    ]


def test_vendor_can_read_and_edit_only_own_profile(client, vendor_login, make_vendor):
    vendor, headers = vendor_login
    other = make_vendor("Rival Corp", email="rival@corp.example.com")

    assert client.get(f"/api/vendors/{vendor.id}", headers=headers).status_code == 200
    assert client.get(f"/api/vendors/{other.id}", headers=headers).status_code == 403

    resp = client.put(f"/api/vendors/{vendor.id}", json={
        "phone": "+91 80 1234 5678",
        "performance_score": "9.50",
    }, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["phone"] == "+91 80 1234 5678"
    assert resp.json()["performance_score"] is None


def test_buyer_can_set_performance_score(client, buyer_headers, make_vendor):
    vendor = make_vendor()
    resp = client.put(f"/api/vendors/{vendor.id}", json={"performance_score": "8.25"}, headers=buyer_headers)
    assert Decimal(resp.json()["performance_score"]) == Decimal("8.25")


def test_vendor_cannot_list_vendors(client, vendor_login):
    _, headers = vendor_login
    assert client.get("/api/vendors", headers=headers).status_code == 403


def test_vendor_status_needs_sourcing_manager(client, buyer_headers, manager_headers, make_vendor, db_session):
    vendor = make_vendor()

    resp = client.post(f"/api/vendors/{vendor.id}/status", json={"status": "approved"}, headers=buyer_headers)
    assert resp.status_code == 403

    resp = client.post(f"/api/vendors/{vendor.id}/status", json={"status": "approved"}, headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"

    entry = db_session.query(AuditLog).filter(AuditLog.action == "set_vendor_status").one()
    assert entry.details == {"from": "pending", "to": "approved"}


def test_unknown_vendor_status_is_rejected(client, manager_headers, make_vendor):
    vendor = make_vendor()
    resp = client.post(f"/api/vendors/{vendor.id}/status", json={"status": "blessed"}, headers=manager_headers)
    assert resp.status_code == 422


def test_delete_unused_vendor(client, manager_headers, make_vendor, db_session):
    vendor = make_vendor()
    resp = client.delete(f"/api/vendors/{vendor.id}", headers=manager_headers)
    assert resp.status_code == 200
    assert db_session.query(Vendor).count() == 0


def test_delete_vendor_with_rfx_history_conflicts(client, buyer_headers, manager_headers, make_vendor, db_session):
    vendor = make_vendor()
    client.post("/api/rfx", json={"title": "Chairs", "type": "rfq", "vendor_ids": [vendor.id]},
                headers=buyer_headers)

    resp = client.delete(f"/api/vendors/{vendor.id}", headers=manager_headers)

    assert resp.status_code == 409
    assert db_session.query(Vendor).count() == 1
    assert db_session.query(AuditLog).filter(AuditLog.action == "delete_vendor").count() == 0


# ============= PRODUCTS =============

def test_create_and_list_products(client, buyer_headers, vendor_login):
    resp = client.post("/api/products", json={
        "item_name": "Ergonomic Chair",
        "internal_code": "FUR-001",
        "category": "Furniture",
        "uom": "pcs",
        "base_price": "500.00",
    }, headers=buyer_headers)
    assert resp.status_code == 201
    assert Decimal(resp.json()["base_price"]) == Decimal("500.00")

    # Any signed-in role can browse the catalogue
    _, vendor_headers = vendor_login
    products = client.get("/api/products", headers=vendor_headers).json()
    assert [p["internal_code"] for p in products] == ["FUR-001"]


def test_product_filters(client, buyer_headers, make_product):
    make_product("Ergonomic Chair", category="Furniture", internal_code="FUR-001")
    make_product("Old Desk", category="Furniture", is_active=False)
    make_product("USB Hub", category="IT Hardware")

    names = lambda params: [p["item_name"] for p in client.get("/api/products", params=params,
                                                               headers=buyer_headers).json()]

    assert names({"is_active": "true", "category": "Furniture"}) == ["Ergonomic Chair"]
    assert names({"search": "fur-0"}) == ["Ergonomic Chair"]
    assert names({"is_active": "false"}) == ["Old Desk"]


def test_negative_price_is_rejected(client, buyer_headers):
    resp = client.post("/api/products", json={"item_name": "Broken", "base_price": "-1"}, headers=buyer_headers)
    assert resp.status_code == 422


def test_vendor_cannot_create_product(client, vendor_login):
    _, headers = vendor_login
    assert client.post("/api/products", json={"item_name": "Sneaky"}, headers=headers).status_code == 403


def test_update_product(client, buyer_headers, make_product):
    product = make_product("Chair", base_price="450.00")
    resp = client.put(f"/api/products/{product.id}", json={"base_price": "475.50"}, headers=buyer_headers)
    assert resp.status_code == 200
    assert Decimal(resp.json()["base_price"]) == Decimal("475.50")


def test_approve_product(client, manager_headers, manager, make_product):
    product = make_product("Chair", is_active=False)
    resp = client.post(f"/api/products/{product.id}/approve", headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["approved_by"] == manager.id
    assert resp.json()["is_active"] is True


def test_delete_product_in_bom_conflicts(client, buyer_headers, manager_headers, make_product):
    product = make_product("Chair", base_price="500.00")
    client.post("/api/boms/full", json={
        "name": "Uses chair", "items": [{"product_id": product.id, "quantity": "1"}],
    }, headers=buyer_headers)

    resp = client.delete(f"/api/products/{product.id}", headers=manager_headers)
    assert resp.status_code == 409
    assert client.get(f"/api/products/{product.id}", headers=manager_headers).status_code == 200


def test_delete_unused_product(client, manager_headers, make_product):
    product = make_product("Chair")
    assert client.delete(f"/api/products/{product.id}", headers=manager_headers).status_code == 200
    assert client.get(f"/api/products/{product.id}", headers=manager_headers).status_code == 404
