"""
Tests for RFx events, invitations and vendor responses.
"""
import re

import pytest

from procurehub.db.models import Notification, RfxInvitation, UserRole


@pytest.fixture
def rfq(client, buyer_headers, vendor_login):
    """A draft RFQ with the logged-in vendor invited."""
    vendor, _ = vendor_login
    resp = client.post("/api/rfx", json={
        "title": "Office chairs 2026",
        "type": "rfq",
        "budget": "25000.00",
        "vendor_ids": [vendor.id],
    }, headers=buyer_headers)
    assert resp.status_code == 201
    return resp.json()


def publish(client, headers, rfx_id, target="published"):
    return client.post(f"/api/rfx/{rfx_id}/status", json={"status": target}, headers=headers)


# ============= EVENTS =============

def test_create_event_assigns_reference_and_draft_status(rfq):
    assert rfq["status"] == "draft"
    assert re.fullmatch(r"RFX-\d{8}-[0-9A-F]{6}", rfq["reference_no"])
    assert rfq["invitation_count"] == 1
    assert rfq["response_count"] == 0


def test_invited_vendor_is_notified(rfq, vendor_login, db_session):
    vendor, _ = vendor_login
    notes = db_session.query(Notification).filter(Notification.user_id == vendor.user_id).all()
    assert [n.title for n in notes] == ["Invitation: Office chairs 2026"]


def test_create_event_with_unknown_bom_is_404(client, buyer_headers):
    resp = client.post("/api/rfx", json={"title": "X", "type": "rfi", "bom_id": 77}, headers=buyer_headers)
    assert resp.status_code == 404


def test_unknown_type_is_rejected(client, buyer_headers):
    resp = client.post("/api/rfx", json={"title": "X", "type": "rfz"}, headers=buyer_headers)
    assert resp.status_code == 422


def test_list_filters_by_status_and_type(client, buyer_headers, manager_headers, rfq):
    client.post("/api/rfx", json={"title": "Market scan", "type": "rfi"}, headers=buyer_headers)
    publish(client, manager_headers, rfq["id"])

    titles = lambda params: [e["title"] for e in client.get("/api/rfx", params=params,
                                                            headers=buyer_headers).json()]
    assert titles({"status": "published"}) == ["Office chairs 2026"]
    assert titles({"type": "rfi"}) == ["Market scan"]


def test_vendor_only_sees_invited_events(client, buyer_headers, vendor_login, rfq):
    _, vendor_headers = vendor_login
    hidden = client.post("/api/rfx", json={"title": "Private", "type": "rfp"}, headers=buyer_headers).json()

    events = client.get("/api/rfx", headers=vendor_headers).json()
    assert [e["id"] for e in events] == [rfq["id"]]
    assert client.get(f"/api/rfx/{hidden['id']}", headers=vendor_headers).status_code == 404


def test_status_walks_the_lifecycle(client, manager_headers, rfq):
    for target in ("published", "active", "closed"):
        resp = publish(client, manager_headers, rfq["id"], target)
        assert resp.status_code == 200
        assert resp.json()["status"] == target


def test_invalid_transition_is_rejected(client, manager_headers, rfq):
    resp = publish(client, manager_headers, rfq["id"], "closed")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot move RFx event from 'draft' to 'closed'"

    publish(client, manager_headers, rfq["id"], "cancelled")
    assert publish(client, manager_headers, rfq["id"], "published").status_code == 400


def test_buyer_user_cannot_publish(client, buyer_headers, rfq):
    assert publish(client, buyer_headers, rfq["id"]).status_code == 403


def test_publish_notifies_invited_vendors(client, manager_headers, rfq, vendor_login, db_session):
    vendor, _ = vendor_login
    publish(client, manager_headers, rfq["id"])

    titles = [n.title for n in db_session.query(Notification)
              .filter(Notification.user_id == vendor.user_id).order_by(Notification.id)]
    assert titles[-1] == "RFx published: Office chairs 2026"


def test_closed_event_cannot_be_edited(client, buyer_headers, manager_headers, rfq):
    publish(client, manager_headers, rfq["id"], "cancelled")
    resp = client.put(f"/api/rfx/{rfq['id']}", json={"title": "Renamed"}, headers=buyer_headers)
    assert resp.status_code == 400


def test_edit_draft_event(client, buyer_headers, rfq):
    resp = client.put(f"/api/rfx/{rfq['id']}", json={"scope": "120 task chairs"}, headers=buyer_headers)
    assert resp.status_code == 200
    assert resp.json()["scope"] == "120 task chairs"


def test_delete_event_removes_invitations(client, manager_headers, rfq, db_session):
    resp = client.delete(f"/api/rfx/{rfq['id']}", headers=manager_headers)
    assert resp.status_code == 200
    assert db_session.query(RfxInvitation).count() == 0


# ============= INVITATIONS =============

def test_inviting_twice_is_idempotent(client, buyer_headers, rfq, vendor_login, make_vendor):
    vendor, _ = vendor_login
    other = make_vendor("Northwind", email="n@northwind.example.com")

    resp = client.post(f"/api/rfx/{rfq['id']}/invitations", json={"vendor_ids": [vendor.id, other.id]},
                       headers=buyer_headers)
    assert resp.status_code == 201
    assert [i["vendor_id"] for i in resp.json()] == [other.id]

    invitations = client.get(f"/api/rfx/{rfq['id']}/invitations", headers=buyer_headers).json()
    assert sorted(i["vendor_id"] for i in invitations) == sorted([vendor.id, other.id])


def test_invite_unknown_vendor_is_404(client, buyer_headers, rfq):
    resp = client.post(f"/api/rfx/{rfq['id']}/invitations", json={"vendor_ids": [999]}, headers=buyer_headers)
    assert resp.status_code == 404


def test_vendor_marks_invitation_viewed(client, rfq, vendor_login):
    vendor, headers = vendor_login
    resp = client.put(f"/api/rfx/{rfq['id']}/invitations/{vendor.id}", json={"status": "viewed"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "viewed"
    assert resp.json()["responded_at"] is None


# ============= RESPONSES =============

def test_response_requires_open_event(client, rfq, vendor_login):
    vendor, headers = vendor_login
    resp = client.post(f"/api/rfx/{rfq['id']}/responses", json={"vendor_id": vendor.id}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "RFx event is draft; responses are not accepted"


def test_invited_vendor_responds(client, buyer_headers, manager_headers, rfq, vendor_login, buyer, db_session):
    vendor, headers = vendor_login
    publish(client, manager_headers, rfq["id"])

    resp = client.post(f"/api/rfx/{rfq['id']}/responses", json={
        "vendor_id": vendor.id,
        "quoted_price": "23500.00",
        "lead_time": 21,
        "payment_terms": "Net 30",
    }, headers=headers)
    assert resp.status_code == 201

    invitation = db_session.query(RfxInvitation).one()
    assert invitation.status == "responded"
    assert invitation.responded_at is not None

    event = client.get(f"/api/rfx/{rfq['id']}", headers=buyer_headers).json()
    assert event["response_count"] == 1

    creator_notes = db_session.query(Notification).filter(Notification.user_id == buyer.id).all()
    assert creator_notes[0].type == "success"


def test_uninvited_vendor_cannot_respond(client, buyer_headers, manager_headers, make_user, make_vendor,
                                         login_headers, rfq):
    user = make_user(UserRole.VENDOR, email="outsider@rival.example.com")
    outsider = make_vendor("Rival", email="r@rival.example.com", user=user)
    publish(client, manager_headers, rfq["id"])

    resp = client.post(f"/api/rfx/{rfq['id']}/responses", json={"vendor_id": outsider.id},
                       headers=login_headers(user))
    assert resp.status_code == 403


def test_vendor_cannot_respond_for_another_vendor(client, manager_headers, rfq, vendor_login, make_vendor):
    _, headers = vendor_login
    other = make_vendor("Rival", email="r@rival.example.com")
    publish(client, manager_headers, rfq["id"])

    resp = client.post(f"/api/rfx/{rfq['id']}/responses", json={"vendor_id": other.id}, headers=headers)
    assert resp.status_code == 403


def test_vendor_lists_only_own_responses(client, buyer_headers, manager_headers, rfq, vendor_login, make_vendor):
    vendor, headers = vendor_login
    other = make_vendor("Northwind", email="n@northwind.example.com")
    client.post(f"/api/rfx/{rfq['id']}/invitations", json={"vendor_ids": [other.id]}, headers=buyer_headers)
    publish(client, manager_headers, rfq["id"])

    client.post(f"/api/rfx/{rfq['id']}/responses", json={"vendor_id": vendor.id}, headers=headers)
    client.post(f"/api/rfx/{rfq['id']}/responses", json={"vendor_id": other.id}, headers=manager_headers)

    assert len(client.get(f"/api/rfx/{rfq['id']}/responses", headers=buyer_headers).json()) == 2
    own = client.get(f"/api/rfx/{rfq['id']}/responses", headers=headers).json()
    assert [r["vendor_id"] for r in own] == [vendor.id]
