from datetime import datetime

import pytest

from db.models import CrmEntry, Meeting, User, UserRole
from db.Schema.crm import CrmEntryUpdate
from services import crm_service
from utils.errors import NotFound

CRM_URL = "/api/v1/crm"


def test_list_returns_bucketed_views(client, auth_headers, employee, make_crm_entry):
    a = make_crm_entry("A", status="Onboarded")
    b = make_crm_entry("B", status="quote sent")
    c = make_crm_entry("C", status="COMPLETED")
    d = make_crm_entry("D", status="Dropped")
    e = make_crm_entry("E", status="drop")
    f = make_crm_entry("F", status="Lead")

    resp = client.get(CRM_URL, headers=auth_headers(employee))

    assert resp.status_code == 200
    body = resp.json()

    def ids(key):
        return [row["id"] for row in body[key]]

    assert ids("crmList") == [a.id, b.id, c.id, d.id, e.id, f.id]
    assert ids("onboarded") == [a.id, b.id]
    assert ids("completed") == [c.id]
    assert ids("dropped") == [d.id, e.id]


def test_bucket_endpoints(client, auth_headers, employee, make_crm_entry):
    make_crm_entry("A", status="on progress")
    make_crm_entry("B", status="Completed")
    make_crm_entry("C", status="Dropped")
    headers = auth_headers(employee)

    assert [r["company"] for r in client.get(f"{CRM_URL}/onboarded", headers=headers).json()] == ["A"]
    assert [r["company"] for r in client.get(f"{CRM_URL}/done", headers=headers).json()] == ["B"]
    assert [r["company"] for r in client.get(f"{CRM_URL}/closed", headers=headers).json()] == ["C"]


def test_create_requires_admin(client, auth_headers, employee, admin):
    body = {"company": "Initech", "contactName": "Bill", "dealValue": 12000.5, "tags": ["saas"]}

    assert client.post(CRM_URL, json=body, headers=auth_headers(employee)).status_code == 403

    resp = client.post(CRM_URL, json=body, headers=auth_headers(admin))
    assert resp.status_code == 201
    created = resp.json()
    assert created["company"] == "Initech"
    assert created["contactName"] == "Bill"
    assert created["dealValue"] == 12000.5
    assert created["tags"] == ["saas"]
    assert created["lastUpdatedBy"] == admin.email


def test_duplicate_reference_id_is_conflict(client, auth_headers, admin, make_crm_entry):
    make_crm_entry("Existing", reference_id="REF-1")

    resp = client.post(CRM_URL, json={"company": "Newco", "referenceId": "REF-1"}, headers=auth_headers(admin))

    assert resp.status_code == 409


def test_status_only_update_leaves_other_fields(client, db, auth_headers, employee, make_crm_entry):
    entry = make_crm_entry(
        "Acme", contact_name="Wile", phone="555-0100", status="Onboarded",
        tags=["vip"], socials={"x": "@acme"}, last_updated_by="someone@incial.com",
    )

    resp = client.put(f"{CRM_URL}/{entry.id}", json={"status": "Dropped"}, headers=auth_headers(employee))

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "Dropped"
    assert body["contactName"] == "Wile"
    assert body["phone"] == "555-0100"
    assert body["tags"] == ["vip"]
    assert body["socials"] == {"x": "@acme"}
    assert body["lastUpdatedBy"] == employee.email


def test_client_supplied_last_updated_by_is_ignored(db, employee, make_crm_entry):
    entry = make_crm_entry("Acme")

    updated = crm_service.update_entry(db, entry.id, CrmEntryUpdate(notes="hi", last_updated_by="forged@x.io"), employee)

    assert updated.last_updated_by == employee.email


def test_update_missing_entry(client, auth_headers, employee):
    resp = client.put(f"{CRM_URL}/999", json={"status": "Lead"}, headers=auth_headers(employee))

    assert resp.status_code == 404
    assert resp.json()["statusCode"] == 404


def test_delete_requires_admin(client, db, auth_headers, employee, admin, make_crm_entry):
    entry = make_crm_entry("Acme")

    assert client.delete(f"{CRM_URL}/{entry.id}", headers=auth_headers(employee)).status_code == 403
    assert client.delete(f"{CRM_URL}/{entry.id}", headers=auth_headers(admin)).status_code == 204
    assert client.delete(f"{CRM_URL}/{entry.id}", headers=auth_headers(admin)).status_code == 404
    db.expire_all()
    assert db.query(CrmEntry).count() == 0


# ---------------- Client portal ----------------
def test_client_sees_only_own_crm_entry(client, auth_headers, make_user, make_crm_entry):
    acme = make_crm_entry("Acme")
    make_crm_entry("Globex")
    buyer = make_user("buyer@acme.io", role=UserRole.CLIENT, client_crm_id=acme.id)

    resp = client.get(f"{CRM_URL}/my-crm", headers=auth_headers(buyer))

    assert resp.status_code == 200
    assert resp.json()["company"] == "Acme"


def test_client_cannot_browse_staff_views(client, auth_headers, make_user, make_crm_entry):
    acme = make_crm_entry("Acme")
    buyer = make_user("buyer@acme.io", role=UserRole.CLIENT, client_crm_id=acme.id)
    headers = auth_headers(buyer)

    assert client.get(CRM_URL, headers=headers).status_code == 403
    assert client.get(f"{CRM_URL}/{acme.id}", headers=headers).status_code == 403
    assert client.put(f"{CRM_URL}/{acme.id}", json={"status": "x"}, headers=headers).status_code == 403


def test_unlinked_client_gets_400(client, auth_headers, make_user):
    buyer = make_user("buyer@acme.io", role=UserRole.CLIENT)

    resp = client.get(f"{CRM_URL}/my-crm", headers=auth_headers(buyer))

    assert resp.status_code == 400
    assert "not linked" in resp.json()["message"]


def test_staff_cannot_use_client_portal(client, auth_headers, employee):
    assert client.get(f"{CRM_URL}/my-crm", headers=auth_headers(employee)).status_code == 403


def test_get_crm_details_not_found(db):
    with pytest.raises(NotFound):
        crm_service.get_crm_details(db, 12345)


def test_delete_unlinks_clients_and_meetings(db, make_user, make_crm_entry):
    acme = make_crm_entry("Acme")
    buyer = make_user("buyer@acme.io", role=UserRole.CLIENT, client_crm_id=acme.id)
    meeting = Meeting(title="Kickoff", date_time=datetime(2026, 11, 2, 10, 30), crm_entry_id=acme.id)
    db.add(meeting)
    db.commit()

    crm_service.delete_entry(db, acme.id)

    db.expire_all()
    assert db.get(User, buyer.id).client_crm_id is None
    assert db.get(Meeting, meeting.id).crm_entry_id is None
