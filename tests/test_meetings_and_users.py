from db.models import User, UserRole

MEETINGS_URL = "/api/v1/meetings"
USERS_URL = "/api/v1/users"


# ---------------- Meetings ----------------
def test_create_meeting_defaults_status(client, auth_headers, employee, make_crm_entry):
    acme = make_crm_entry("Acme")

    resp = client.post(
        MEETINGS_URL,
        json={"title": "Kickoff", "dateTime": "2026-11-02T10:30:00", "companyId": acme.id, "assignedTo": "emp@incial.com"},
        headers=auth_headers(employee),
    )

    assert resp.status_code == 201
    meeting = resp.json()
    assert meeting["status"] == "Scheduled"
    assert meeting["companyId"] == acme.id
    assert meeting["lastUpdatedBy"] == employee.email


def test_my_meetings_matches_email_or_handle(client, auth_headers, employee):
    headers = auth_headers(employee)
    by_email = client.post(MEETINGS_URL, json={"title": "A", "dateTime": "2026-11-02T10:00:00", "assignedTo": "EMP@incial.com"}, headers=headers).json()
    by_handle = client.post(MEETINGS_URL, json={"title": "B", "dateTime": "2026-11-03T10:00:00", "assignedTo": "emp"}, headers=headers).json()
    client.post(MEETINGS_URL, json={"title": "C", "dateTime": "2026-11-04T10:00:00", "assignedTo": "someone@incial.com"}, headers=headers)

    resp = client.get(f"{MEETINGS_URL}/my-meetings", headers=headers)

    assert [m["id"] for m in resp.json()] == [by_email["id"], by_handle["id"]]


def test_update_meeting_is_partial(client, auth_headers, employee):
    headers = auth_headers(employee)
    created = client.post(MEETINGS_URL, json={"title": "Demo", "dateTime": "2026-11-02T10:00:00", "notes": "bring slides"}, headers=headers).json()

    resp = client.put(f"{MEETINGS_URL}/{created['id']}", json={"status": "Completed"}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["status"] == "Completed"
    assert resp.json()["notes"] == "bring slides"
    assert resp.json()["title"] == "Demo"


def test_delete_meeting_requires_admin(client, auth_headers, employee, admin):
    created = client.post(MEETINGS_URL, json={"title": "Demo", "dateTime": "2026-11-02T10:00:00"}, headers=auth_headers(employee)).json()

    assert client.delete(f"{MEETINGS_URL}/{created['id']}", headers=auth_headers(employee)).status_code == 403
    assert client.delete(f"{MEETINGS_URL}/{created['id']}", headers=auth_headers(admin)).status_code == 204
    assert client.get(f"{MEETINGS_URL}/{created['id']}", headers=auth_headers(admin)).status_code == 404


# ---------------- Users ----------------
def test_me_and_listing(client, auth_headers, employee, admin):
    me = client.get(f"{USERS_URL}/me", headers=auth_headers(employee))
    assert me.status_code == 200
    assert me.json()["email"] == employee.email
    assert "passwordHash" not in me.json()

    listing = client.get(USERS_URL, headers=auth_headers(employee))
    assert [u["email"] for u in listing.json()] == [employee.email, admin.email]


def test_user_lookup_by_id_is_admin_only(client, auth_headers, employee, admin):
    assert client.get(f"{USERS_URL}/{admin.id}", headers=auth_headers(employee)).status_code == 403

    resp = client.get(f"{USERS_URL}/{employee.id}", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["role"] == "ROLE_EMPLOYEE"


def test_super_admin_provisions_client(client, db, auth_headers, super_admin, make_user, make_crm_entry):
    acme = make_crm_entry("Acme")
    user = make_user("buyer@acme.io", role=UserRole.EMPLOYEE)

    resp = client.put(f"{USERS_URL}/{user.id}", json={"role": "client", "clientCrmId": acme.id}, headers=auth_headers(super_admin))

    assert resp.status_code == 200
    assert resp.json()["role"] == "ROLE_CLIENT"
    assert resp.json()["clientCrmId"] == acme.id
    portal = client.get("/api/v1/crm/my-crm", headers=auth_headers(user))
    assert portal.json()["company"] == "Acme"


def test_role_mutation_is_super_admin_only(client, auth_headers, admin, employee):
    resp = client.put(f"{USERS_URL}/{employee.id}", json={"role": "admin"}, headers=auth_headers(admin))

    assert resp.status_code == 403


def test_invalid_role_and_unknown_crm(client, auth_headers, super_admin, employee):
    headers = auth_headers(super_admin)

    assert client.put(f"{USERS_URL}/{employee.id}", json={"role": "pilot"}, headers=headers).status_code == 400
    assert client.put(f"{USERS_URL}/{employee.id}", json={"clientCrmId": 999}, headers=headers).status_code == 404


def test_delete_user(client, db, auth_headers, super_admin, employee):
    headers = auth_headers(super_admin)

    assert client.delete(f"{USERS_URL}/{employee.id}", headers=headers).status_code == 204
    assert client.delete(f"{USERS_URL}/{employee.id}", headers=headers).status_code == 404
    db.expire_all()
    assert db.query(User).filter(User.email == "emp@incial.com").count() == 0
