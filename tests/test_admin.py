from playlight.models import WhitelistEntry

from conftest import auth_headers


def test_whitelist_requires_admin(client, make_user):
    user = make_user()

    resp = client.post(
        "/admin/whitelist",
        json={"id": user.id, "email": "invitee@example.com"},
        headers=auth_headers(user),
    )
    assert resp.status_code == 403


def test_whitelist_crud(client, db, make_user):
    admin = make_user(email="admin@example.com", is_admin=True)
    headers = auth_headers(admin)

    resp = client.post(
        "/admin/whitelist", json={"id": admin.id, "email": "Invitee@Example.com"}, headers=headers
    )
    assert resp.status_code == 201
    resp = client.post(
        "/admin/whitelist", json={"id": admin.id, "email": "invitee@example.com"}, headers=headers
    )
    assert resp.status_code == 409
    resp = client.post("/admin/whitelist", json={"id": admin.id, "email": "no-at-sign"}, headers=headers)
    assert resp.status_code == 400

    listing = client.put("/admin/all-whitelist", json={"id": admin.id}, headers=headers)
    assert listing.status_code == 200
    assert [entry["email"] for entry in listing.json()] == ["invitee@example.com"]

    resp = client.request(
        "DELETE",
        "/admin/whitelist/invitee@example.com",
        json={"id": admin.id},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["removed"] == 1
    db.expire_all()
    assert db.query(WhitelistEntry).count() == 0


def test_admin_rights_checked_on_every_request(client, db, make_user):
    admin = make_user(email="admin@example.com", is_admin=True)
    headers = auth_headers(admin)
    assert client.put("/admin/all-whitelist", json={"id": admin.id}, headers=headers).status_code == 200

    admin.is_admin = False
    db.commit()

    assert client.put("/admin/all-whitelist", json={"id": admin.id}, headers=headers).status_code == 403


def test_whitelisted_email_can_register(client, make_user):
    admin = make_user(email="admin@example.com", is_admin=True)
    client.post(
        "/admin/whitelist",
        json={"id": admin.id, "email": "invitee@example.com"},
        headers=auth_headers(admin),
    )

    resp = client.post(
        "/account/register",
        json={"userName": "invitee", "email": "invitee@example.com", "password": "Password123"},
    )
    assert resp.status_code == 201
