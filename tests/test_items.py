import uuid

from sqlalchemy.exc import OperationalError
from sqlmodel import select

import app.routers.items as items_router

from app.models.item import Item
from conftest import auth_headers


ITEM_FORM = {
    "item_type": "found",
    "title": "Grey hoodie",
    "description": "FAST hoodie, size M, left in the library reading hall",
    "category": "clothing",
    "date": "2026-10-10T09:00:00Z",
    "location": "library",
}


def test_create_item_as_user(client, session, make_user):
    user = make_user("Ayesha")

    response = client.post("/items/create", data=ITEM_FORM, headers=auth_headers(user))

    assert response.status_code == 200
    item = session.get(Item, uuid.UUID(response.json()["id"]))
    assert item.user_id == user.id
    assert item.status == "pending"
    assert item.claim is None
    assert item.claimant_id is None
    assert item.image is None


def test_create_item_anonymously(client, session, make_user):
    user = make_user("Ayesha")

    unauthenticated = client.post("/items/create", data=ITEM_FORM)
    hidden = client.post("/items/create", data={**ITEM_FORM, "is_anonymous": "true"}, headers=auth_headers(user))

    for response in (unauthenticated, hidden):
        assert response.status_code == 200
        assert session.get(Item, uuid.UUID(response.json()["id"])).user_id is None


def test_create_item_validation(client):
    bad_type = client.post("/items/create", data={**ITEM_FORM, "item_type": "stolen"})
    bad_date = client.post("/items/create", data={**ITEM_FORM, "date": "yesterday"})

    assert bad_type.status_code == 400
    assert bad_date.status_code == 400
    assert bad_date.json()["detail"] == "Date not parseable"


def test_get_item_with_reporter(client, make_user, make_item):
    user = make_user("Ayesha")
    item = make_item(user, contact_method="ayesha@nu.edu.pk")

    response = client.get(f"/items/{item.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["item"]["title"] == "Black wallet"
    assert body["item"]["status"] == "pending"
    assert body["item"]["contact_method"] == "ayesha@nu.edu.pk"
    assert body["reporter"]["public_id"] == user.public_id


def test_get_anonymous_item(client, make_item):
    item = make_item(None)

    body = client.get(f"/items/{item.id}").json()

    assert body["reporter"] is None


def test_list_items_defaults_to_pending(client, make_item):
    make_item(None, title="Open wallet")
    make_item(None, title="Claimed wallet", status="claimed")
    make_item(None, item_type="lost", title="Lost phone")

    pending = client.get("/items/").json()["items"]
    claimed = client.get("/items/", params={"status": "claimed"}).json()["items"]
    lost = client.get("/items/", params={"type": "lost"}).json()["items"]
    searched = client.get("/items/", params={"search": "phone"}).json()["items"]

    assert sorted(i["title"] for i in pending) == ["Lost phone", "Open wallet"]
    assert [i["title"] for i in claimed] == ["Claimed wallet"]
    assert [i["title"] for i in lost] == ["Lost phone"]
    assert [i["title"] for i in searched] == ["Lost phone"]


def test_update_item_partial(client, session, make_user, make_item):
    user = make_user("Ayesha")
    item = make_item(user)

    response = client.patch(f"/items/{item.id}", json={"title": "  Brown wallet "}, headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["title"] == "Brown wallet"
    assert response.json()["location"] == "library"


def test_update_item_rejects_status_field(client, make_user, make_item):
    user = make_user("Ayesha")
    item = make_item(user)

    response = client.patch(f"/items/{item.id}", json={"status": "resolved"}, headers=auth_headers(user))

    assert response.status_code == 400


def test_update_item_by_other_user_is_forbidden(client, make_user, make_item):
    item = make_item(make_user("Ayesha"))

    response = client.patch(f"/items/{item.id}", json={"title": "Mine now"}, headers=auth_headers(make_user("Bilal")))

    assert response.status_code == 403


def test_delete_item_by_owner_or_admin(client, session, make_user, make_item):
    owner = make_user("Ayesha")
    admin = make_user("Sara", role="admin")
    stranger = make_user("Bilal")
    first = make_item(owner)
    second = make_item(owner)
    anonymous = make_item(None)

    assert client.delete(f"/items/{first.id}", headers=auth_headers(stranger)).status_code == 403
    assert client.delete(f"/items/{anonymous.id}", headers=auth_headers(stranger)).status_code == 403
    assert client.delete(f"/items/{first.id}", headers=auth_headers(owner)).status_code == 200
    assert client.delete(f"/items/{second.id}", headers=auth_headers(admin)).status_code == 200
    assert client.delete(f"/items/{anonymous.id}", headers=auth_headers(admin)).status_code == 200

    assert session.exec(select(Item)).all() == []


def test_stored_image_removed_only_after_delete_commits(client, session, make_user, make_item, monkeypatch):
    owner = make_user("Ayesha")
    kept = make_item(owner, image="items/kept.webp")
    removed = make_item(owner, image="items/removed.webp")
    deleted_keys = []
    monkeypatch.setattr(items_router, "delete_s3_object", deleted_keys.append)
    original_commit = session.commit

    def failing_commit():
        raise OperationalError("DELETE FROM items", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "commit", failing_commit)
    failed = client.delete(f"/items/{kept.id}", headers=auth_headers(owner))

    assert failed.status_code == 500
    assert deleted_keys == []

    session.rollback()
    monkeypatch.setattr(session, "commit", original_commit)
    response = client.delete(f"/items/{removed.id}", headers=auth_headers(owner))

    assert response.status_code == 200
    assert deleted_keys == ["items/removed.webp"]
    assert session.get(Item, kept.id) is not None


def test_delete_unknown_item_is_not_found(client, make_user):
    response = client.delete(f"/items/{uuid.uuid4()}", headers=auth_headers(make_user("Ayesha")))

    assert response.status_code == 404


def test_profile_lists_my_items_and_claims(client, session, make_user, make_item):
    reporter = make_user("Ayesha")
    claimant = make_user("Bilal")
    make_item(reporter, item_type="lost", title="Lost phone")
    claimed = make_item(reporter, title="Found wallet")

    client.post(f"/items/{claimed.id}/claim", json={"description": "mine"}, headers=auth_headers(claimant))

    mine = client.get("/profile/items", headers=auth_headers(reporter)).json()
    claims = client.get("/profile/claims", headers=auth_headers(claimant)).json()
    me = client.get("/profile/me", headers=auth_headers(claimant)).json()

    assert [i["title"] for i in mine["lost_items"]] == ["Lost phone"]
    assert [i["title"] for i in mine["found_items"]] == ["Found wallet"]
    assert [i["title"] for i in claims["items"]] == ["Found wallet"]
    assert me["public_id"] == claimant.public_id
    assert me["role"] == "user"


def test_invalid_token_is_rejected(client):
    response = client.get("/profile/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_update_own_profile(client, make_user):
    user = make_user("Ayesha")

    response = client.patch(
        "/profile/me",
        json={"name": "  Ayesha Khan ", "image": "https://example.com/ayesha.png"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Ayesha Khan"
    assert response.json()["image"] == "https://example.com/ayesha.png"
    assert response.json()["role"] == "user"
    assert client.get("/profile/me", headers=auth_headers(user)).json()["name"] == "Ayesha Khan"


def test_update_profile_rejects_blank_name(client, make_user):
    user = make_user("Ayesha")

    response = client.patch("/profile/me", json={"name": "   "}, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["detail"] == "Name cannot be empty"
    assert client.get("/profile/me", headers=auth_headers(user)).json()["name"] == "Ayesha"


def test_update_profile_cannot_change_role(client, make_user):
    user = make_user("Ayesha")

    response = client.patch("/profile/me", json={"role": "admin"}, headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["role"] == "user"
