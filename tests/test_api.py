"""
End-to-end tests through the HTTP adapter.
"""
from fastapi.testclient import TestClient


def _register(client: TestClient, auth_headers, user_id: str, username: str, **extra) -> dict:
    response = client.post(
        "/users/register",
        json={"username": username, **extra},
        headers=auth_headers(user_id),
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_requests_require_authentication(client: TestClient):
    assert client.get("/friends").status_code == 401
    response = client.get("/friends", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_expired_token_is_rejected(client: TestClient, auth_headers):
    response = client.get("/users/me", headers=auth_headers("uid-1", expires_in=-60))
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_unregistered_user_cannot_use_the_api(client: TestClient, auth_headers):
    response = client.get("/users/me", headers=auth_headers("uid-1"))
    assert response.status_code == 403


def test_register_and_me(client: TestClient, auth_headers):
    body = _register(client, auth_headers, "uid-1", "Ada", first_name="Ada")
    assert body["username"] == "ada"

    me = client.get("/users/me", headers=auth_headers("uid-1")).json()
    assert me["display_name"] == "Ada"
    assert me["email"] == "uid-1@example.com"

    taken = client.post("/users/register", json={"username": "ADA"}, headers=auth_headers("uid-2"))
    assert taken.status_code == 409

    available = client.get("/users/username-available?username=Ada", headers=auth_headers("uid-2")).json()
    assert available == {"username": "ada", "available": False}


def test_friendship_flow(client: TestClient, auth_headers):
    _register(client, auth_headers, "alice", "alice")
    _register(client, auth_headers, "bob", "bob")

    sent = client.post("/friends/requests", json={"to_user_id": "bob"}, headers=auth_headers("alice"))
    assert sent.status_code == 201
    request_id = sent.json()["id"]

    status = client.get("/friends/status/alice", headers=auth_headers("bob")).json()
    assert status["status"] == "pending_received"

    incoming = client.get("/friends/requests", headers=auth_headers("bob")).json()["incoming"]
    assert [r["user"]["id"] for r in incoming] == ["alice"]

    self_accept = client.post(f"/friends/requests/{request_id}/accept", headers=auth_headers("alice"))
    assert self_accept.status_code == 403

    accepted = client.post(f"/friends/requests/{request_id}/accept", headers=auth_headers("bob"))
    assert accepted.status_code == 200
    assert accepted.json()["id"] == "alice_bob"

    again = client.post(f"/friends/requests/{request_id}/accept", headers=auth_headers("bob"))
    assert again.status_code == 409

    friends = client.get("/friends", headers=auth_headers("alice")).json()["friends"]
    assert [f["id"] for f in friends] == ["bob"]

    assert client.delete("/friends/bob", headers=auth_headers("alice")).status_code == 204
    assert client.delete("/friends/bob", headers=auth_headers("alice")).status_code == 204
    status = client.get("/friends/status/bob", headers=auth_headers("alice")).json()
    assert status["status"] == "none"


def test_owner_never_sees_purchases(client: TestClient, auth_headers):
    _register(client, auth_headers, "owner", "owner")
    _register(client, auth_headers, "friend", "friend", first_name="Fran")

    created = client.post(
        "/wishlist/items",
        json={"name": "Scarf", "price": 30, "currency": "USD"},
        headers=auth_headers("owner"),
    )
    assert created.status_code == 201
    item_id = created.json()["id"]

    claim = client.post(
        "/purchases",
        json={"item_id": item_id, "item_owner_id": "owner"},
        headers=auth_headers("friend"),
    )
    assert claim.status_code == 201
    assert claim.json()["buyer_name"] == "Fran"

    own_claim = client.post(
        "/purchases",
        json={"item_id": item_id, "item_owner_id": "owner"},
        headers=auth_headers("owner"),
    )
    assert own_claim.status_code == 403

    owner_view = client.get("/wishlist/owner", headers=auth_headers("owner")).json()
    assert owner_view["items"][0]["purchase"] is None
    assert client.get("/purchases?owner_id=owner", headers=auth_headers("owner")).json() == {"purchases": []}

    friend_view = client.get("/wishlist/owner", headers=auth_headers("friend")).json()
    assert friend_view["items"][0]["purchase"]["state"] == "bought_by_you"


def test_owner_cancel_is_identical_for_bought_and_unbought_items(client: TestClient, auth_headers):
    _register(client, auth_headers, "owner", "owner")
    _register(client, auth_headers, "friend", "friend")
    owner_headers = auth_headers("owner")

    bought = client.post("/wishlist/items", json={"name": "Bought"}, headers=owner_headers).json()["id"]
    unbought = client.post("/wishlist/items", json={"name": "Unbought"}, headers=owner_headers).json()["id"]
    claim = client.post(
        "/purchases",
        json={"item_id": bought, "item_owner_id": "owner"},
        headers=auth_headers("friend"),
    )
    assert claim.status_code == 201

    responses = [client.delete(f"/purchases/{item_id}", headers=owner_headers) for item_id in (bought, unbought)]
    assert [(r.status_code, r.content) for r in responses] == [(204, b""), (204, b"")]

    friend_view = client.get("/purchases?owner_id=owner", headers=auth_headers("friend")).json()
    assert [p["item_id"] for p in friend_view["purchases"]] == [bought]


def test_wishlist_validation_and_reorder(client: TestClient, auth_headers):
    _register(client, auth_headers, "owner", "owner")
    headers = auth_headers("owner")

    bad = client.post("/wishlist/items", json={"name": "Bad", "links": ["not-a-url"]}, headers=headers)
    assert bad.status_code == 400

    ids = [
        client.post("/wishlist/items", json={"name": name}, headers=headers).json()["id"]
        for name in ("Item1", "Item2", "Item3")
    ]
    response = client.put("/wishlist/order", json={"item_ids": [ids[2], ids[0], ids[1]]}, headers=headers)
    assert response.status_code == 204

    items = client.get("/wishlist/owner", headers=headers).json()["items"]
    assert [(i["id"], i["priority"]) for i in items] == [(ids[2], 0), (ids[0], 1), (ids[1], 2)]


def test_folder_delete_detaches_items(client: TestClient, auth_headers):
    _register(client, auth_headers, "owner", "owner")
    headers = auth_headers("owner")

    folder_id = client.post("/folders", json={"name": "Books"}, headers=headers).json()["id"]
    item_id = client.post(
        "/wishlist/items", json={"name": "Novel", "folder_ids": [folder_id]}, headers=headers
    ).json()["id"]

    detail = client.get(f"/folders/{folder_id}", headers=headers).json()
    assert [i["id"] for i in detail["items"]] == [item_id]

    assert client.delete(f"/folders/{folder_id}", headers=headers).status_code == 204
    assert client.get(f"/folders/{folder_id}", headers=headers).status_code == 404
    item = client.get(f"/wishlist/items/{item_id}", headers=headers).json()
    assert item["folder_ids"] == []
