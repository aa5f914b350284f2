import logging

import httpx
import pytest

from inventory_app.config import API_PREFIX
from inventory_app.identity import SupabaseIdentity, get_identity
from inventory_app.kv_store import StoreError, get_store

from conftest import AUTH_URL, bearer, make_token


PRODUCT = {"name": "Headphones", "category": "Audio", "quantity": 5, "minStock": 2}


def create(client, user_id, **overrides):
    body = {**PRODUCT, **overrides}
    return client.post(f"{API_PREFIX}/products", json=body, headers=bearer(user_id))


def test_health_needs_no_auth(client):
    response = client.get(f"{API_PREFIX}/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_authorization_header(client):
    response = client.get(f"{API_PREFIX}/products")

    assert response.status_code == 401
    assert response.json() == {"error": "No authorization header"}
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        make_token("alice", secret="some-other-secret"),
        make_token("alice", expires_in=-60),
        make_token("alice", audience="anon"),
    ],
)
def test_rejected_tokens(client, token):
    response = client.get(f"{API_PREFIX}/products", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_create_product(client):
    response = create(client, "alice")

    assert response.status_code == 201
    product = response.json()["product"]
    assert product["name"] == "Headphones"
    assert product["category"] == "Audio"
    assert product["quantity"] == 5
    assert product["minStock"] == 2
    assert product["ownerId"] == "alice"
    assert product["id"]
    assert product["createdAt"]
    assert product["updatedAt"] is None


def test_create_ignores_client_supplied_owner(client, store):
    response = create(client, "alice", ownerId="mallory", userId="mallory")

    product = response.json()["product"]
    assert product["ownerId"] == "alice"
    assert store.list_by_prefix("products:mallory:") == []
    assert store.get(f"products:alice:{product['id']}")["ownerId"] == "alice"


def test_create_coerces_numeric_strings(client):
    response = create(client, "alice", quantity="7", minStock="3")

    assert response.status_code == 201
    product = response.json()["product"]
    assert product["quantity"] == 7
    assert product["minStock"] == 3


@pytest.mark.parametrize("missing", ["name", "category", "quantity", "minStock"])
def test_create_missing_field_persists_nothing(client, store, missing):
    body = {k: v for k, v in PRODUCT.items() if k != missing}
    response = client.post(f"{API_PREFIX}/products", json=body, headers=bearer("alice"))

    assert response.status_code == 400
    assert missing in response.json()["error"]
    assert store.list_by_prefix("products:") == []


@pytest.mark.parametrize("field, value", [("name", ""), ("category", "   "), ("quantity", "lots"), ("minStock", -1)])
def test_create_invalid_field(client, store, field, value):
    response = create(client, "alice", **{field: value})

    assert response.status_code == 400
    assert store.list_by_prefix("products:") == []


def test_created_ids_are_unique(client):
    ids = {create(client, "alice").json()["product"]["id"] for _ in range(10)}

    assert len(ids) == 10


def test_list_is_scoped_to_owner(client):
    create(client, "alice", name="Keyboard")
    create(client, "alice", name="Mouse")
    create(client, "bob", name="Cable")

    alice = client.get(f"{API_PREFIX}/products", headers=bearer("alice")).json()["products"]
    bob = client.get(f"{API_PREFIX}/products", headers=bearer("bob")).json()["products"]
    carol = client.get(f"{API_PREFIX}/products", headers=bearer("carol")).json()["products"]

    assert sorted(p["name"] for p in alice) == ["Keyboard", "Mouse"]
    assert [p["name"] for p in bob] == ["Cable"]
    assert all(p["ownerId"] == "alice" for p in alice)
    assert carol == []


def test_update_quantity(client):
    product_id = create(client, "alice").json()["product"]["id"]

    response = client.put(f"{API_PREFIX}/products/{product_id}", json={"quantity": 9}, headers=bearer("alice"))

    assert response.status_code == 200
    product = response.json()["product"]
    assert product["quantity"] == 9
    assert product["name"] == "Headphones"
    assert product["minStock"] == 2
    assert product["updatedAt"] is not None


def test_update_only_changes_quantity(client):
    product_id = create(client, "alice").json()["product"]["id"]

    response = client.put(
        f"{API_PREFIX}/products/{product_id}",
        json={"quantity": 1, "name": "Renamed", "minStock": 50},
        headers=bearer("alice"),
    )

    product = response.json()["product"]
    assert product["quantity"] == 1
    assert product["name"] == "Headphones"
    assert product["minStock"] == 2


def test_update_unknown_product(client):
    response = client.put(f"{API_PREFIX}/products/does-not-exist", json={"quantity": 1}, headers=bearer("alice"))

    assert response.status_code == 404
    assert response.json() == {"error": "Product not found"}


def test_update_other_owners_product_is_not_found(client, store):
    product_id = create(client, "alice").json()["product"]["id"]

    response = client.put(f"{API_PREFIX}/products/{product_id}", json={"quantity": 0}, headers=bearer("bob"))

    assert response.status_code == 404
    assert store.get(f"products:alice:{product_id}")["quantity"] == 5


def test_update_requires_quantity(client):
    product_id = create(client, "alice").json()["product"]["id"]

    response = client.put(f"{API_PREFIX}/products/{product_id}", json={}, headers=bearer("alice"))

    assert response.status_code == 400


def test_update_rejects_negative_quantity(client, store):
    product_id = create(client, "alice").json()["product"]["id"]

    response = client.put(f"{API_PREFIX}/products/{product_id}", json={"quantity": -3}, headers=bearer("alice"))

    assert response.status_code == 400
    assert store.get(f"products:alice:{product_id}")["quantity"] == 5


def test_delete_is_idempotent(client, store):
    product_id = create(client, "alice").json()["product"]["id"]

    first = client.delete(f"{API_PREFIX}/products/{product_id}", headers=bearer("alice"))
    second = client.delete(f"{API_PREFIX}/products/{product_id}", headers=bearer("alice"))

    assert first.status_code == 200
    assert first.json() == {"success": True}
    assert second.status_code == 200
    assert second.json() == {"success": True}
    assert store.get(f"products:alice:{product_id}") is None


def test_delete_cannot_reach_other_namespace(client, store):
    product_id = create(client, "alice").json()["product"]["id"]

    response = client.delete(f"{API_PREFIX}/products/{product_id}", headers=bearer("bob"))

    assert response.status_code == 200
    assert store.get(f"products:alice:{product_id}") is not None


def test_delete_requires_auth(client):
    response = client.delete(f"{API_PREFIX}/products/anything")

    assert response.status_code == 401


class BrokenStore:
    def get(self, key):
        raise StoreError("disk on fire")

    def set(self, key, value):
        raise StoreError("disk on fire")

    def delete(self, key):
        raise StoreError("disk on fire")

    def list_by_prefix(self, prefix):
        raise StoreError("disk on fire")


@pytest.mark.parametrize(
    "method, path, body, message",
    [
        ("GET", "/products", None, "Failed to fetch products"),
        ("POST", "/products", PRODUCT, "Failed to create product"),
        ("PUT", "/products/abc", {"quantity": 1}, "Failed to update product"),
        ("DELETE", "/products/abc", None, "Failed to delete product"),
    ],
)
def test_store_failures_are_generic(app, client, method, path, body, message):
    app.dependency_overrides[get_store] = lambda: BrokenStore()

    response = client.request(method, f"{API_PREFIX}{path}", json=body, headers=bearer("alice"))

    assert response.status_code == 500
    assert response.json() == {"error": message}


def test_signup(client, auth_server):
    response = client.post(
        f"{API_PREFIX}/signup",
        json={"email": "ana@example.com", "password": "secret1", "name": "Ana"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ana@example.com"
    assert body["user"]["name"] == "Ana"
    assert body["user"]["id"] == auth_server.users["ana@example.com"]["id"]
    assert auth_server.users["ana@example.com"]["email_confirmed"] is True
    assert auth_server.requests[0].headers["authorization"] == "Bearer service-key"


def test_signup_duplicate_email_passes_provider_message(client):
    body = {"email": "ana@example.com", "password": "secret1", "name": "Ana"}
    client.post(f"{API_PREFIX}/signup", json=body)

    response = client.post(f"{API_PREFIX}/signup", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "A user with this email address has already been registered"}


@pytest.mark.parametrize("missing", ["email", "password", "name"])
def test_signup_missing_field(client, auth_server, missing):
    body = {"email": "ana@example.com", "password": "secret1", "name": "Ana"}
    del body[missing]

    response = client.post(f"{API_PREFIX}/signup", json=body)

    assert response.status_code == 400
    assert auth_server.requests == []


def test_signup_provider_failure_is_generic(client, auth_server):
    auth_server.fail_with = 503

    response = client.post(
        f"{API_PREFIX}/signup",
        json={"email": "ana@example.com", "password": "secret1", "name": "Ana"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Signup failed"}


@pytest.mark.parametrize("method, path", [("POST", "/products"), ("PUT", "/products/abc")])
def test_auth_is_checked_before_a_malformed_body(app, client, store, method, path):
    opened = []
    app.dependency_overrides[get_store] = lambda: opened.append(True) or store

    json_type = {"Content-Type": "application/json"}
    missing = client.request(method, f"{API_PREFIX}{path}", content=b"{not json", headers=json_type)
    invalid = client.request(
        method,
        f"{API_PREFIX}{path}",
        content=b"{not json",
        headers={**json_type, "Authorization": "Bearer not-a-jwt"},
    )

    assert missing.status_code == 401
    assert missing.json() == {"error": "No authorization header"}
    assert invalid.status_code == 401
    assert invalid.json() == {"error": "Unauthorized"}
    assert opened == []


def test_malformed_body_with_valid_token(client, store):
    response = client.post(
        f"{API_PREFIX}/products",
        content=b"{not json",
        headers={**bearer("alice"), "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "JSON decode error"}
    assert store.list_by_prefix("products:") == []


def test_user_id_that_cannot_own_a_namespace(client, store):
    response = client.get(f"{API_PREFIX}/products", headers=bearer("a:b"))

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_unreadable_provider_reply_is_unauthorized(app, client):
    remote = SupabaseIdentity(
        AUTH_URL,
        "service-key",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
    )
    app.dependency_overrides[get_identity] = lambda: remote

    response = client.get(f"{API_PREFIX}/products", headers={"Authorization": "Bearer opaque"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


class ExplodingStore(BrokenStore):
    def list_by_prefix(self, prefix):
        raise RuntimeError("unexpected")


def test_unexpected_errors_are_logged_with_cors(app, client, caplog):
    app.dependency_overrides[get_store] = lambda: ExplodingStore()

    with caplog.at_level(logging.INFO, logger="inventory_app.main"):
        response = client.get(
            f"{API_PREFIX}/products",
            headers={**bearer("alice"), "Origin": "http://frontend.example.com"},
        )

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert response.headers["access-control-allow-origin"] == "*"
    assert any("-> 500" in record.getMessage() for record in caplog.records)
