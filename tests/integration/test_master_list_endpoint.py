"""Integration tests for master list management endpoints."""

from __future__ import annotations

from fastapi import status

from mealcart.config import get_settings
from mealcart.db.master_list import get_master_item, set_base_ingredient, set_embedding
from mealcart.server import deps

WEEK = "2024-01-15"


def _auth_headers():
    token = get_settings().api_token
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def _record_refreshes(app):
    refreshed = []

    def refresher(item_id):
        refreshed.append(item_id)
        item = get_master_item(item_id)
        set_base_ingredient(item_id, item.name.split()[-1])
        return set_embedding(item_id, [1.0, 0.0])

    app.dependency_overrides[deps.get_master_item_refresher] = lambda: refresher
    return refreshed


def _create_category(client, name="Pantry"):
    response = client.post("/master-list/categories", json={"name": name}, headers=_auth_headers())
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["id"]


def test_create_item_normalises_and_embeds(app, client):
    refreshed = _record_refreshes(app)
    category_id = _create_category(client)

    response = client.post(
        "/master-list/items",
        json={"category_id": category_id, "name": "Sainsbury's Basmati Rice", "type": "staple"},
        headers=_auth_headers(),
    )

    assert response.status_code == status.HTTP_201_CREATED
    item = response.json()
    assert refreshed == [item["id"]]
    assert item["base_ingredient"] == "rice"
    assert item["embedding"] == [1.0, 0.0]

    listed = client.get("/master-list/items", params={"type": "staple"}).json()
    assert [entry["name"] for entry in listed] == ["Sainsbury's Basmati Rice"]
    assert client.get("/master-list/items", params={"type": "restock"}).json() == []


def test_rename_recomputes_derived_fields(app, client):
    refreshed = _record_refreshes(app)
    category_id = _create_category(client)
    created = client.post(
        "/master-list/items",
        json={"category_id": category_id, "name": "Olive Oil", "type": "staple"},
        headers=_auth_headers(),
    ).json()

    response = client.put(
        f"/master-list/items/{created['id']}",
        json={"name": "Rapeseed Oil Spray"},
        headers=_auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["name"] == "Rapeseed Oil Spray"
    assert response.json()["base_ingredient"] == "spray"
    assert refreshed == [created["id"], created["id"]]


def test_create_without_model_endpoints_leaves_item_for_backfill(client):
    category_id = _create_category(client)

    response = client.post(
        "/master-list/items",
        json={"category_id": category_id, "name": "Coffee", "type": "restock"},
        headers=_auth_headers(),
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["base_ingredient"] is None
    assert response.json()["embedding"] == []


def test_new_staple_seeds_the_next_list(client):
    category_id = _create_category(client)
    client.post(
        "/master-list/items",
        json={"category_id": category_id, "name": "Milk", "type": "staple"},
        headers=_auth_headers(),
    )

    items = client.get("/shopping-list", params={"week": WEEK}).json()["items"]
    assert [(item["name"], item["source"]) for item in items] == [("Milk", "staple")]


def test_delete_item_and_missing_ids(client):
    category_id = _create_category(client)
    created = client.post(
        "/master-list/items",
        json={"category_id": category_id, "name": "Milk", "type": "staple"},
        headers=_auth_headers(),
    ).json()

    response = client.delete(f"/master-list/items/{created['id']}", headers=_auth_headers())
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/master-list/items").json() == []

    assert client.delete(f"/master-list/items/{created['id']}", headers=_auth_headers()).status_code == 404
    assert (
        client.put("/master-list/items/999", json={"name": "Oat Milk"}, headers=_auth_headers()).status_code
        == 404
    )
    assert (
        client.post(
            "/master-list/items",
            json={"category_id": 999, "name": "Milk", "type": "staple"},
            headers=_auth_headers(),
        ).status_code
        == 404
    )


def test_categories_are_listed_and_unique(client):
    _create_category(client, "Dairy")
    _create_category(client, "Pantry")

    duplicate = client.post("/master-list/categories", json={"name": "Dairy"}, headers=_auth_headers())

    assert duplicate.status_code == status.HTTP_409_CONFLICT
    assert [category["name"] for category in client.get("/master-list/categories").json()] == [
        "Dairy",
        "Pantry",
    ]


def test_item_type_is_validated(client):
    category_id = _create_category(client)
    response = client.post(
        "/master-list/items",
        json={"category_id": category_id, "name": "Milk", "type": "weekly"},
        headers=_auth_headers(),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
