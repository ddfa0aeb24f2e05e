"""Security-related integration tests."""

from __future__ import annotations

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from mealcart.config import get_settings
from mealcart.db.repository import reset_repository_state
from mealcart.server.app import create_app


@pytest.fixture()
def secure_client(tmp_path, monkeypatch) -> TestClient:
    db_path = tmp_path / "secure.db"
    monkeypatch.setenv("MEALCART_DATABASE_PATH", str(db_path))
    monkeypatch.setenv("MEALCART_API_TOKEN", "secret-token")
    get_settings.cache_clear()
    reset_repository_state()
    app = create_app()
    client = TestClient(app)
    yield client
    monkeypatch.delenv("MEALCART_API_TOKEN", raising=False)
    reset_repository_state()
    get_settings.cache_clear()


def test_sync_requires_api_token(secure_client):
    response = secure_client.post("/shopping-list/sync", params={"week": "2024-01-15"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    headers = {"Authorization": "Bearer secret-token"}
    response = secure_client.post(
        "/shopping-list/sync", params={"week": "2024-01-15"}, headers=headers
    )
    assert response.status_code == status.HTTP_200_OK


def test_manual_items_accept_api_key_header(secure_client):
    list_id = secure_client.get("/shopping-list", params={"week": "2024-01-15"}).json()["id"]

    response = secure_client.post(f"/shopping-list/{list_id}/items", json={"name": "foil"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = secure_client.post(
        f"/shopping-list/{list_id}/items",
        json={"name": "foil"},
        headers={"X-API-Key": "secret-token"},
    )
    assert response.status_code == status.HTTP_201_CREATED


def test_reads_do_not_require_token(secure_client):
    response = secure_client.get("/shopping-list/export", params={"week": "2024-01-15"})
    assert response.status_code == status.HTTP_200_OK
