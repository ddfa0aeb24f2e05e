"""Shared pytest fixtures for the Mealcart test suite."""

from __future__ import annotations

from datetime import date
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mealcart.config import get_settings
from mealcart.db.repository import reset_repository_state
from mealcart.server.app import create_app

WEEK_START = date(2024, 1, 15)


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def week_start() -> date:
    return WEEK_START


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_mealcart.db"
    monkeypatch.setenv("MEALCART_DATABASE_PATH", str(db_path))
    for key in (
        "MEALCART_API_TOKEN",
        "MEALCART_EMBEDDING_BASE_URL",
        "MEALCART_LLM_BASE_URL",
        "MEALCART_EMBEDDING_DEDUP_ENABLED",
        "MEALCART_SIMILARITY_THRESHOLD",
    ):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("MEALCART_DATABASE_PATH", raising=False)
    get_settings.cache_clear()
