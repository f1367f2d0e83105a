"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Create and migrate a temporary database."""
    from migrate import migrate

    path = str(tmp_path / "test.db")
    migrate(path)
    return path


@pytest.fixture
def settings(db_path: str):
    from sessionguard.config import Settings

    return Settings(database_url=db_path)


@pytest.fixture
def app(settings) -> FastAPI:
    from sessionguard.app import bootstrap_server

    app = FastAPI()
    bootstrap_server(app, settings)
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
