"""Shared fixtures: a filesystem blob store, the file tree and an app client."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from pagebuilder.core.config import settings
from pagebuilder.services.file_tree import VirtualFileTree
from pagebuilder.services.local_blobs import LocalBlobStore

TENANT = "tenantA"
OTHER_TENANT = "tenantB"
JWT_SECRET = "test-jwt-secret-0123456789abcdef"


def write_blobs(store: LocalBlobStore, blobs: dict) -> None:
    """Seed the store directly on disk: {pathname: content}."""
    for pathname, content in blobs.items():
        path = Path(store.base_path) / pathname
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def stored_paths(store: LocalBlobStore) -> list:
    base = Path(store.base_path)
    return sorted(p.relative_to(base).as_posix() for p in base.rglob("*") if p.is_file())


def tenant_headers(tenant_id: str = TENANT, role: str = "member") -> dict:
    return {
        "x-tenant-id": tenant_id,
        "x-user-id": "user-1",
        "x-user-email": "user@example.com",
        "x-user-role": role,
    }


@pytest.fixture
def store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def tree(store):
    return VirtualFileTree(store)


@pytest.fixture
def seed(store):
    def _seed(blobs: dict):
        write_blobs(store, blobs)
    return _seed


@pytest.fixture
def app(store, monkeypatch):
    from pagebuilder.api import deps
    from pagebuilder.core.rate_limit import limiter
    from pagebuilder.main import app

    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "proxy_secret", "")
    monkeypatch.setattr(settings, "jwt_secret", JWT_SECRET)
    monkeypatch.setattr(settings, "redis_url", "")
    monkeypatch.setattr(settings, "kv_url", "")
    monkeypatch.setattr(limiter, "enabled", False)

    app.dependency_overrides[deps.get_store] = lambda: store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # Unhandled errors are rendered by the app's 500 handler, not raised here
    return TestClient(app, raise_server_exceptions=False)
