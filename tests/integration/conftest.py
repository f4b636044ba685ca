"""Fixtures for the FastAPI integration tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from pixelmuse.api.main import app
from pixelmuse.core.credentials import CredentialStore
from pixelmuse.core.orchestrator import GenerationOrchestrator
from pixelmuse.core.registry import ModelRegistry


@pytest.fixture
def credential_store(temp_dir: Path) -> CredentialStore:
    """Credential store in a temporary settings file, with a key for ``Fake``."""
    store = CredentialStore(temp_dir / "settings.json")
    store.set("Fake", "fake-key")
    return store


@pytest.fixture
def test_client(
    fake_registry: ModelRegistry, credential_store: CredentialStore, temp_dir: Path
) -> Iterator[TestClient]:
    """TestClient whose app state points at the fake registry and temp storage.

    The lifespan runs first, then its state is replaced so that no real
    provider is ever contacted.
    """
    with TestClient(app) as client:
        app.state.orchestrator = GenerationOrchestrator(fake_registry)
        app.state.credential_store = credential_store
        app.state.outputs_dir = temp_dir / "outputs"
        yield client
