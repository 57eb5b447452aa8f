"""Integration test fixtures — a Firestore emulator.

Expects an emulator to be running, for example:
    gcloud emulators firestore start --host-port=localhost:8080
    export FIRESTORE_EMULATOR_HOST=localhost:8080
"""

from __future__ import annotations

import os
import uuid

import pytest


@pytest.fixture(scope="session")
def emulator_host() -> str:
    host = os.environ.get("FIRESTORE_EMULATOR_HOST")
    if not host:
        pytest.skip("FIRESTORE_EMULATOR_HOST not set")
    return host


@pytest.fixture
def collection_name() -> str:
    """A fresh collection per test, so tests do not see each other's data."""
    return f"it_{uuid.uuid4().hex[:12]}"
