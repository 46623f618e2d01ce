"""
This module contains pytest fixtures and configuration for testing.
"""
from unittest.mock import MagicMock, patch
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the project's root directory to the system path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

# Import the main app
from main import app
from minimarket.pos.session import session_registry
from minimarket.settings.services import settings_provider
from fakes import FakeFirestore, FakeRedis, fake_transactional


@pytest.fixture
def test_app():
    """
    Create a FastAPI test application.
    """
    return app


@pytest.fixture
def client(test_app):
    """
    Create a test client for the FastAPI application.
    """
    return TestClient(test_app)


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    """
    Run every test with Redis unreachable, no local auth bypass, and fresh
    checkout sessions and settings.
    """
    monkeypatch.delenv("ENV", raising=False)
    session_registry.clear()
    settings_provider.reset()
    with patch('minimarket.common.cache.get_redis_client', return_value=None):
        yield
    session_registry.clear()
    settings_provider.reset()


@pytest.fixture
def mock_firestore():
    """
    Create a mock for the Firestore client.
    """
    with patch('firebase_admin.firestore.client') as mock:
        # Configure the mock to provide the necessary methods and return values
        firestore_mock = MagicMock()
        mock.return_value = firestore_mock
        yield firestore_mock


@pytest.fixture
def fake_db():
    """
    In-memory Firestore with transactions that commit only on success.
    """
    db = FakeFirestore()
    with patch('firebase_admin.firestore.client', return_value=db), \
         patch('firebase_admin.firestore.transactional', fake_transactional):
        yield db


@pytest.fixture
def fake_redis():
    """
    Dictionary-backed Redis, replacing the unreachable one.
    """
    client = FakeRedis()
    with patch('minimarket.common.cache.get_redis_client', return_value=client):
        yield client


@pytest.fixture
def mock_auth():
    """
    Create a mock for Firebase Auth.
    """
    with patch('firebase_admin.auth') as mock:
        yield mock


@pytest.fixture
def verify_token():
    """
    Accept any bearer token and use it as the user id.
    """
    with patch('firebase_admin.auth.verify_id_token', side_effect=lambda token: {"uid": token}) as mock:
        yield mock

