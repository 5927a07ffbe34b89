# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

import api.main as api_main
from api.main import app
from portfolio.data import load_sample_store


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def sample_api_store():
    # every test starts from the built-in sample data
    api_main.set_store(load_sample_store())
    yield
    api_main.set_store(None)


@pytest.fixture
def sample_store():
    return load_sample_store()
