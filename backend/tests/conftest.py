import os
import tempfile
from pathlib import Path

import pytest

# Configure the app for SQLite before any dcim module reads settings
_TEST_DIR = Path(tempfile.mkdtemp(prefix="dcim-tests-"))
TEST_DB = _TEST_DIR / "test.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB}"
os.environ["RATE_LIMIT_ENUM_WRITE"] = "1000/minute"
os.environ["SERVE_FRONTEND_DIR"] = str(_TEST_DIR / "no-frontend")

from fastapi.testclient import TestClient  # noqa: E402

from dcim.main import app  # noqa: E402


@pytest.fixture
def client():
    """Client against a fresh database; tables are created by the app lifespan."""
    if TEST_DB.exists():
        TEST_DB.unlink()
    with TestClient(app, headers={"X-Forwarded-User": "alice"}) as c:
        yield c


@pytest.fixture
def make_property(client):
    def _make(**overrides):
        body = {"key": "warranty_vendor", "display_name": "Warranty Vendor", "property_type": "text"}
        body.update(overrides)
        r = client.post("/api/properties/", json=body)
        assert r.status_code == 201, r.text
        return r.json()
    return _make


@pytest.fixture
def make_server(client):
    def _make(**overrides):
        body = {"hostname": "web-01", "device_type": "Server", "dc_site": "DC-East"}
        body.update(overrides)
        r = client.post("/api/servers/", json=body)
        assert r.status_code == 201, r.text
        return r.json()
    return _make
