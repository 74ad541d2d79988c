import pytest
import sys
from fastapi.testclient import TestClient
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Hypothesis configuration for property-based testing
from hypothesis import settings
from moodify.main import create_app
from moodify.services.catalog import CatalogService
from moodify.services.database import DatabaseService

# Register Hypothesis profiles
settings.register_profile("fast", max_examples=50, deadline=None)
settings.register_profile("thorough", max_examples=1000, deadline=None)
settings.load_profile("fast")  # Default to fast profile


def pytest_collection_modifyitems(items):
    """Automatically order tests: unit tests first, then property tests, then E2E tests."""
    for item in items:
        # Skip if item already has explicit order marker
        if hasattr(item, 'get_closest_marker') and item.get_closest_marker('order'):
            continue

        test_file = str(item.fspath)
        if 'test_unit_' in test_file:
            item.add_marker(pytest.mark.order(1))
        elif 'test_props_' in test_file:
            item.add_marker(pytest.mark.order(2))
        elif 'test_e2e_' in test_file:
            item.add_marker(pytest.mark.order(3))


@pytest.fixture
def db_path(tmp_path):
    """Path to a fresh SQLite file for one test."""
    return tmp_path / "moodify_test.db"


@pytest.fixture
def db(db_path):
    """Create a fresh catalog database for testing."""
    return DatabaseService(db_path, timeout=5.0)


@pytest.fixture
def catalog(db):
    """Catalog service bound to the test database."""
    return CatalogService(db)


@pytest.fixture
def client(db_path):
    """HTTP client for an app serving the test database."""
    app = create_app(db_path)
    with TestClient(app) as test_client:
        yield test_client
