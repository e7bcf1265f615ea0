"""Global test fixtures and utilities for journal-api tests"""
import pytest
import httpx
from datetime import datetime
from zoneinfo import ZoneInfo

from journal_api.db.kv_store import InMemoryKeyValueStore
from journal_api.models import Group
from journal_api.services.container import ServiceContainer
from journal_api.utils.datetime_helpers import FixedDateProvider


# ============================================================================
# Clock Fixtures
# ============================================================================

@pytest.fixture
def fixed_now():
    """Wall clock frozen at 13:47 on 2024-05-01 (827 minutes after midnight)"""
    return datetime(2024, 5, 1, 13, 47, 12, tzinfo=ZoneInfo("UTC"))


@pytest.fixture
def date_provider(fixed_now):
    return FixedDateProvider(fixed_now)


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def test_token():
    return "test-token"


@pytest.fixture
def auth_headers(test_token):
    return {"Authorization": f"Bearer {test_token}"}


# ============================================================================
# Structure Fixtures
# ============================================================================

@pytest.fixture
def sample_groups_payload():
    """Wire-format (camelCase) structure: water with amount + time, mood severity"""
    return [
        {
            "id": "g-health",
            "name": "Health",
            "order": 0,
            "collapsedByDefault": False,
            "fields": [
                {
                    "id": "f-water",
                    "groupId": "g-health",
                    "name": "Water",
                    "order": 0,
                    "fieldTypes": [
                        {
                            "id": "ft-water-amount",
                            "fieldId": "f-water",
                            "kind": "NUMBER",
                            "order": 0,
                            "dataOptions": {"min": 0, "max": 200, "unit": "oz"},
                        },
                        {
                            "id": "ft-water-time",
                            "fieldId": "f-water",
                            "kind": "TIME_SELECT",
                            "order": 1,
                            "dataOptions": {"step": 30},
                        },
                    ],
                },
                {
                    "id": "f-mood",
                    "groupId": "g-health",
                    "name": "Mood",
                    "order": 1,
                    "fieldTypes": [
                        {
                            "id": "ft-mood-severity",
                            "fieldId": "f-mood",
                            "kind": "SEVERITY",
                            "order": 0,
                        },
                    ],
                },
            ],
        }
    ]


@pytest.fixture
def sample_groups(sample_groups_payload):
    return [Group.model_validate(group) for group in sample_groups_payload]


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def container(store, date_provider):
    return ServiceContainer(store=store, date_provider=date_provider)


@pytest.fixture
def registry(container):
    return container.structure_registry


@pytest.fixture
def entry_store(container):
    return container.entry_store


@pytest.fixture
def action_engine(container):
    return container.action_engine


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
async def api_client(container, test_user_id):
    """httpx client bound to the app, auth overridden to test_user_id"""
    from journal_api.api.auth import AuthenticatedUser, get_current_user
    from journal_api.api.middleware import limiter
    from journal_api.api.server import create_api_application

    app = create_api_application(container)
    app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(user_id=test_user_id)
    limiter_was_enabled = limiter.enabled
    limiter.enabled = False

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    limiter.enabled = limiter_was_enabled
