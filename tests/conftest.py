# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from callpanel.db import init_db, make_engine
from callpanel.main import create_app
from callpanel.services.channels import ChannelService
from callpanel.services.tenants import TenantService

ADMIN_KEY = "test-admin-key-5a8f9ffdc3e14b0d9a7c"
CHANNEL_SLUG = "recepcao-principal"


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tenant(session_factory):
    return TenantService(session_factory).create_tenant("Clinica Central", "clinica-central")


@pytest.fixture
def channel(session_factory, tenant):
    return ChannelService(session_factory).create_channel(tenant.id, CHANNEL_SLUG, "Recepcao Principal", "NovoSGA")


@pytest.fixture
def app(session_factory, clock):
    return create_app(session_factory=session_factory, admin_api_key=ADMIN_KEY, clock=clock)


@pytest.fixture
def client(app):
    """Context-managed so HTTP calls and sockets share one event loop"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"x-admin-key": ADMIN_KEY}


@pytest.fixture
def tenant_headers(tenant):
    return {"x-tenant-token": tenant.api_token}


@pytest.fixture
def ingest_headers(channel):
    return {"x-auth-token": channel.api_key, "x-channel-id": channel.slug}


@pytest.fixture
def sga_payload():
    return {
        "senha": {"format": "A001"},
        "local": {"nome": "Sala 1"},
        "numeroLocal": 1,
        "prioridade": {"peso": 2},
    }


@pytest.fixture
def versa_payload():
    return {
        "source_system": "VersaSaude",
        "current_call": {
            "patient_name": "Maria Souza",
            "destination": "Consultorio 3",
            "professional_name": "Dr. Lima",
        },
    }
