import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault(
    "TENANTS_JSON",
    json.dumps(
        [
            {"id": "acme", "name": "Acme", "openPhoneNumber": "+15551230000", "credential": "acme-key"},
            {"id": "globex", "name": "Globex", "openPhoneNumber": "+15559870000", "credential": "globex-key"},
        ]
    ),
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from callrelay.core import database  # noqa: E402
from callrelay.core.database import Base  # noqa: E402
from callrelay.core.deps import get_crm_client, get_tenant_directory  # noqa: E402
from callrelay.main import app  # noqa: E402
from callrelay.models import CallRecord  # noqa: E402
from callrelay.services.tenants import Tenant, TenantDirectory  # noqa: E402

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ACME = Tenant(id="acme", name="Acme", open_phone_number="+15551230000", credential="acme-key")
GLOBEX = Tenant(id="globex", name="Globex", open_phone_number="+15559870000", credential="globex-key")


class FakeCRM:
    def __init__(self):
        self.contacts = {}
        self.tagged = set()
        self.tag_everything = False
        self.fail_lookup = False
        self.fail_notes = False
        self.lookups = []
        self.notes = []
        self.tag_checks = []
        self.closed = False

    async def find_contact_by_phone(self, credential, phone):
        self.lookups.append((credential, phone))
        if self.fail_lookup:
            raise RuntimeError("CRM unavailable")
        return self.contacts.get(phone)

    async def create_note(self, credential, contact_id, body):
        if self.fail_notes:
            raise RuntimeError("note rejected")
        self.notes.append((credential, contact_id, body))

    async def contact_has_tag(self, credential, contact_id, tag):
        self.tag_checks.append((credential, contact_id, tag))
        return self.tag_everything or (contact_id, tag) in self.tagged

    async def aclose(self):
        self.closed = True

    @property
    def calls(self):
        return len(self.lookups) + len(self.notes) + len(self.tag_checks)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_calls():
    yield
    db = TestingSessionLocal()
    db.query(CallRecord).delete()
    db.commit()
    db.close()


@pytest.fixture()
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def directory():
    return TenantDirectory([ACME, GLOBEX])


@pytest.fixture()
def crm():
    return FakeCRM()


@pytest.fixture()
def client(directory, crm):
    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[get_tenant_directory] = lambda: directory
    app.dependency_overrides[get_crm_client] = lambda: crm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
