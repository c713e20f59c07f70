# sitebudget/tests/conftest.py
import os
import tempfile

# cheap hashes and a throwaway log directory, set before the package is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "sitebudget-test-logs"))

import pytest

from sitebudget.app_factory import create_app
from sitebudget.db.init_db import init_db
from sitebudget.db.session import get_session, reset_engine
from sitebudget.tests.factories import ADMIN_EMAIL, ADMIN_PASSWORD, LEADER_PASSWORD, login, seed_company


@pytest.fixture
def app():
    app = create_app("testing")
    init_db()
    yield app
    reset_engine()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def tenant(app):
    return seed_company("Acme Build", ADMIN_EMAIL)


@pytest.fixture
def admin_client(app, tenant):
    client = app.test_client()
    resp = login(client, tenant.admin_email, ADMIN_PASSWORD)
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def leader_client(app, tenant):
    client = app.test_client()
    resp = login(client, tenant.leader_email, LEADER_PASSWORD)
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def outsider_client(app, tenant):
    client = app.test_client()
    resp = login(client, tenant.other_leader_email, LEADER_PASSWORD)
    assert resp.status_code == 200, resp.get_json()
    return client
