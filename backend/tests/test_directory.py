import bcrypt
import pytest

from quotecraft.errors import NotFoundError
from quotecraft.extensions import db
from quotecraft.models import User
from quotecraft.services import directory_service, lifecycle_service
from quotecraft.services.directory_service import UNKNOWN_CLIENT
from quotecraft.services.record_store import record_store
from quotecraft.validation import ValidationError


def _stored_hash(user_id):
    return db.session.get(User, user_id, populate_existing=True).password


# =============================================================================
# Clients / projects
# =============================================================================

def test_create_client_defaults_blank_contact_fields(db_session):
    client = directory_service.create_client({"name": "  Quantum Solutions  "})

    assert client["name"] == "Quantum Solutions"
    assert client["email"] == ""
    assert client["phone"] == ""
    assert client["address"] == ""


@pytest.mark.parametrize("payload", [
    {},
    {"name": "   "},
    {"name": "Apex", "email": "not-an-email"},
    {"name": "Apex", "website": "apex.net"},
])
def test_create_client_rejects_bad_payloads(db_session, payload):
    with pytest.raises(ValidationError):
        directory_service.create_client(payload)


def test_update_client(acme):
    updated = directory_service.update_client(acme["id"], {"phone": "+1-202-555-0000"})
    assert updated["phone"] == "+1-202-555-0000"
    assert updated["name"] == acme["name"]

    with pytest.raises(NotFoundError):
        directory_service.update_client("cli-missing", {"phone": "1"})


def test_project_requires_existing_client(db_session):
    with pytest.raises(ValidationError):
        directory_service.create_project({"name": "Audio", "client_id": "cli-missing"})
    with pytest.raises(ValidationError):
        directory_service.create_project({"name": "Audio"})


def test_deleted_client_resolves_to_unknown(acme, items):
    project = directory_service.create_project({"name": "Office Security Upgrade", "client_id": acme["id"]})
    quotation = lifecycle_service.create_quotation(client_id=acme["id"], items=items)
    assert directory_service.project_client_name(project["id"]) == "Innovate Corp"

    directory_service.delete_client(acme["id"])

    # Nothing cascades: the references stay, the name falls back
    assert record_store.get("projects", project["id"])["client_id"] == acme["id"]
    assert record_store.get("quotations", quotation["id"])["client_id"] == acme["id"]
    assert directory_service.project_client_name(project["id"]) == UNKNOWN_CLIENT
    assert directory_service.resolve_client_name(acme["id"]) == UNKNOWN_CLIENT
    assert directory_service.list_projects_with_clients()[0]["client_name"] == UNKNOWN_CLIENT


def test_resolve_client_name_for_blank_id(db_session):
    assert directory_service.resolve_client_name(None) == UNKNOWN_CLIENT
    assert directory_service.resolve_client_name("") == UNKNOWN_CLIENT


def test_project_client_name_missing_project(db_session):
    with pytest.raises(NotFoundError):
        directory_service.project_client_name("proj-missing")


def test_projects_sorted_by_name_with_client(acme):
    directory_service.create_project({"name": "warehouse", "client_id": acme["id"]})
    directory_service.create_project({"name": "Audio", "client_id": acme["id"]})

    rows = directory_service.list_projects_with_clients()

    assert [r["name"] for r in rows] == ["Audio", "warehouse"]
    assert {r["client_name"] for r in rows} == {"Innovate Corp"}


# =============================================================================
# Users
# =============================================================================

def test_create_user_hashes_and_hides_password(db_session):
    user = directory_service.create_user({
        "name": "user",
        "email": "user@example.com",
        "password": "password",
        "requires_password_change": True,
    })

    assert "password" not in user
    assert user["requires_password_change"] is True
    stored = _stored_hash(user["id"])
    assert stored != "password"
    assert bcrypt.checkpw(b"password", stored.encode("utf-8"))


def test_create_user_rejects_blank_password(db_session):
    with pytest.raises(ValidationError):
        directory_service.create_user({"name": "u", "email": "u@example.com", "password": ""})


def test_update_user_new_password_clears_flag(db_session):
    user = directory_service.create_user({
        "name": "user", "email": "user@example.com", "password": "password",
        "requires_password_change": True,
    })

    updated = directory_service.update_user(user["id"], {"password": "n3w-secret"})

    assert updated["requires_password_change"] is False
    assert bcrypt.checkpw(b"n3w-secret", _stored_hash(user["id"]).encode("utf-8"))


def test_update_user_empty_password_keeps_hash_and_flag(db_session):
    user = directory_service.create_user({
        "name": "user", "email": "user@example.com", "password": "password",
        "requires_password_change": True,
    })
    before = _stored_hash(user["id"])

    updated = directory_service.update_user(user["id"], {"password": "", "name": "Renamed"})

    assert updated["name"] == "Renamed"
    assert updated["requires_password_change"] is True
    assert _stored_hash(user["id"]) == before
