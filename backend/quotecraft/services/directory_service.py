# Overview: Service-layer operations for clients, projects and users (reference data).

"""
Client / Project / User directory

Reference data that quotations and invoices point at by id. References are
weak: nothing is cascade-deleted, and a dangling client_id resolves to the
"Unknown Client" sentinel instead of raising.

Validation here is the form boundary (ValidationError). The record store
itself stores whatever it is given.
"""

from __future__ import annotations

from typing import Any

import bcrypt

from ..errors import NotFoundError
from ..models import Client, Project, User
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_client,
    enforce_rules_project,
    enforce_rules_user,
    validate_payload,
)
from .record_store import record_store


UNKNOWN_CLIENT = "Unknown Client"

CLIENTS = Client.__collection__
PROJECTS = Project.__collection__
USERS = User.__collection__

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)
PROJECT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "client_id"},
    required_on_create={"name", "client_id"},
)
USER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "password", "requires_password_change"},
    required_on_create={"name", "email", "password"},
)


# =============================================================================
# Clients
# =============================================================================

def create_client(payload: dict) -> dict:
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
    enforce_rules_client(patch)
    data = {"email": "", "phone": "", "address": ""}
    data.update(patch)
    return record_store.add(CLIENTS, data)


def update_client(client_id: str, payload: dict) -> dict:
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
    enforce_rules_client(patch)
    record_store.update(CLIENTS, client_id, patch)
    return record_store.get(CLIENTS, client_id)


def delete_client(client_id: str) -> None:
    """Projects and documents referencing the client are left as they are."""
    record_store.delete(CLIENTS, client_id)


def resolve_client_name(client_id: str | None) -> str:
    if not client_id:
        return UNKNOWN_CLIENT
    client = record_store.get(CLIENTS, client_id)
    if client is None or not client.get("name"):
        return UNKNOWN_CLIENT
    return client["name"]


def client_names() -> dict[str, str]:
    """client_id -> name for every client; one read for table rendering."""
    return {c["id"]: c.get("name") or UNKNOWN_CLIENT for c in record_store.list(CLIENTS)}


# =============================================================================
# Projects
# =============================================================================

def create_project(payload: dict) -> dict:
    patch = validate_payload(model=Project, payload=payload, policy=PROJECT_POLICY, partial=False)
    enforce_rules_project(patch)
    if not record_store.exists(CLIENTS, patch["client_id"]):
        raise ValidationError(f"Client '{patch['client_id']}' not found")
    return record_store.add(PROJECTS, patch)


def update_project(project_id: str, payload: dict) -> dict:
    patch = validate_payload(model=Project, payload=payload, policy=PROJECT_POLICY, partial=True)
    enforce_rules_project(patch)
    if "client_id" in patch and not record_store.exists(CLIENTS, patch["client_id"]):
        raise ValidationError(f"Client '{patch['client_id']}' not found")
    record_store.update(PROJECTS, project_id, patch)
    return record_store.get(PROJECTS, project_id)


def delete_project(project_id: str) -> None:
    record_store.delete(PROJECTS, project_id)


def project_client_name(project_id: str) -> str:
    project = record_store.get(PROJECTS, project_id)
    if project is None:
        raise NotFoundError(PROJECTS, project_id)
    return resolve_client_name(project.get("client_id"))


def list_projects_with_clients() -> list[dict]:
    """Projects sorted by name, each with its resolved client_name."""
    names = client_names()
    rows = []
    for project in record_store.list(PROJECTS):
        row = dict(project)
        row["client_name"] = names.get(project.get("client_id") or "", UNKNOWN_CLIENT)
        rows.append(row)
    return sorted(rows, key=lambda r: (r.get("name") or "").lower())


# =============================================================================
# Users
# =============================================================================

def hash_password(password: str) -> str:
    """bcrypt hash of the user's secret. Stored as str; never returned."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def create_user(payload: dict) -> dict:
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    enforce_rules_user(patch)
    if not patch["password"]:
        raise ValidationError("password cannot be blank")
    patch["password"] = hash_password(patch["password"])
    patch.setdefault("requires_password_change", False)
    return record_store.add(USERS, patch)


def update_user(user_id: str, payload: dict) -> dict:
    """
    Profile update.

    A non-empty password replaces the stored hash and clears
    requires_password_change. An empty or missing password keeps both.
    """
    patch: dict[str, Any] = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    enforce_rules_user(patch)
    password = patch.pop("password", None)
    if password:
        patch["password"] = hash_password(password)
        patch["requires_password_change"] = False
    record_store.update(USERS, user_id, patch)
    return record_store.get(USERS, user_id)


def list_users() -> list[dict]:
    return sorted(record_store.list(USERS), key=lambda u: (u.get("name") or "").lower())
