# Overview: Flask API routes for clients, projects and users; parses input and returns JSON responses.

# backend/quotecraft/routes/directory.py
"""
Reference data routes.

- /api/clients   list/create, get/patch/delete by id
- /api/projects  list/create, get/patch/delete by id (client_name resolved),
                 GET <id>/documents for its quotations and invoices
- /api/users     list/create, get/patch (password never returned)

Deletes are idempotent and never cascade: projects and documents that point
at a deleted client keep their client_id and show "Unknown Client".
"""

from flask import Blueprint, current_app, request

from ..errors import NotFoundError, StoreError
from ..services import directory_service, document_service
from ..services.directory_service import CLIENTS, PROJECTS, USERS
from ..services.record_store import record_store
from ..validation import ValidationError


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")
projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")
users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _not_found(collection: str, record_id: str):
    return {"error": f"{collection} record '{record_id}' not found"}, 404


# =============================================================================
# Clients
# =============================================================================

@clients_bp.get("")
def list_clients():
    try:
        clients = record_store.list(CLIENTS)
    except StoreError:
        current_app.logger.exception("Failed to list clients")
        return {"error": "Store unavailable"}, 503
    return {"clients": sorted(clients, key=lambda c: (c.get("name") or "").lower())}


@clients_bp.post("")
def create_client_route():
    payload = request.get_json(silent=True) or {}
    try:
        client = directory_service.create_client(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to create client")
        return {"error": "Store unavailable"}, 503
    except Exception:
        current_app.logger.exception("Failed to create client")
        return {"error": "Internal server error"}, 500
    return client, 201


@clients_bp.get("/<client_id>")
def get_client(client_id: str):
    try:
        client = record_store.get(CLIENTS, client_id)
    except StoreError:
        current_app.logger.exception("Failed to read client %s", client_id)
        return {"error": "Store unavailable"}, 503
    if client is None:
        return _not_found(CLIENTS, client_id)
    return client


@clients_bp.patch("/<client_id>")
def update_client_route(client_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return directory_service.update_client(client_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StoreError:
        current_app.logger.exception("Failed to update client")
        return {"error": "Store unavailable"}, 503


@clients_bp.delete("/<client_id>")
def delete_client_route(client_id: str):
    try:
        directory_service.delete_client(client_id)
    except StoreError:
        current_app.logger.exception("Failed to delete client")
        return {"error": "Store unavailable"}, 503
    return "", 204


# =============================================================================
# Projects
# =============================================================================

@projects_bp.get("")
def list_projects():
    try:
        return {"projects": directory_service.list_projects_with_clients()}
    except StoreError:
        current_app.logger.exception("Failed to list projects")
        return {"error": "Store unavailable"}, 503


@projects_bp.post("")
def create_project_route():
    payload = request.get_json(silent=True) or {}
    try:
        project = directory_service.create_project(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to create project")
        return {"error": "Store unavailable"}, 503
    except Exception:
        current_app.logger.exception("Failed to create project")
        return {"error": "Internal server error"}, 500
    return project, 201


@projects_bp.get("/<project_id>")
def get_project(project_id: str):
    try:
        project = record_store.get(PROJECTS, project_id)
        if project is None:
            return _not_found(PROJECTS, project_id)
        project["client_name"] = directory_service.resolve_client_name(project.get("client_id"))
    except StoreError:
        current_app.logger.exception("Failed to read project %s", project_id)
        return {"error": "Store unavailable"}, 503
    return project


@projects_bp.get("/<project_id>/documents")
def project_documents(project_id: str):
    try:
        documents = document_service.project_documents(project_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StoreError:
        current_app.logger.exception("Failed to list documents for project %s", project_id)
        return {"error": "Store unavailable"}, 503
    return {"documents": documents}


@projects_bp.patch("/<project_id>")
def update_project_route(project_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return directory_service.update_project(project_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StoreError:
        current_app.logger.exception("Failed to update project")
        return {"error": "Store unavailable"}, 503


@projects_bp.delete("/<project_id>")
def delete_project_route(project_id: str):
    try:
        directory_service.delete_project(project_id)
    except StoreError:
        current_app.logger.exception("Failed to delete project")
        return {"error": "Store unavailable"}, 503
    return "", 204


# =============================================================================
# Users
# =============================================================================

@users_bp.get("")
def list_users():
    try:
        return {"users": directory_service.list_users()}
    except StoreError:
        current_app.logger.exception("Failed to list users")
        return {"error": "Store unavailable"}, 503


@users_bp.post("")
def create_user_route():
    payload = request.get_json(silent=True) or {}
    try:
        user = directory_service.create_user(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to create user")
        return {"error": "Store unavailable"}, 503
    except Exception:
        current_app.logger.exception("Failed to create user")
        return {"error": "Internal server error"}, 500
    return user, 201


@users_bp.get("/<user_id>")
def get_user(user_id: str):
    try:
        user = record_store.get(USERS, user_id)
    except StoreError:
        current_app.logger.exception("Failed to read user %s", user_id)
        return {"error": "Store unavailable"}, 503
    if user is None:
        return _not_found(USERS, user_id)
    return user


@users_bp.patch("/<user_id>")
def update_user_route(user_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        return directory_service.update_user(user_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StoreError:
        current_app.logger.exception("Failed to update user")
        return {"error": "Store unavailable"}, 503
