# Overview: Flask API routes for branding/terms settings.

from flask import Blueprint, current_app, request

from ..errors import StoreError
from ..services.settings_service import SettingsValidationError, settings_store


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings():
    try:
        return settings_store.current().to_dict()
    except StoreError:
        current_app.logger.exception("Failed to read settings")
        return {"error": "Store unavailable"}, 503


@settings_bp.patch("")
def update_settings():
    payload = request.get_json(silent=True) or {}
    try:
        return settings_store.update(payload).to_dict()
    except SettingsValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to update settings")
        return {"error": "Store unavailable"}, 503
