# Overview: Branding/terms settings with a single owner and an explicit change channel.

"""
Settings Store

Company branding, document terms and page setup consumed by the document
renderer. One AppSettings value per app, persisted as the "app-settings"
JSON blob. Changes go through update(); interested parties subscribe() and
are called with the new AppSettings after each successful update.

The numeric tax rate is not a setting; see calculator_service.TAX_RATE.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreError
from ..extensions import db
from ..models import SettingsBlob
from ..time_utils import utcnow


logger = logging.getLogger(__name__)

SETTINGS_KEY = "app-settings"

HSL_RE = re.compile(r"^\d{1,3} \d{1,3}% \d{1,3}%$")

CHOICES = {
    "font": {"inter", "space-grotesk", "geist-sans"},
    "theme_mode": {"light", "dark", "system"},
    "page_size": {"a4", "letter", "legal"},
    "page_orientation": {"portrait", "landscape"},
}
COLOR_KEYS = {"primary_color", "background_color", "accent_color"}


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


@dataclass(frozen=True)
class AppSettings:
    app_name: str = "QuoteCraft ELV"
    primary_color: str = "231 48% 48%"
    background_color: str = "220 13% 95%"
    accent_color: str = "174 100% 29%"
    font: str = "inter"
    theme_mode: str = "system"
    company_logo: str = ""
    company_name: str = "QuoteCraft ELV"
    company_address: str = "123 Tech Avenue, Silicon Valley, CA 94043"
    company_contact: str = "contact@quotecraft.dev"
    quotation_terms: str = (
        "Payment: 50% advance, 50% on completion.\n"
        "Validity: This quotation is valid for 30 days.\n"
        "Warranty: 1-year standard warranty on hardware."
    )
    invoice_payment_details: str = (
        "Bank: Tech Bank Inc.\n"
        "Account #: 1234567890\n"
        "SWIFT: TBICUS33"
    )
    page_size: str = "a4"
    page_orientation: str = "portrait"

    def to_dict(self) -> dict:
        return asdict(self)


SETTING_KEYS = {f.name for f in fields(AppSettings)}

SettingsListener = Callable[[AppSettings], None]


def _validate_changes(changes: dict[str, Any]) -> dict[str, str]:
    if not isinstance(changes, dict):
        raise SettingsValidationError("Invalid settings payload")
    cleaned = {}
    for key, value in changes.items():
        if key not in SETTING_KEYS:
            raise SettingsValidationError(f"Unknown setting: {key}")
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise SettingsValidationError(f"{key} must be a string")
        value = value.strip()
        if key in CHOICES and value not in CHOICES[key]:
            raise SettingsValidationError(
                f"{key} must be one of: {', '.join(sorted(CHOICES[key]))}"
            )
        if key in COLOR_KEYS and not HSL_RE.match(value):
            raise SettingsValidationError(f"{key} must be an HSL triple like '231 48% 48%'")
        cleaned[key] = value
    return cleaned


class _SettingsListeners:
    def __init__(self):
        self.lock = threading.Lock()
        self.listeners: list[SettingsListener] = []


class SettingsStore:
    """Flask extension: ``settings_store.init_app(app)`` in the app factory."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["settings_store"] = _SettingsListeners()

    @property
    def _state(self) -> _SettingsListeners:
        return current_app.extensions["settings_store"]

    def current(self) -> AppSettings:
        try:
            blob = db.session.get(SettingsBlob, SETTINGS_KEY, populate_existing=True)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to read settings: {exc}") from exc
        if blob is None:
            return AppSettings()
        # Unknown keys from older blobs are ignored
        stored = {k: v for k, v in (blob.value or {}).items() if k in SETTING_KEYS}
        return replace(AppSettings(), **stored)

    def update(self, changes: dict[str, Any]) -> AppSettings:
        cleaned = _validate_changes(changes)
        updated = replace(self.current(), **cleaned)
        self._save(updated)
        self._notify(updated)
        return updated

    def reset(self) -> AppSettings:
        defaults = AppSettings()
        self._save(defaults)
        self._notify(defaults)
        return defaults

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        state = self._state
        with state.lock:
            state.listeners.append(listener)

        def unsubscribe() -> None:
            with state.lock:
                if listener in state.listeners:
                    state.listeners.remove(listener)

        return unsubscribe

    def _save(self, settings: AppSettings) -> None:
        try:
            db.session.merge(
                SettingsBlob(key=SETTINGS_KEY, value=settings.to_dict(), updated_at=utcnow())
            )
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to save settings: {exc}") from exc

    def _notify(self, settings: AppSettings) -> None:
        with self._state.lock:
            listeners = list(self._state.listeners)
        for listener in listeners:
            try:
                listener(settings)
            except Exception:
                logger.exception("Settings listener failed")


settings_store = SettingsStore()
