# Overview: Generic record store; CRUD plus live subscriptions over the typed collection tables.

"""
Record Store

One contract for every collection (clients, projects, quotations, invoices,
users):

    add(collection, data)          -> record with a new unique id
    update(collection, id, patch)  -> field-level merge, NotFoundError if missing
    delete(collection, id)         -> hard delete, idempotent
    get(collection, id)            -> record or None
    subscribe(collection, fn)      -> fn(records) now and after every write

CONSISTENCY:
- Every write commits before it returns, and subscribers of the collection
  are handed a fresh snapshot before the write call returns. A get() issued
  after a write has returned sees the write.
- update() is a column-level UPDATE of only the patched fields. Two
  concurrent patches to disjoint fields both land; two patches to the same
  field race and either value may win. No version column, no conflict check.
  Unmapped fields are merged into `extra` under the row's write lock, so
  disjoint unmapped keys also both land.
- Quotations and invoices are numbered "Q-2024-003" / "INV-2024-003" by the
  store itself, whichever code path adds them.
- Deleted ids are retired (see RetiredId) so document numbers are never
  handed out twice.

Records are plain dicts (model.to_dict()). Snapshot order is the database's
natural order; callers sort when order matters.

Subscriptions live on the Flask app (app.extensions["record_store"]), not in
module globals, so each app instance owns its own listeners.
"""

from __future__ import annotations

import itertools
import logging
import threading
import uuid
from typing import Any, Callable, Mapping

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import identifier_service
from ..errors import DuplicateIdError, NotFoundError, StoreError
from ..extensions import db
from ..models import COLLECTIONS, RetiredId
from ..time_utils import coerce_datetime, utcnow


logger = logging.getLogger(__name__)

Listener = Callable[[list[dict]], None]
Unsubscribe = Callable[[], None]

# Fields a patch can never change.
IMMUTABLE_FIELDS = ("id", "kind")

# Proposals per document number before add() gives up.
MAX_ID_ATTEMPTS = 5


class _Subscription:
    def __init__(self, token: int, collection: str, listener: Listener):
        self.token = token
        self.collection = collection
        self.listener = listener
        self.active = True
        # Serializes deliveries to this listener so snapshots arrive in order
        # and nothing is delivered once cancel() has returned.
        self.lock = threading.RLock()

    def cancel(self) -> None:
        with self.lock:
            self.active = False


class _SubscriptionRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._by_collection: dict[str, dict[int, _Subscription]] = {}

    def add(self, collection: str, listener: Listener) -> _Subscription:
        with self._lock:
            sub = _Subscription(next(self._tokens), collection, listener)
            self._by_collection.setdefault(collection, {})[sub.token] = sub
            return sub

    def remove(self, sub: _Subscription) -> None:
        sub.cancel()
        with self._lock:
            self._by_collection.get(sub.collection, {}).pop(sub.token, None)

    def for_collection(self, collection: str) -> list[_Subscription]:
        with self._lock:
            return list(self._by_collection.get(collection, {}).values())

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._by_collection.get(collection, {}))


def _split_payload(model, data: Mapping[str, Any]) -> tuple[dict, dict]:
    """Split a payload into mapped column values and unmapped extras."""
    if not isinstance(data, Mapping):
        raise StoreError("Record payload must be a mapping")
    fields = set(model.field_names())
    values, extra = {}, {}
    for key, value in data.items():
        if key in fields:
            values[key] = value
        else:
            extra[key] = value
    return values, extra


def _document_year(date) -> int:
    """Year of a document date; the current year when it is missing or unreadable."""
    try:
        parsed = coerce_datetime(date)
    except (TypeError, ValueError):
        parsed = None
    return (parsed or utcnow()).year


class RecordStore:
    """Flask extension: ``record_store.init_app(app)`` in the app factory."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["record_store"] = _SubscriptionRegistry()

    @property
    def _registry(self) -> _SubscriptionRegistry:
        return current_app.extensions["record_store"]

    def model_for(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise StoreError(f"Unknown collection '{collection}'") from None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str, record_id: str) -> dict | None:
        model = self.model_for(collection)
        try:
            record = db.session.get(model, record_id, populate_existing=True)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to read {collection}/{record_id}: {exc}") from exc
        return record.to_dict() if record is not None else None

    def list(self, collection: str) -> list[dict]:
        model = self.model_for(collection)
        try:
            records = db.session.query(model).populate_existing().all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to read {collection}: {exc}") from exc
        return [r.to_dict() for r in records]

    def exists(self, collection: str, record_id: str) -> bool:
        model = self.model_for(collection)
        try:
            return db.session.query(model.id).filter_by(id=record_id).first() is not None
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to read {collection}/{record_id}: {exc}") from exc

    def known_ids(self, collection: str) -> set[str]:
        """Live ids plus retired ids; everything that must not be reissued."""
        model = self.model_for(collection)
        try:
            live = {row[0] for row in db.session.query(model.id).all()}
            retired = {
                row[0]
                for row in db.session.query(RetiredId.record_id).filter_by(collection=collection).all()
            }
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to read {collection} ids: {exc}") from exc
        return live | retired

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, collection: str, data: Mapping[str, Any], *, record_id: str | None = None) -> dict:
        """
        Persist a new record and return it with its assigned id.

        record_id lets a caller propose an id. A proposed id that is live or
        retired raises DuplicateIdError. Without one, quotations and invoices
        are numbered "<prefix>-<year>-<seq>" from the year of data["date"]
        (current year when absent), retrying past collisions; other
        collections get "<prefix>-<random hex>".
        """
        model = self.model_for(collection)
        values, extra = _split_payload(model, data)
        values.pop("id", None)
        if model.__kind__:
            values["kind"] = model.__kind__

        if record_id is not None:
            return self._insert(model, values, extra, record_id, explicit=True)
        if model.__numbered__:
            return self._insert_numbered(model, values, extra)
        return self._insert(model, values, extra, self._generate_id(model), explicit=False)

    def _insert_numbered(self, model, values: dict, extra: dict) -> dict:
        collection = model.__collection__
        year = _document_year(values.get("date"))
        rejected: set[str] = set()
        last_exc: DuplicateIdError | None = None
        for _attempt in range(MAX_ID_ATTEMPTS):
            proposed = identifier_service.next_id(
                model.__id_prefix__, year, self.known_ids(collection) | rejected
            )
            try:
                return self._insert(model, values, extra, proposed, explicit=True)
            except DuplicateIdError as exc:
                logger.info("Document id %s taken, retrying", proposed)
                rejected.add(proposed)
                last_exc = exc
        raise StoreError(
            f"Could not allocate a {model.__id_prefix__} id after {MAX_ID_ATTEMPTS} attempts"
        ) from last_exc

    def _insert(self, model, values: dict, extra: dict, record_id: str, *, explicit: bool) -> dict:
        collection = model.__collection__
        if explicit and record_id in self.known_ids(collection):
            raise DuplicateIdError(collection, record_id)

        record = model(id=record_id, **values)
        if extra:
            record.extra = extra
        try:
            db.session.add(record)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            if explicit:
                raise DuplicateIdError(collection, record_id) from exc
            raise StoreError(f"Failed to add {collection} record: {exc}") from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to add {collection} record: {exc}") from exc

        logger.debug("Added %s/%s", collection, record_id)
        created = record.to_dict()
        self._notify(collection)
        return created

    def update(self, collection: str, record_id: str, patch: Mapping[str, Any]) -> None:
        model = self.model_for(collection)
        values, extra = _split_payload(model, patch)
        for key in IMMUTABLE_FIELDS:
            values.pop(key, None)

        try:
            if values or extra:
                # With only unmapped fields, SET id = id still takes the row's
                # write lock before extra is read below.
                stmt = (
                    sa.update(model)
                    .where(model.id == record_id)
                    .values(**(values or {"id": model.id}))
                    .execution_options(synchronize_session=False)
                )
                matched = db.session.execute(stmt).rowcount
            else:
                matched = db.session.query(model.id).filter_by(id=record_id).count()

            if not matched:
                db.session.rollback()
                raise NotFoundError(collection, record_id)

            if extra:
                current = db.session.execute(
                    sa.select(model.extra).where(model.id == record_id).with_for_update()
                ).scalar_one()
                db.session.execute(
                    sa.update(model)
                    .where(model.id == record_id)
                    .values(extra={**(current or {}), **extra})
                    .execution_options(synchronize_session=False)
                )

            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to update {collection}/{record_id}: {exc}") from exc

        logger.debug("Updated %s/%s fields=%s", collection, record_id, sorted([*values, *extra]))
        self._notify(collection)

    def delete(self, collection: str, record_id: str) -> None:
        """Hard delete. Deleting a missing id is a no-op."""
        model = self.model_for(collection)
        try:
            deleted = (
                db.session.query(model)
                .filter_by(id=record_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                db.session.rollback()
                logger.debug("Delete of missing %s/%s ignored", collection, record_id)
                return
            db.session.merge(RetiredId(collection=collection, record_id=record_id, retired_at=utcnow()))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(f"Failed to delete {collection}/{record_id}: {exc}") from exc

        logger.debug("Deleted %s/%s", collection, record_id)
        self._notify(collection)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, collection: str, on_change: Listener) -> Unsubscribe:
        """
        Register a live listener. on_change gets the full collection right
        away and again after every add/update/delete on it. Each listener gets
        its own snapshot list. The returned handle stops delivery; calling it
        twice is harmless.
        """
        self.model_for(collection)
        registry = self._registry
        sub = registry.add(collection, on_change)
        self._deliver(sub)

        def unsubscribe() -> None:
            registry.remove(sub)

        return unsubscribe

    def listener_count(self, collection: str) -> int:
        return self._registry.count(collection)

    def _notify(self, collection: str) -> None:
        for sub in self._registry.for_collection(collection):
            self._deliver(sub)

    def _deliver(self, sub: _Subscription) -> None:
        with sub.lock:
            if not sub.active:
                return
            try:
                records = self.list(sub.collection)
            except StoreError:
                logger.exception("Could not load %s snapshot for listener %s", sub.collection, sub.token)
                return
            try:
                sub.listener(records)
            except Exception:
                logger.exception("Listener %s for %s failed", sub.token, sub.collection)

    # ------------------------------------------------------------------

    def _generate_id(self, model) -> str:
        prefix = model.__id_prefix__ or model.__collection__[:3]
        taken = self.known_ids(model.__collection__)
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:12]}"
            if candidate not in taken:
                return candidate


record_store = RecordStore()
