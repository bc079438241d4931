# Overview: Threaded tests for concurrent writes against a file-backed database.

"""
Concurrency tests for the record store.

Each worker thread runs in its own app context (and so its own session)
against a temporary SQLite file, like separate request handlers would.
"""
import os
import tempfile
import threading
import unittest

from quotecraft import create_app
from quotecraft.extensions import db
from quotecraft.services import directory_service, lifecycle_service
from quotecraft.services.record_store import record_store


ITEMS = [{"description": "2MP Dome Camera", "quantity": 4, "unit_price": 55}]


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            client = directory_service.create_client({"name": "Concurrent Client"})
            self.client_id = client["id"]
            invoice = lifecycle_service.create_invoice(
                client_id=self.client_id, items=ITEMS, date="2024-07-15", status="Draft",
            )
            self.invoice_id = invoice["id"]

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_parallel(self, *targets):
        barrier = threading.Barrier(len(targets))
        errors = []
        results = [None] * len(targets)

        def worker(index, fn):
            with self.app.app_context():
                barrier.wait()
                try:
                    results[index] = fn()
                except Exception as exc:
                    errors.append(exc)
                finally:
                    db.session.remove()

        threads = [
            threading.Thread(target=worker, args=(i, fn)) for i, fn in enumerate(targets)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results, errors

    def test_disjoint_field_updates_both_land(self):
        results, errors = self._run_parallel(
            lambda: record_store.update("invoices", self.invoice_id, {"status": "Sent"}),
            lambda: record_store.update("invoices", self.invoice_id, {"due_date": "2024-09-30"}),
        )
        self.assertEqual(errors, [])

        with self.app.app_context():
            invoice = record_store.get("invoices", self.invoice_id)
        self.assertEqual(invoice["status"], "Sent")
        self.assertEqual(invoice["due_date"], "2024-09-30")

    def test_disjoint_unmapped_fields_both_land(self):
        for round_no in range(10):
            results, errors = self._run_parallel(
                lambda: record_store.update("clients", self.client_id, {"tier": f"gold-{round_no}"}),
                lambda: record_store.update("clients", self.client_id, {"website": f"site-{round_no}.net"}),
            )
            self.assertEqual(errors, [])

            with self.app.app_context():
                client = record_store.get("clients", self.client_id)
            self.assertEqual(client["tier"], f"gold-{round_no}")
            self.assertEqual(client["website"], f"site-{round_no}.net")
            self.assertEqual(client["name"], "Concurrent Client")

    def test_same_field_updates_one_wins(self):
        results, errors = self._run_parallel(
            lambda: record_store.update("invoices", self.invoice_id, {"status": "Sent"}),
            lambda: record_store.update("invoices", self.invoice_id, {"status": "Paid"}),
        )
        self.assertEqual(errors, [])

        with self.app.app_context():
            invoice = record_store.get("invoices", self.invoice_id)
        self.assertIn(invoice["status"], ("Sent", "Paid"))

    def test_concurrent_creates_get_distinct_ids(self):
        def create():
            return lifecycle_service.create_quotation(
                client_id=self.client_id, items=ITEMS, date="2024-07-15",
            )["id"]

        results, errors = self._run_parallel(create, create, create, create)
        self.assertEqual(errors, [])
        self.assertEqual(len(set(results)), 4)
        for quotation_id in results:
            self.assertRegex(quotation_id, r"^Q-2024-\d{3}$")

    def test_subscriber_sees_writes_from_other_threads(self):
        snapshots = []
        with self.app.app_context():
            unsubscribe = record_store.subscribe("clients", snapshots.append)

        try:
            _, errors = self._run_parallel(
                lambda: directory_service.create_client({"name": "A"}),
                lambda: directory_service.create_client({"name": "B"}),
            )
            self.assertEqual(errors, [])
        finally:
            unsubscribe()

        # Initial snapshot plus one per write; the last one sees both writes
        self.assertEqual(len(snapshots), 3)
        self.assertEqual(
            {c["name"] for c in snapshots[-1]},
            {"Concurrent Client", "A", "B"},
        )


if __name__ == '__main__':
    unittest.main()
