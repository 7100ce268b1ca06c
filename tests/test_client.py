import json
import unittest
from datetime import date

import httpx

from creneaux.client import HttpReservationBackend
from creneaux.errors import (
    Forbidden,
    MissingField,
    SlotAlreadyBooked,
    StoreConnectionError,
    ValidationError,
)
from creneaux.guard import ReservationRequest
from creneaux.sync import ReservationStore

from .base import DatabaseTestCase


class MockedClientTestCase(unittest.TestCase):
    def backend(self, handler):
        return HttpReservationBackend(
            "http://planning.test/api/", "u1", transport=httpx.MockTransport(handler)
        )

    def test_sends_identity_header_and_parses_slots(self) -> None:
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json=[{"id": "s1", "weekday": "Lundi", "start_time": "08:00", "end_time": "10:00"}],
            )

        slots = self.backend(handler).list_slots()
        self.assertEqual(slots[0].weekday, "Lundi")
        self.assertEqual(seen[0].url.path, "/api/slots")
        self.assertEqual(seen[0].headers["X-User-Id"], "u1")

    def test_reservation_filters_become_query_parameters(self) -> None:
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        self.backend(handler).list_reservations("f1", (date(2030, 3, 4), date(2030, 3, 8)))
        params = dict(seen[0].url.params)
        self.assertEqual(params, {"filiere_id": "f1", "start": "2030-03-04", "end": "2030-03-08"})

    def test_create_books_as_requesting_user(self) -> None:
        seen = []

        def handler(request):
            seen.append(request)
            body = json.loads(request.content)
            body.update({"id": "r1", "user_id": request.headers["X-User-Id"]})
            return httpx.Response(201, json=body)

        request = ReservationRequest.from_mapping(
            {
                "user_id": "u2",
                "filiere_id": "f1",
                "slot_id": "s1",
                "date": date(2030, 3, 4),
                "title": "Vente",
                "description": "Atelier de vente conseil",
            }
        )
        record = self.backend(handler).create_reservation(request)
        self.assertEqual(record.user_id, "u2")
        self.assertEqual(record.date, date(2030, 3, 4))
        self.assertNotIn("user_id", json.loads(seen[0].content))

    def test_error_bodies_become_domain_errors(self) -> None:
        cases = [
            (409, {"message": "Ce créneau est déjà réservé à cette date", "kind": "slot_already_booked", "existing_reservation": {"id": "r0"}}, SlotAlreadyBooked),
            (400, {"message": "Champ manquant", "kind": "missing_field", "field": "title"}, MissingField),
            (400, {"message": "invalide", "kind": "validation_error", "errors": []}, ValidationError),
            (403, {"message": "Accès refusé"}, Forbidden),
            (502, {"message": "Bad gateway"}, StoreConnectionError),
        ]
        for status, body, expected in cases:
            with self.subTest(kind=expected.__name__):
                backend = self.backend(lambda request, s=status, b=body: httpx.Response(s, json=b))
                with self.assertRaises(expected) as ctx:
                    backend.delete_reservation("r1", "u1")
                self.assertEqual(ctx.exception.message, body["message"])

    def test_transport_failure_is_a_connection_error(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with self.assertRaises(StoreConnectionError):
            self.backend(handler).list_users()


class ClientAgainstApplicationTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.create_fixtures()
        self.backend = HttpReservationBackend(
            "http://testserver/api",
            self.teacher.id,
            transport=httpx.WSGITransport(app=self.app),
        )
        self.store = ReservationStore(self.backend, schedule=lambda delay, callback: None)

    def tearDown(self) -> None:
        self.store.close()
        self.backend.close()
        super().tearDown()

    def test_store_round_trip_through_the_api(self) -> None:
        self.store.refresh()
        self.assertEqual(len(self.store.snapshot.slots), 2)

        created = self.store.create_reservation(
            {
                "user_id": self.teacher.id,
                "filiere_id": self.hotellerie.id,
                "slot_id": self.monday_slot.id,
                "date": "2030-03-04",
                "title": "Service en salle",
                "description": "Mise en place et service du déjeuner",
            }
        )
        self.assertEqual(created.user_id, self.teacher.id)

        with self.assertRaises(Forbidden):
            self.backend.delete_reservation(created.id, self.colleague.id)

        self.store.update_reservation(created.id, {"room": "Salle 3"}, self.teacher.id)
        self.store.refresh()
        self.assertEqual(self.store.snapshot.reservation(created.id).room, "Salle 3")

        self.store.delete_reservation(created.id, self.teacher.id)
        self.store.refresh()
        self.assertEqual(self.store.reservations, ())
