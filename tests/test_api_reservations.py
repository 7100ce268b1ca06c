from datetime import date

from creneaux.extensions import db
from creneaux.models import Reservation

from .base import DatabaseTestCase


FUTURE_MONDAY = "2030-03-04"


class ReservationApiTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.create_fixtures()
        self.client = self.app.test_client()

    def headers(self, user=None):
        user = user or self.teacher
        return {"X-User-Id": user.id}

    def book(self, user=None, **overrides):
        payload = {
            "filiere_id": self.hotellerie.id,
            "slot_id": self.monday_slot.id,
            "date": FUTURE_MONDAY,
            "title": "Service en salle",
            "description": "Mise en place et service du déjeuner",
            "axis": "Relation client",
        }
        payload.update(overrides)
        return self.client.post("/api/reservations", json=payload, headers=self.headers(user))

    def test_requires_identity(self) -> None:
        response = self.client.get("/api/reservations")
        self.assertEqual(response.status_code, 401)
        response = self.client.get("/api/reservations", headers={"X-User-Id": "unknown"})
        self.assertEqual(response.status_code, 401)

    def test_create_books_for_current_user(self) -> None:
        response = self.book(user_id=self.colleague.id)
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body["user_id"], self.teacher.id)
        self.assertEqual(body["date"], FUTURE_MONDAY)
        self.assertEqual(body["axis"], "Relation client")

    def test_double_booking_returns_conflict(self) -> None:
        first = self.book().get_json()
        response = self.book(user=self.colleague)
        self.assertEqual(response.status_code, 409)
        body = response.get_json()
        self.assertEqual(body["kind"], "slot_already_booked")
        self.assertEqual(body["message"], "Ce créneau est déjà réservé à cette date")
        self.assertEqual(body["existing_reservation"]["id"], first["id"])
        self.assertEqual(db.session.query(Reservation).count(), 1)

    def test_missing_and_invalid_fields(self) -> None:
        response = self.book(title="")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["kind"], "missing_field")
        self.assertEqual(response.get_json()["field"], "title")

        response = self.book(description="court")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["errors"][0]["field"], "description")

        response = self.book(date="2030-03-05")
        self.assertEqual(response.status_code, 400)

        response = self.book(date="2020-03-02")
        self.assertEqual(response.status_code, 400)

    def test_non_text_fields_are_rejected(self) -> None:
        for overrides in ({"title": 123}, {"date": 20300304}, {"room": ["Salle 3"]}):
            with self.subTest(**overrides):
                response = self.book(**overrides)
                self.assertEqual(response.status_code, 400)
        self.assertEqual(db.session.query(Reservation).count(), 0)

        reservation_id = self.book().get_json()["id"]
        response = self.client.put(
            f"/api/reservations/{reservation_id}", json={"title": 42}, headers=self.headers()
        )
        self.assertEqual(response.status_code, 400)

    def test_unknown_slot_is_not_found(self) -> None:
        response = self.book(slot_id="missing")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["message"], "Créneau non trouvé")

    def test_list_filters_by_week_and_filiere(self) -> None:
        self.book()
        self.book(filiere_id=self.mcva.id)
        self.book(date="2030-03-11")

        response = self.client.get(
            f"/api/reservations?week=2030-03-06&filiere_id={self.mcva.id}",
            headers=self.headers(),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()), 1)

        response = self.client.get(
            "/api/reservations?start=2030-03-04&end=2030-03-11", headers=self.headers()
        )
        self.assertEqual(len(response.get_json()), 3)

        response = self.client.get("/api/reservations?start=demain", headers=self.headers())
        self.assertEqual(response.status_code, 400)

    def test_mine_splits_upcoming_and_past(self) -> None:
        self.book()
        past = Reservation(
            user_id=self.teacher.id,
            filiere_id=self.hotellerie.id,
            slot_id=self.monday_slot.id,
            date=date(2020, 3, 2),
            title="Ancienne séance",
            description="Séance passée du lundi matin",
        )
        db.session.add(past)
        db.session.commit()

        body = self.client.get("/api/reservations/mine", headers=self.headers()).get_json()
        self.assertEqual([item["date"] for item in body["upcoming"]], [FUTURE_MONDAY])
        self.assertEqual([item["date"] for item in body["past"]], ["2020-03-02"])

        body = self.client.get(
            "/api/reservations/mine", headers=self.headers(self.colleague)
        ).get_json()
        self.assertEqual(body, {"upcoming": [], "past": []})

    def test_update_and_delete_are_owner_only(self) -> None:
        reservation_id = self.book().get_json()["id"]
        url = f"/api/reservations/{reservation_id}"

        response = self.client.put(url, json={"room": "Salle 12"}, headers=self.headers(self.colleague))
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(url, headers=self.headers(self.admin))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(db.session.query(Reservation).count(), 1)

        response = self.client.put(url, json={"room": "Salle 12"}, headers=self.headers())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["room"], "Salle 12")

        response = self.client.put(url, json={"slot_id": "other"}, headers=self.headers())
        self.assertEqual(response.status_code, 400)

        response = self.client.delete(url, headers=self.headers())
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response.data, b"")
        response = self.client.get(url, headers=self.headers())
        self.assertEqual(response.status_code, 404)

    def test_availability_week(self) -> None:
        self.book()
        response = self.client.get(
            "/api/availability?date=2030-03-06", headers=self.headers(self.colleague)
        )
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["week_start"], FUTURE_MONDAY)
        self.assertEqual(body["week_end"], "2030-03-08")
        statuses = {item["weekday"]: item["status"] for item in body["slots"]}
        self.assertEqual(statuses, {"Lundi": "reserved", "Mardi": "available"})
        monday = body["slots"][0]
        self.assertEqual(monday["user"]["last_name"], "Dupont")
        self.assertEqual(monday["filiere"]["name"], "Hôtellerie")
        self.assertEqual(body["time_ranges"], ["08:00-10:00", "13:00-15:00"])

        response = self.client.get(
            f"/api/availability?date=2030-03-06&filiere_id={self.mcva.id}",
            headers=self.headers(),
        )
        statuses = [item["status"] for item in response.get_json()["slots"]]
        self.assertEqual(statuses, ["available", "available"])

    def test_availability_of_past_week_is_elapsed(self) -> None:
        response = self.client.get("/api/availability?date=2020-03-04", headers=self.headers())
        statuses = {item["status"] for item in response.get_json()["slots"]}
        self.assertEqual(statuses, {"elapsed"})

    def test_availability_unknown_filiere(self) -> None:
        response = self.client.get("/api/availability?filiere_id=nope", headers=self.headers())
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["kind"], "not_found")
