import unittest
from datetime import date, time

from creneaux.domain import ReservationRecord, Snapshot, TimeSlot, TrackRef, UserRef
from creneaux.errors import MissingField, NotFound, SlotAlreadyBooked, ValidationError
from creneaux.guard import (
    ReservationRequest,
    check_reservation,
    find_conflict,
    validate_changes,
    validate_fields,
)


MONDAY = date(2025, 3, 3)


def candidate(**overrides):
    payload = {
        "user_id": "u1",
        "filiere_id": "f1",
        "slot_id": "s1",
        "date": "2025-03-03",
        "title": "Service en salle",
        "description": "Mise en place et service du déjeuner",
    }
    payload.update(overrides)
    return payload


class GuardTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.snapshot = Snapshot(
            slots=[TimeSlot("s1", "Lundi", time(8, 0), time(10, 0))],
            users=[UserRef("u1", "Jean", "Dupont", "jean.dupont@example.com")],
            filieres=[TrackRef("f1", "Hôtellerie"), TrackRef("f2", "MCVA")],
        )
        self.existing = ReservationRecord(
            id="r1",
            user_id="u1",
            filiere_id="f1",
            slot_id="s1",
            date=MONDAY,
            title="Cuisine",
            description="Atelier cuisine du lundi",
        )

    def test_accepts_valid_candidate_and_normalises_it(self) -> None:
        request = check_reservation(candidate(title="  Service en salle  "), self.snapshot)
        self.assertIsInstance(request, ReservationRequest)
        self.assertEqual(request.date, MONDAY)
        self.assertEqual(request.title, "Service en salle")

    def test_missing_fields_come_first(self) -> None:
        for name in ("user_id", "filiere_id", "slot_id", "date", "title", "description"):
            with self.subTest(field=name):
                with self.assertRaises(MissingField) as ctx:
                    check_reservation(candidate(**{name: "   "}), Snapshot())
                self.assertEqual(ctx.exception.field, name)

    def test_unknown_references(self) -> None:
        cases = [
            ({"user_id": "ghost"}, "Utilisateur non trouvé"),
            ({"filiere_id": "ghost"}, "Filière non trouvée"),
            ({"slot_id": "ghost"}, "Créneau non trouvé"),
        ]
        for overrides, message in cases:
            with self.subTest(overrides=overrides):
                with self.assertRaises(NotFound) as ctx:
                    check_reservation(candidate(**overrides), self.snapshot)
                self.assertEqual(ctx.exception.message, message)

    def test_user_is_checked_before_filiere_and_slot(self) -> None:
        with self.assertRaises(NotFound) as ctx:
            check_reservation(
                candidate(user_id="x", filiere_id="y", slot_id="z"), self.snapshot
            )
        self.assertEqual(ctx.exception.entity, "Utilisateur")

    def test_invalid_date_format(self) -> None:
        with self.assertRaises(ValidationError):
            check_reservation(candidate(date="03/03/2025"), self.snapshot)

    def test_non_text_values_are_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            check_reservation(candidate(title=123, room=["A"]), self.snapshot)
        self.assertEqual([error["field"] for error in ctx.exception.errors], ["title", "room"])

        with self.assertRaises(ValidationError) as ctx:
            check_reservation(candidate(date=20250303), self.snapshot)
        self.assertEqual(ctx.exception.errors[0]["field"], "date")

    def test_conflict_reports_existing_reservation(self) -> None:
        snapshot = self.snapshot.with_reservations([self.existing])
        with self.assertRaises(SlotAlreadyBooked) as ctx:
            check_reservation(candidate(), snapshot)
        self.assertIs(ctx.exception.existing, self.existing)
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.to_dict()["existing_reservation"]["id"], "r1")

    def test_other_filiere_can_book_same_slot(self) -> None:
        snapshot = self.snapshot.with_reservations([self.existing])
        request = check_reservation(candidate(filiere_id="f2"), snapshot)
        self.assertEqual(request.filiere_id, "f2")

    def test_guard_is_deterministic(self) -> None:
        snapshot = self.snapshot.with_reservations([self.existing])
        outcomes = []
        for _ in range(2):
            try:
                check_reservation(candidate(filiere_id="f2"), snapshot)
                outcomes.append("accepted")
            except SlotAlreadyBooked:
                outcomes.append("rejected")
        for _ in range(2):
            try:
                check_reservation(candidate(), snapshot)
                outcomes.append("accepted")
            except SlotAlreadyBooked:
                outcomes.append("rejected")
        self.assertEqual(outcomes, ["accepted", "accepted", "rejected", "rejected"])

    def test_find_conflict_can_ignore_a_record(self) -> None:
        reservations = [self.existing]
        self.assertIs(find_conflict(reservations, "s1", MONDAY, "f1"), self.existing)
        self.assertIsNone(find_conflict(reservations, "s1", MONDAY, "f1", ignore_id="r1"))


class FieldValidationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.snapshot = Snapshot(slots=[TimeSlot("s1", "Lundi", time(8, 0), time(10, 0))])

    def request(self, **overrides):
        return ReservationRequest.from_mapping(candidate(**{"date": MONDAY, **overrides}))

    def test_valid_request_passes(self) -> None:
        validate_fields(self.request(), self.snapshot, MONDAY)

    def test_lengths_are_enforced(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_fields(
                self.request(title="x" * 201, description="court", room="r" * 51),
                self.snapshot,
                MONDAY,
            )
        fields = [error["field"] for error in ctx.exception.errors]
        self.assertEqual(fields, ["title", "description", "room"])

    def test_past_date_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_fields(self.request(), self.snapshot, date(2025, 3, 4))
        self.assertEqual(ctx.exception.errors[0]["field"], "date")

    def test_date_must_fall_on_slot_weekday(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_fields(self.request(date=date(2025, 3, 4)), self.snapshot, MONDAY)
        self.assertIn("lundi", ctx.exception.errors[0]["message"])

    def test_changes_are_limited_to_editable_fields(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_changes({"title": "Nouveau", "slot_id": "s2"})
        self.assertEqual(ctx.exception.errors[0]["field"], "slot_id")

    def test_changes_must_be_text(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_changes({"title": 42})
        self.assertEqual(ctx.exception.errors[0]["field"], "title")

    def test_changes_are_cleaned(self) -> None:
        cleaned = validate_changes({"title": " Nouveau titre ", "room": "  "})
        self.assertEqual(cleaned, {"title": "Nouveau titre", "room": None})
