from datetime import time

from sqlalchemy import func, select

from .domain import ROLE_ADMIN, ROLE_TEACHER
from .extensions import db
from .models import Filiere, Slot, User


MORNING_SLOTS = [(time(8, 0), time(10, 0)), (time(10, 0), time(12, 0))]
AFTERNOON_SLOTS = [(time(13, 0), time(15, 0))]

# Wednesday afternoons stay free.
STANDARD_SLOTS = {
    "Lundi": MORNING_SLOTS + AFTERNOON_SLOTS,
    "Mardi": MORNING_SLOTS + AFTERNOON_SLOTS,
    "Mercredi": MORNING_SLOTS,
    "Jeudi": MORNING_SLOTS + AFTERNOON_SLOTS,
    "Vendredi": MORNING_SLOTS + AFTERNOON_SLOTS,
}

DEMO_USERS = [
    ("Admin", "Biencinto", "admin@example.com", ROLE_ADMIN),
    ("Jean", "Dupont", "jean.dupont@example.com", ROLE_TEACHER),
    ("Marie", "Laurent", "marie.laurent@example.com", ROLE_TEACHER),
]

DEMO_FILIERES = ["Hôtellerie", "Agora-MCVB", "MCVA"]


def ensure_standard_slots() -> list[Slot]:
    """Add the standard weekly grid, skipping windows that already exist."""
    created = []
    for weekday, windows in STANDARD_SLOTS.items():
        for start, end in windows:
            existing = db.session.scalar(
                select(Slot.id).where(
                    Slot.weekday == weekday,
                    Slot.start_time == start,
                    Slot.end_time == end,
                )
            )
            if existing is not None:
                continue
            slot = Slot(weekday=weekday, start_time=start, end_time=end)
            db.session.add(slot)
            created.append(slot)
    db.session.commit()
    return created


def seed_data() -> None:
    if db.session.scalar(select(func.count(User.id))):
        return

    for first_name, last_name, email, role in DEMO_USERS:
        db.session.add(
            User(first_name=first_name, last_name=last_name, email=email, role=role)
        )
    for name in DEMO_FILIERES:
        db.session.add(Filiere(name=name))
    db.session.commit()
    ensure_standard_slots()
