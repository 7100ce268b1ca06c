"""Créneaux: weekly slot reservations for teachers, shared across filières."""
from __future__ import annotations

import click
from flask import Flask
from flask.cli import with_appcontext

from .config import Config
from .events import ChangeNotifier
from .extensions import api as rest_api, db, migrate


def create_app(config_class: type[Config] | Config = Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)
    app.extensions["change_notifier"] = ChangeNotifier()

    from . import models  # noqa: F401  # Ensure models registered for migrations
    from .api import register_namespaces

    register_namespaces(rest_api)
    rest_api.init_app(
        app,
        title=app.config.get("API_TITLE", rest_api.title),
        version=app.config.get("API_VERSION", rest_api.version),
    )

    with app.app_context():
        db.create_all()

    @app.cli.command("seed")
    @with_appcontext
    def seed() -> None:
        """Seed demonstration users, filières and the standard slots."""
        from .seed import seed_data

        seed_data()
        click.echo("Base de données initialisée avec les données de démonstration.")

    @app.cli.command("week")
    @click.option("--date", "reference", default=None, help="Any date of the week (YYYY-MM-DD).")
    @click.option("--filiere", "filiere_name", default=None, help="Filière name.")
    @with_appcontext
    def week(reference: str | None, filiere_name: str | None) -> None:
        """Print the availability of every slot for one week."""
        from .repository import SqlReservationBackend
        from .sync import ReservationStore
        from .utils import local_now, parse_date

        now = local_now(app.config["LOCAL_TIMEZONE"])
        try:
            day = parse_date(reference) if reference else now.date()
        except ValueError as exc:
            raise click.BadParameter("format attendu YYYY-MM-DD", param_hint="--date") from exc

        store = ReservationStore(
            SqlReservationBackend(app), refresh_delay=app.config["REFRESH_DELAY_SECONDS"]
        )
        try:
            store.refresh()
            filiere_id = None
            if filiere_name:
                match = next(
                    (item for item in store.snapshot.filieres if item.name == filiere_name),
                    None,
                )
                if match is None:
                    raise click.BadParameter(
                        f"filière inconnue: {filiere_name}", param_hint="--filiere"
                    )
                filiere_id = match.id
            for display in store.availability(day, now, filiere_id):
                line = (
                    f"{display.slot.weekday:<9} {display.date.isoformat()} "
                    f"{display.slot.start:%H:%M}-{display.slot.end:%H:%M}  {display.status.value}"
                )
                if display.reservation is not None:
                    owner = display.user.full_name if display.user else display.reservation.user_id
                    track = display.filiere.name if display.filiere else display.reservation.filiere_id
                    line += f"  {display.reservation.title} ({owner}, {track})"
                click.echo(line)
        finally:
            store.close()

    return app

