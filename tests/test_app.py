from creneaux import create_app
from creneaux.api.health import ns as health_ns
from creneaux.config import TestConfig
from creneaux.extensions import api, db
from creneaux.models import Filiere, Slot, User

from .base import DatabaseTestCase


class ApplicationTestCase(DatabaseTestCase):
    def test_health_reports_database(self) -> None:
        response = self.app.test_client().get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok", "database": "ok"})

    def test_swagger_lists_every_namespace(self) -> None:
        spec = self.app.test_client().get("/api/swagger.json").get_json()
        tags = {tag["name"] for tag in spec["tags"]}
        self.assertTrue(
            {"health", "users", "filieres", "slots", "reservations", "availability", "supervision"}
            <= tags
        )
        self.assertIn("/reservations/mine", spec["paths"])

    def test_namespaces_are_registered_on_the_rest_api(self) -> None:
        self.assertIn(health_ns, api.namespaces)
        rules = {rule.rule for rule in self.app.url_map.iter_rules()}
        self.assertIn("/api/health", rules)

    def test_second_app_gets_the_same_routes(self) -> None:
        other = create_app(TestConfig)
        rules = {rule.rule for rule in other.url_map.iter_rules()}
        self.assertIn("/api/reservations", rules)
        self.assertIn("/api/availability", rules)
        self.assertIsNot(
            other.extensions["change_notifier"], self.app.extensions["change_notifier"]
        )


class CommandLineTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.runner = self.app.test_cli_runner()

    def test_seed_loads_demonstration_data_once(self) -> None:
        result = self.runner.invoke(args=["seed"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(db.session.query(User).count(), 3)
        self.assertEqual(
            sorted(name for (name,) in db.session.query(Filiere.name)),
            ["Agora-MCVB", "Hôtellerie", "MCVA"],
        )
        self.assertEqual(db.session.query(Slot).count(), 14)

        self.runner.invoke(args=["seed"])
        self.assertEqual(db.session.query(User).count(), 3)

    def test_week_prints_the_grid(self) -> None:
        self.runner.invoke(args=["seed"])
        result = self.runner.invoke(args=["week", "--date", "2030-03-06", "--filiere", "MCVA"])
        self.assertEqual(result.exit_code, 0, result.output)
        lines = result.output.strip().splitlines()
        self.assertEqual(len(lines), 14)
        self.assertTrue(lines[0].startswith("Lundi"))
        self.assertIn("2030-03-04 08:00-10:00  available", lines[0])

    def test_week_rejects_bad_arguments(self) -> None:
        result = self.runner.invoke(args=["week", "--date", "06/03/2030"])
        self.assertEqual(result.exit_code, 2)
        result = self.runner.invoke(args=["week", "--filiere", "Inconnue"])
        self.assertEqual(result.exit_code, 2)
