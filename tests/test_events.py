import unittest

from creneaux.events import RESERVATION_CREATED, ChangeNotifier


class ChangeNotifierTestCase(unittest.TestCase):
    def test_failing_subscriber_does_not_block_others(self) -> None:
        notifier = ChangeNotifier()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        notifier.subscribe(broken)
        notifier.subscribe(received.append)

        with self.assertLogs("creneaux.events", level="ERROR"):
            event = notifier.publish(RESERVATION_CREATED, {"reservation_id": "r1"})

        self.assertEqual(received, [event])
        self.assertEqual(event.payload, {"reservation_id": "r1"})

    def test_unsubscribe_is_idempotent(self) -> None:
        notifier = ChangeNotifier()
        unsubscribe = notifier.subscribe(lambda event: None)
        self.assertEqual(len(notifier), 1)
        unsubscribe()
        unsubscribe()
        self.assertEqual(len(notifier), 0)
