import unittest
from datetime import date, timedelta
from types import SimpleNamespace

from gathermemorials.domain.anniversaries import next_occurrence, upcoming_anniversaries
from gathermemorials.domain.exceptions import IllegalTransition, InvariantViolation
from gathermemorials.domain.invariants.memorial import assert_custom_url, assert_lifespan
from gathermemorials.domain.lifecycle.guestbook import (
    EntryStatus,
    assert_entry_transition,
    initial_entry_status,
    status_for_action,
)
from gathermemorials.domain.lifecycle.memorial import MemorialStatus, assert_memorial_transition
from gathermemorials.domain.reminders import feast_days, upcoming_feast_days, upcoming_reminders
from gathermemorials.domain.spam import is_spam, spam_score


class SpamTests(unittest.TestCase):

    def test_ordinary_condolence_passes(self):
        self.assertFalse(is_spam("We will always remember his kindness and his laugh."))

    def test_too_short_is_spam(self):
        self.assertTrue(is_spam("so sad"))

    def test_too_long_is_spam(self):
        self.assertTrue(is_spam("word " * 501))

    def test_single_pattern_is_tolerated(self):
        message = "His obituary is also at https://example.com/john if anyone needs it."
        self.assertEqual(spam_score(message), 1)
        self.assertFalse(is_spam(message))

    def test_two_patterns_flag_spam(self):
        message = "You are a WINNER click here now https://cheap.example.com/deal"
        self.assertGreaterEqual(spam_score(message), 2)
        self.assertTrue(is_spam(message))

    def test_repeated_characters_and_shouting(self):
        message = "REST IN PEACE MY DEAR FRIEND!!!!!!!!!!!!!!"
        self.assertTrue(is_spam(message))


class AnniversaryTests(unittest.TestCase):

    def _memorial(self, **fields):
        base = {"id": "m1", "first_name": "Ada", "last_name": "Lovelace",
                "date_of_birth": None, "date_of_death": None}
        base.update(fields)
        return SimpleNamespace(**base)

    def test_next_occurrence_rolls_to_next_year(self):
        today = date(2024, 6, 10)
        self.assertEqual(next_occurrence(date(1990, 6, 1), today), date(2025, 6, 1))
        self.assertEqual(next_occurrence(date(1990, 6, 10), today), date(2024, 6, 10))

    def test_leap_day_maps_to_feb_28(self):
        self.assertEqual(next_occurrence(date(2000, 2, 29), date(2023, 2, 1)), date(2023, 2, 28))
        self.assertEqual(next_occurrence(date(2000, 2, 29), date(2024, 2, 1)), date(2024, 2, 29))

    def test_upcoming_sorted_and_windowed(self):
        today = date(2024, 3, 1)
        memorials = [
            self._memorial(id="a", date_of_death=date(2010, 3, 20)),
            self._memorial(id="b", date_of_birth=date(1950, 3, 5), date_of_death=date(2015, 9, 1)),
        ]
        results = upcoming_anniversaries(memorials, today=today)

        self.assertEqual([r["memorial_id"] for r in results], ["b", "a"])
        self.assertEqual(results[0]["type"], "birthday")
        self.assertEqual(results[0]["years_old"], 74)
        self.assertEqual(results[1]["type"], "death")
        self.assertEqual(results[1]["years_since"], 14)
        self.assertEqual(results[1]["days_until"], 19)

    def test_outside_window_is_skipped(self):
        today = date(2024, 3, 1)
        memorial = self._memorial(date_of_death=today - timedelta(days=1))
        self.assertEqual(upcoming_anniversaries([memorial], today=today), [])


class ReminderTests(unittest.TestCase):

    def _entry(self, birthday=True, anniversary=True, **fields):
        memorial = SimpleNamespace(**{
            "id": "m1", "first_name": "Ada", "last_name": "Lovelace",
            "date_of_birth": None, "date_of_death": None, **fields,
        })
        return SimpleNamespace(
            memorial=memorial,
            remind_on_birthday=birthday,
            remind_on_death_anniversary=anniversary,
        )

    def test_easter_based_feasts(self):
        feasts = feast_days(2024)
        self.assertEqual(feasts["easter"], date(2024, 3, 31))
        self.assertEqual(feasts["good_friday"], date(2024, 3, 29))
        self.assertEqual(feasts["divine_mercy_sunday"], date(2024, 4, 7))
        self.assertEqual(feasts["all_souls_day"], date(2024, 11, 2))

    def test_only_enabled_feasts_in_the_week_are_listed(self):
        enabled = {"good_friday": True, "easter": True, "divine_mercy_sunday": False}
        results = upcoming_feast_days(enabled, today=date(2024, 3, 27))

        self.assertEqual([r["feast"] for r in results], ["good_friday", "easter"])
        self.assertEqual(results[0]["days_until"], 2)

    def test_reminders_follow_entry_switches(self):
        today = date(2024, 3, 1)
        entries = [
            self._entry(id="a", date_of_birth=date(1950, 3, 3), date_of_death=date(2010, 3, 6)),
            self._entry(id="b", anniversary=False, date_of_death=date(2012, 3, 2)),
            self._entry(id="c", date_of_death=date(2012, 3, 20)),
        ]

        results = upcoming_reminders(entries, today=today)

        self.assertEqual(
            [(r["memorial_id"], r["type"]) for r in results],
            [("a", "birthday"), ("a", "death_anniversary")],
        )
        self.assertEqual(results[0]["days_until"], 2)
        self.assertEqual(results[0]["memorial_name"], "Ada Lovelace")


class LifecycleTests(unittest.TestCase):

    def test_memorial_transitions(self):
        self.assertEqual(
            assert_memorial_transition(from_status="draft", to_status="published"),
            MemorialStatus.PUBLISHED,
        )
        assert_memorial_transition(from_status="published", to_status="archived")
        assert_memorial_transition(from_status="archived", to_status="published")
        assert_memorial_transition(from_status="archived", to_status="deleted")

        with self.assertRaises(IllegalTransition):
            assert_memorial_transition(from_status="draft", to_status="archived")
        with self.assertRaises(IllegalTransition):
            assert_memorial_transition(from_status="deleted", to_status="published")

    def test_entry_status_never_returns_to_pending(self):
        for decided in (EntryStatus.APPROVED, EntryStatus.REJECTED):
            for target in EntryStatus:
                with self.assertRaises(IllegalTransition):
                    assert_entry_transition(from_status=decided, to_status=target)

        self.assertEqual(
            assert_entry_transition(from_status="pending", to_status="rejected"),
            EntryStatus.REJECTED,
        )

    def test_initial_status_follows_moderation_setting(self):
        self.assertEqual(initial_entry_status(moderated=True), EntryStatus.PENDING)
        self.assertEqual(initial_entry_status(moderated=False), EntryStatus.APPROVED)

    def test_unknown_action(self):
        self.assertEqual(status_for_action("approve"), EntryStatus.APPROVED)
        with self.assertRaises(InvariantViolation):
            status_for_action("delete")


class InvariantTests(unittest.TestCase):

    def test_custom_url_format(self):
        assert_custom_url("john-doe-1950")
        assert_custom_url(None)
        for bad in ("jo", "John-Doe", "john doe", "x" * 51, "john_doe"):
            with self.assertRaises(InvariantViolation):
                assert_custom_url(bad)

    def test_lifespan(self):
        assert_lifespan(date(1950, 1, 1), date(2000, 1, 1))
        with self.assertRaises(InvariantViolation):
            assert_lifespan(date(2000, 1, 1), date(1950, 1, 1))
        with self.assertRaises(InvariantViolation):
            assert_lifespan(None, date.today() + timedelta(days=2))


if __name__ == "__main__":
    unittest.main()
