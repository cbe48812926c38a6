import csv
import io
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from gathermemorials.extensions import db
from gathermemorials.models.prayer_list_entry import PrayerListEntry
from gathermemorials.models.reminder_preferences import ReminderPreferences
from tests.base import ApiTestCase


class PrayerListTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()
        self.visitor = self.make_user(email="visitor@example.com", full_name="Vera Visitor")
        self.memorial = self.make_published(self.owner, headline="Loving husband")

    def add(self, memorial=None, **payload):
        payload.setdefault("memorial_id", (memorial or self.memorial).id)
        return self.client.post("/api/v1/prayer-list", json=payload, headers=self.auth(self.visitor))

    def test_add_and_duplicate(self):
        response = self.add(notes="  Every Sunday  ")

        self.assertEqual(response.status_code, 201, response.get_json())
        item = response.get_json()["item"]
        self.assertEqual(item["notes"], "Every Sunday")
        self.assertEqual(item["memorial"]["full_name"], "John Doe")

        self.assertError(self.add(), 409, "Conflict")

    def test_remove_then_readd_reactivates_row(self):
        entry_id = self.add().get_json()["item"]["id"]

        removed = self.client.delete(f"/api/v1/prayer-list/{entry_id}", headers=self.auth(self.visitor))
        self.assertEqual(removed.status_code, 200)
        self.assertFalse(db.session.get(PrayerListEntry, entry_id).is_active)

        again = self.client.delete(f"/api/v1/prayer-list/{entry_id}", headers=self.auth(self.visitor))
        self.assertError(again, 404, "NotFound")

        readded = self.add()
        self.assertEqual(readded.status_code, 200)
        self.assertEqual(readded.get_json()["item"]["id"], entry_id)
        self.assertEqual(PrayerListEntry.query.count(), 1)

    def test_update_notes(self):
        entry_id = self.add().get_json()["item"]["id"]
        url = f"/api/v1/prayer-list/{entry_id}"

        updated = self.client.patch(url, json={"notes": "Anniversary mass"}, headers=self.auth(self.visitor))
        self.assertEqual(updated.get_json()["item"]["notes"], "Anniversary mass")

        self.assertError(self.client.patch(url, json={}, headers=self.auth(self.visitor)), 400)
        self.assertError(self.client.patch(url, json={"notes": 5}, headers=self.auth(self.visitor)), 400)
        self.assertError(self.client.patch(url, json={"notes": "x" * 501}, headers=self.auth(self.visitor)), 400)

        # Entries belong to the user who added them
        self.assertError(self.client.patch(url, json={"notes": "mine"}, headers=self.auth(self.owner)), 404)

        self.client.delete(url, headers=self.auth(self.visitor))
        removed = self.client.patch(url, json={"notes": "late"}, headers=self.auth(self.visitor))
        body = self.assertError(removed, 400, "InvariantViolation")
        self.assertEqual(body["message"], "Cannot update removed prayer list item")

    def test_privacy_is_respected(self):
        private = self.make_published(self.owner, privacy="private")
        protected = self.make_published(self.owner, privacy="password", password="secret")

        self.assertError(self.add(private), 403, "PermissionDenied")
        self.assertError(self.add(protected), 401, "AuthenticationRequired")

        response = self.client.post(
            "/api/v1/prayer-list",
            json={"memorial_id": protected.id},
            headers=self.auth(self.visitor, **{"X-Memorial-Password": "secret"}),
        )
        self.assertEqual(response.status_code, 201)

    def test_overview_with_anniversaries(self):
        today = datetime.now(timezone.utc).date()
        upcoming = today + timedelta(days=5)
        soon = self.make_published(
            self.owner,
            first_name="Ada",
            date_of_birth=None,
            date_of_death=upcoming.replace(year=upcoming.year - 4),
        )
        self.add()
        self.add(soon)

        body = self.client.get("/api/v1/prayer-list", headers=self.auth(self.visitor)).get_json()

        self.assertEqual(len(body["prayer_list"]), 2)
        self.assertEqual(body["stats"]["total_count"], 2)

        ada = [a for a in body["anniversaries"] if a["memorial_id"] == soon.id]
        self.assertEqual(len(ada), 1)
        self.assertEqual(ada[0]["type"], "death")
        self.assertEqual(ada[0]["days_until"], 5)
        self.assertEqual(ada[0]["years_since"], 4)

    def test_export_csv(self):
        self.add(notes="Remember in prayer")

        response = self.client.get("/api/v1/prayer-list/export?format=csv", headers=self.auth(self.visitor))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.mimetype.startswith("text/csv"))
        self.assertIn("attachment; filename=\"prayer-list-", response.headers["Content-Disposition"])

        rows = list(csv.reader(io.StringIO(response.get_data(as_text=True))))
        self.assertEqual(rows[0][0], "Name")
        self.assertEqual(rows[0][-1], "Notes")
        self.assertEqual(rows[1][0], "John Doe")
        self.assertEqual(rows[1][4], "Loving husband")
        self.assertEqual(rows[1][-1], "Remember in prayer")

    def test_export_json(self):
        self.add()

        response = self.client.get("/api/v1/prayer-list/export?format=json", headers=self.auth(self.visitor))

        body = response.get_json()
        self.assertEqual(body["export_info"]["total_count"], 1)
        self.assertEqual(body["prayer_list"][0]["memorial"]["name"]["first"], "John")
        self.assertTrue(response.headers["Content-Disposition"].endswith('.json"'))

    def test_export_errors(self):
        self.assertError(
            self.client.get("/api/v1/prayer-list/export", headers=self.auth(self.visitor)),
            404,
            "NotFound",
        )

        self.add()
        self.assertError(
            self.client.get("/api/v1/prayer-list/export?format=pdf", headers=self.auth(self.visitor)),
            400,
            "InvariantViolation",
        )

    def test_memorials_that_go_private_lose_their_summary(self):
        today = datetime.now(timezone.utc).date()
        upcoming = today + timedelta(days=3)
        soon = self.make_published(
            self.owner,
            first_name="Ada",
            date_of_death=upcoming.replace(year=upcoming.year - 4),
        )
        self.add()
        self.add(soon)

        self.memorial.privacy = "private"
        soon.status = "archived"
        db.session.commit()

        body = self.client.get("/api/v1/prayer-list", headers=self.auth(self.visitor)).get_json()

        self.assertEqual(len(body["prayer_list"]), 2)
        self.assertTrue(all(item["memorial"] is None for item in body["prayer_list"]))
        self.assertEqual(body["anniversaries"], [])
        self.assertEqual(
            {item["memorial_name"] for item in body["stats"]["recent_additions"]},
            {"Unknown"},
        )

        response = self.client.get("/api/v1/prayer-list/export?format=csv", headers=self.auth(self.visitor))
        self.assertError(response, 404, "NotFound")

    def test_owner_still_sees_own_private_memorial(self):
        self.memorial.privacy = "private"
        db.session.commit()
        self.client.post(
            "/api/v1/prayer-list",
            json={"memorial_id": self.memorial.id},
            headers=self.auth(self.owner),
        )

        body = self.client.get("/api/v1/prayer-list", headers=self.auth(self.owner)).get_json()

        self.assertEqual(body["prayer_list"][0]["memorial"]["full_name"], "John Doe")

    def test_export_skips_hidden_memorials(self):
        hidden = self.make_published(self.owner, first_name="Ada")
        self.add()
        self.add(hidden)
        hidden.privacy = "password"
        hidden.set_password("secret")
        db.session.commit()

        response = self.client.get("/api/v1/prayer-list/export?format=json", headers=self.auth(self.visitor))

        body = response.get_json()
        self.assertEqual(body["export_info"]["total_count"], 1)
        self.assertEqual(body["prayer_list"][0]["memorial"]["id"], self.memorial.id)

    def test_reminder_switches_on_entries(self):
        item = self.add().get_json()["item"]
        self.assertTrue(item["remind_on_birthday"])
        self.assertTrue(item["remind_on_death_anniversary"])

        url = f"/api/v1/prayer-list/{item['id']}"
        updated = self.client.patch(url, json={"remind_on_birthday": False}, headers=self.auth(self.visitor))

        self.assertEqual(updated.status_code, 200, updated.get_json())
        self.assertFalse(updated.get_json()["item"]["remind_on_birthday"])
        self.assertEqual(updated.get_json()["item"]["memorial"]["full_name"], "John Doe")

        bad = self.client.patch(url, json={"remind_on_birthday": "no"}, headers=self.auth(self.visitor))
        self.assertError(bad, 400, "InvariantViolation")


class ReminderPreferenceTests(ApiTestCase):

    url = "/api/v1/prayer-list/reminders"

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()
        self.visitor = self.make_user(email="visitor@example.com", full_name="Vera Visitor")

    def test_defaults_until_saved(self):
        response = self.client.get(self.url, headers=self.auth(self.visitor))

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["is_default"])
        self.assertEqual(body["preferences"]["reminder_time"], "09:00:00")
        self.assertTrue(body["preferences"]["weekly_digest"])
        self.assertEqual(body["statistics"]["active_prayer_count"], 0)

    def test_requires_login(self):
        self.assertError(self.client.get(self.url), 401)

    def test_save_and_update(self):
        created = self.client.put(
            self.url,
            json={"reminder_time": "07:30:00", "timezone": "Europe/Dublin", "unknown": 1},
            headers=self.auth(self.visitor),
        )
        self.assertEqual(created.status_code, 200, created.get_json())
        self.assertEqual(created.get_json()["preferences"]["timezone"], "Europe/Dublin")

        updated = self.client.patch(self.url, json={"digest_day": 3}, headers=self.auth(self.visitor))
        prefs = updated.get_json()["preferences"]
        self.assertEqual(prefs["digest_day"], 3)
        self.assertEqual(prefs["reminder_time"], "07:30:00")

        body = self.client.get(self.url, headers=self.auth(self.visitor)).get_json()
        self.assertFalse(body["is_default"])
        self.assertEqual(ReminderPreferences.query.count(), 1)

    def test_invalid_values(self):
        for payload in (
            {"reminder_time": "25:00:00"},
            {"reminder_time": "9am"},
            {"timezone": "Mars/Olympus_Mons"},
            {"digest_day": 7},
            {"digest_day": True},
            {"easter": "yes"},
            {"unknown": True},
        ):
            response = self.client.patch(self.url, json=payload, headers=self.auth(self.visitor))
            self.assertError(response, 400, "InvariantViolation")

        self.assertEqual(ReminderPreferences.query.count(), 0)

    def test_upcoming_reminders_and_entry_defaults(self):
        self.client.patch(self.url, json={"default_birthday_reminder": False}, headers=self.auth(self.visitor))
        today = datetime.now(timezone.utc).date()
        soon = today + timedelta(days=2)
        memorial = self.make_published(
            self.owner,
            date_of_birth=soon.replace(year=soon.year - 80),
            date_of_death=soon.replace(year=soon.year - 4),
        )
        item = self.client.post(
            "/api/v1/prayer-list",
            json={"memorial_id": memorial.id},
            headers=self.auth(self.visitor),
        ).get_json()["item"]
        self.assertFalse(item["remind_on_birthday"])

        body = self.client.get(self.url, headers=self.auth(self.visitor)).get_json()

        self.assertEqual(body["statistics"]["active_prayer_count"], 1)
        self.assertEqual([r["type"] for r in body["upcoming_reminders"]], ["death_anniversary"])
        self.assertEqual(body["upcoming_reminders"][0]["days_until"], 2)

    def test_send_test_reminder(self):
        memorial = self.make_published(self.owner)
        self.client.post("/api/v1/prayer-list", json={"memorial_id": memorial.id}, headers=self.auth(self.visitor))

        with patch("gathermemorials.services.notifications.deliver", return_value=True) as deliver:
            response = self.client.post(f"{self.url}/test", headers=self.auth(self.visitor))

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["email"], "visitor@example.com")
        self.assertEqual(body["sample_count"], 1)
        self.assertTrue(body["delivered"])
        payload = deliver.call_args.args[0]
        self.assertEqual(payload["type"], "prayer_reminder_test")
        self.assertEqual(payload["data"]["memorial_names"], ["John Doe"])
