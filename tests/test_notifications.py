from unittest.mock import patch

from gathermemorials.services import notifications
from tests.base import ApiTestCase


class NotificationTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()
        self.visitor = self.make_user(email="visitor@example.com", full_name="Vera <b>Visitor</b>")
        self.memorial = self.make_published(self.owner, custom_url="john-doe")
        self.entry = self.make_entry(self.memorial, self.visitor)

    def test_moderation_email_escapes_author_content(self):
        payload = notifications.new_entry_moderation(entry=self.entry, memorial=self.memorial, owner=self.owner)

        self.assertEqual(payload["to"], "owner@example.com")
        self.assertIn("John Doe", payload["subject"])
        self.assertIn("Vera &lt;b&gt;Visitor&lt;/b&gt;", payload["html"])

    def test_owner_can_opt_out(self):
        self.memorial.guestbook_notify_frequency = "never"
        payload = notifications.new_entry_moderation(entry=self.entry, memorial=self.memorial, owner=self.owner)
        self.assertIsNone(payload)

    def test_rejection_includes_reason(self):
        self.entry.status = "rejected"
        payload = notifications.moderation_result(entry=self.entry, memorial=self.memorial, reason="Off topic")

        self.assertEqual(payload["type"], "entry_rejected")
        self.assertEqual(payload["to"], "visitor@example.com")
        self.assertIn("Reason: Off topic", payload["html"])

    def test_approval_links_to_memorial(self):
        self.entry.status = "approved"
        payload = notifications.moderation_result(entry=self.entry, memorial=self.memorial, reason=None)

        self.assertEqual(payload["data"]["memorial_url"], "http://localhost:3000/memorials/john-doe")

    def test_deliver_without_api_key_only_logs(self):
        payload = notifications.new_entry_moderation(entry=self.entry, memorial=self.memorial, owner=self.owner)

        with patch("gathermemorials.services.notifications.SendGridAPIClient") as client:
            self.assertFalse(notifications.deliver(payload))
        client.assert_not_called()

    def test_deliver_sends_through_sendgrid(self):
        self.app.config["SENDGRID_API_KEY"] = "SG.test"
        payload = notifications.new_entry_moderation(entry=self.entry, memorial=self.memorial, owner=self.owner)

        with patch("gathermemorials.services.notifications.SendGridAPIClient") as client:
            self.assertTrue(notifications.deliver(payload))

        client.assert_called_once_with("SG.test")
        client.return_value.send.assert_called_once()

    def test_deliver_all_skips_empty_payloads(self):
        with patch("gathermemorials.services.notifications.deliver", return_value=True):
            sent = notifications.deliver_all([None, {"to": "a@example.com"}])
        self.assertEqual(sent, [{"to": "a@example.com"}])

    def test_prayer_reminder_sample(self):
        reminders = [{
            "type": "death_anniversary",
            "date": "2024-03-02",
            "days_until": 1,
            "memorial_id": self.memorial.id,
            "memorial_name": "John Doe",
        }]

        payload = notifications.prayer_reminder_test(user=self.visitor, memorials=[self.memorial], reminders=reminders)

        self.assertEqual(payload["type"], "prayer_reminder_test")
        self.assertEqual(payload["to"], "visitor@example.com")
        self.assertIn("<li>John Doe</li>", payload["html"])
        self.assertIn("death anniversary on 2024-03-02", payload["html"])

    def test_prayer_reminder_with_empty_list(self):
        payload = notifications.prayer_reminder_test(user=self.visitor, memorials=[], reminders=[])

        self.assertIn("Your prayer list is empty.", payload["html"])
        self.assertNotIn("Coming up this week", payload["html"])
