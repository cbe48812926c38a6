from unittest.mock import patch

from gathermemorials.extensions import db
from gathermemorials.models.audit_log import AuditLog
from gathermemorials.models.media_asset import MediaAsset
from gathermemorials.models.memorial import Memorial
from tests.base import ApiTestCase


class CreateMemorialTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()

    def test_create_starts_as_private_draft(self):
        response = self.client.post(
            "/api/v1/memorials",
            json={"first_name": "John", "last_name": "Doe", "custom_url": "John-Doe"},
            headers=self.auth(self.owner),
        )

        self.assertEqual(response.status_code, 201, response.get_json())
        memorial = response.get_json()["memorial"]
        self.assertEqual(memorial["status"], "draft")
        self.assertEqual(memorial["privacy"], "private")
        self.assertEqual(memorial["custom_url"], "john-doe")
        self.assertEqual(memorial["guestbook_notify_email"], "owner@example.com")
        self.assertFalse(memorial["has_password"])
        self.assertNotIn("password_hash", memorial)

        logged = AuditLog.query.filter_by(action="memorial.create", entity_id=memorial["id"]).count()
        self.assertEqual(logged, 1)

    def test_create_requires_login(self):
        response = self.client.post("/api/v1/memorials", json={"first_name": "John"})
        self.assertError(response, 401, "AuthenticationRequired")

    def test_duplicate_custom_url_is_conflict(self):
        self.make_memorial(self.owner, custom_url="john-doe")

        response = self.client.post(
            "/api/v1/memorials",
            json={"first_name": "Jane", "custom_url": "john-doe"},
            headers=self.auth(self.owner),
        )

        self.assertError(response, 409, "Conflict")
        self.assertEqual(Memorial.query.count(), 1)

    def test_death_before_birth_is_rejected(self):
        response = self.client.post(
            "/api/v1/memorials",
            json={"date_of_birth": "2000-01-01", "date_of_death": "1990-01-01"},
            headers=self.auth(self.owner),
        )

        self.assertError(response, 400, "InvariantViolation")
        self.assertEqual(Memorial.query.count(), 0)

    def test_invalid_service_is_rejected(self):
        response = self.client.post(
            "/api/v1/memorials",
            json={"first_name": "John", "services": [{"type": "picnic"}]},
            headers=self.auth(self.owner),
        )

        self.assertError(response, 400, "InvariantViolation")


class ReadMemorialTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()
        self.visitor = self.make_user(email="visitor@example.com", full_name="Vera Visitor")

    def test_public_memorial_counts_visitor_views(self):
        memorial = self.make_published(self.owner, custom_url="john-doe")

        response = self.client.get("/api/v1/memorials/by-url/John-Doe")

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertFalse(body["is_owner"])
        self.assertNotIn("payment_status", body["memorial"])
        self.assertEqual(db.session.get(Memorial, memorial.id).view_count, 1)

    def test_owner_views_are_not_counted(self):
        memorial = self.make_published(self.owner)

        response = self.client.get(f"/api/v1/memorials/{memorial.id}", headers=self.auth(self.owner))

        body = response.get_json()
        self.assertTrue(body["is_owner"])
        self.assertEqual(body["memorial"]["payment_status"], "paid")
        self.assertEqual(db.session.get(Memorial, memorial.id).view_count, 0)

    def test_password_protected_memorial(self):
        memorial = self.make_published(self.owner, privacy="password", password="letmein")
        url = f"/api/v1/memorials/{memorial.id}"

        body = self.assertError(self.client.get(url), 401, "AuthenticationRequired")
        self.assertTrue(body["requires_password"])

        wrong = self.client.get(url, headers={"X-Memorial-Password": "nope"})
        self.assertError(wrong, 401)

        right = self.client.get(url, headers={"X-Memorial-Password": "letmein"})
        self.assertEqual(right.status_code, 200)
        self.assertEqual(db.session.get(Memorial, memorial.id).view_count, 1)

    def test_private_and_draft_memorials_are_closed_to_visitors(self):
        private = self.make_published(self.owner, privacy="private")
        draft = self.make_memorial(self.owner)

        for memorial in (private, draft):
            response = self.client.get(
                f"/api/v1/memorials/{memorial.id}",
                headers=self.auth(self.visitor),
            )
            self.assertError(response, 403, "PermissionDenied")

    def test_unknown_memorial(self):
        self.assertError(self.client.get("/api/v1/memorials/missing"), 404, "NotFound")

    def test_list_excludes_deleted_and_filters(self):
        self.make_memorial(self.owner)
        self.make_published(self.owner)
        self.make_memorial(self.owner, status="deleted")
        self.make_memorial(self.visitor)

        response = self.client.get("/api/v1/memorials", headers=self.auth(self.owner))
        body = response.get_json()
        self.assertEqual(body["pagination"]["total"], 2)
        self.assertEqual(len(body["memorials"]), 2)

        response = self.client.get("/api/v1/memorials?status=deleted", headers=self.auth(self.owner))
        self.assertEqual(response.get_json()["pagination"]["total"], 1)

        response = self.client.get("/api/v1/memorials?page=0", headers=self.auth(self.owner))
        self.assertError(response, 400)

    def test_drafts_listing(self):
        for _ in range(6):
            self.make_memorial(self.owner)
        self.make_published(self.owner)

        response = self.client.get("/api/v1/memorials/drafts", headers=self.auth(self.owner))

        drafts = response.get_json()["drafts"]
        self.assertEqual(len(drafts), 5)
        self.assertTrue(all(d["status"] == "draft" for d in drafts))


class UpdateMemorialTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()
        self.memorial = self.make_memorial(self.owner)
        self.url = f"/api/v1/memorials/{self.memorial.id}"

    def _updated_at(self):
        response = self.client.get(self.url, headers=self.auth(self.owner))
        return response.get_json()["memorial"]["updated_at"]

    def test_update_with_current_timestamp(self):
        response = self.client.patch(
            self.url,
            json={"headline": "Beloved father", "current_step": 3, "updated_at": self._updated_at()},
            headers=self.auth(self.owner),
        )

        self.assertEqual(response.status_code, 200, response.get_json())
        memorial = response.get_json()["memorial"]
        self.assertEqual(memorial["headline"], "Beloved father")
        self.assertEqual(memorial["current_step"], 3)
        self.assertEqual(memorial["completed_steps"], [2])

    def test_stale_timestamp_is_conflict_and_writes_nothing(self):
        stale = self._updated_at()
        first = self.client.patch(
            self.url,
            json={"headline": "First", "updated_at": stale},
            headers=self.auth(self.owner),
        )
        self.assertEqual(first.status_code, 200)

        second = self.client.patch(
            self.url,
            json={"headline": "Second", "updated_at": stale},
            headers=self.auth(self.owner),
        )

        body = self.assertError(second, 409, "Conflict")
        self.assertIn("updated_at", body)
        self.assertEqual(db.session.get(Memorial, self.memorial.id).headline, "First")

    def test_visitor_views_do_not_invalidate_the_owner_timestamp(self):
        published = self.make_published(self.owner)
        url = f"/api/v1/memorials/{published.id}"
        read = self.client.get(url, headers=self.auth(self.owner)).get_json()["memorial"]["updated_at"]

        visitor = self.client.get(url)
        self.assertEqual(visitor.status_code, 200)
        self.assertEqual(db.session.get(Memorial, published.id).view_count, 1)

        response = self.client.patch(
            url,
            json={"headline": "Beloved", "updated_at": read},
            headers=self.auth(self.owner),
        )

        self.assertEqual(response.status_code, 200, response.get_json())
        self.assertEqual(response.get_json()["memorial"]["headline"], "Beloved")

    def test_update_takes_a_row_lock_before_comparing(self):
        from gathermemorials.application.memorials import update_memorial as module

        with patch.object(module, "lock_memorial", wraps=module.lock_memorial) as lock:
            response = self.client.patch(
                self.url,
                json={"headline": "Locked", "updated_at": self._updated_at()},
                headers=self.auth(self.owner),
            )

        self.assertEqual(response.status_code, 200, response.get_json())
        lock.assert_called_once_with(self.memorial.id)

    def test_timestamp_is_required(self):
        response = self.client.patch(self.url, json={"headline": "X"}, headers=self.auth(self.owner))
        self.assertError(response, 400, "InvariantViolation")

    def test_custom_url_collision_leaves_row_untouched(self):
        self.make_memorial(self.owner, custom_url="taken-url")

        response = self.client.patch(
            self.url,
            json={"headline": "Changed", "custom_url": "taken-url", "updated_at": self._updated_at()},
            headers=self.auth(self.owner),
        )

        self.assertError(response, 409, "Conflict")
        memorial = db.session.get(Memorial, self.memorial.id)
        self.assertIsNone(memorial.headline)
        self.assertIsNone(memorial.custom_url)

    def test_services_are_replaced(self):
        response = self.client.patch(
            self.url,
            json={
                "services": [
                    {"type": "funeral", "date": "2020-03-10", "location": "St. Mary's"},
                    {"type": "burial", "date": "2020-03-10"},
                ],
                "updated_at": self._updated_at(),
            },
            headers=self.auth(self.owner),
        )

        self.assertEqual(response.status_code, 200, response.get_json())
        types = sorted(s["type"] for s in response.get_json()["memorial"]["services"])
        self.assertEqual(types, ["burial", "funeral"])

    def test_only_owner_may_update(self):
        stranger = self.make_user(email="stranger@example.com")
        response = self.client.patch(
            self.url,
            json={"headline": "Mine now", "updated_at": self._updated_at()},
            headers=self.auth(stranger),
        )
        self.assertError(response, 403, "PermissionDenied")

    def test_empty_update_is_rejected(self):
        response = self.client.patch(
            self.url,
            json={"status": "published", "updated_at": self._updated_at()},
            headers=self.auth(self.owner),
        )
        self.assertError(response, 400, "InvariantViolation")
        self.assertEqual(db.session.get(Memorial, self.memorial.id).status, "draft")


class LifecycleTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()

    def _post(self, memorial, action):
        return self.client.post(
            f"/api/v1/memorials/{memorial.id}/{action}",
            headers=self.auth(self.owner),
        )

    def test_publish_requires_payment(self):
        memorial = self.make_memorial(self.owner)

        body = self.assertError(self._post(memorial, "publish"), 403, "PermissionDenied")
        self.assertEqual(body["payment_status"], "unpaid")
        self.assertEqual(db.session.get(Memorial, memorial.id).status, "draft")

    def test_publish_paid_draft(self):
        memorial = self.make_memorial(self.owner, payment_status="paid")

        response = self._post(memorial, "publish")

        self.assertEqual(response.get_json()["status"], "published")
        self.assertIsNotNone(db.session.get(Memorial, memorial.id).published_at)

    def test_publish_requires_full_name(self):
        memorial = self.make_memorial(self.owner, payment_status="paid", last_name=None)
        self.assertError(self._post(memorial, "publish"), 400, "InvariantViolation")

    def test_archive_and_unarchive(self):
        memorial = self.make_published(self.owner)

        self.assertEqual(self._post(memorial, "archive").get_json()["status"], "archived")
        self.assertIsNotNone(db.session.get(Memorial, memorial.id).archived_at)

        self.assertEqual(self._post(memorial, "unarchive").get_json()["status"], "published")
        self.assertIsNone(db.session.get(Memorial, memorial.id).archived_at)

        self.assertError(self._post(memorial, "unarchive"), 409, "IllegalTransition")

    def test_draft_cannot_be_archived(self):
        memorial = self.make_memorial(self.owner)
        self.assertError(self._post(memorial, "archive"), 409, "IllegalTransition")

    def test_draft_delete_removes_rows_and_assets(self):
        memorial = self.make_memorial(self.owner)
        asset = MediaAsset()
        asset.memorial_id = memorial.id
        asset.user_id = self.owner.id
        asset.media_type = "photo"
        asset.url = "https://cdn.example.com/photo.jpg"
        asset.public_id = f"memorials/{memorial.id}/photos/abc"
        db.session.add(asset)
        db.session.commit()
        memorial_id = memorial.id

        with patch("gathermemorials.services.media_cdn.is_configured", return_value=True), \
                patch("gathermemorials.services.media_cdn.destroy", return_value=True) as destroy:
            response = self.client.delete(
                f"/api/v1/memorials/{memorial_id}",
                headers=self.auth(self.owner),
            )

        self.assertEqual(response.get_json()["deleted"], "hard")
        destroy.assert_called_once_with(f"memorials/{memorial_id}/photos/abc", resource_type="image")
        self.assertIsNone(db.session.get(Memorial, memorial_id))
        self.assertEqual(MediaAsset.query.count(), 0)

    def test_published_delete_is_soft(self):
        memorial = self.make_published(self.owner)
        url = f"/api/v1/memorials/{memorial.id}"

        response = self.client.delete(url, headers=self.auth(self.owner))
        self.assertEqual(response.get_json()["deleted"], "soft")

        owner_view = self.client.get(url, headers=self.auth(self.owner)).get_json()["memorial"]
        self.assertEqual(owner_view["status"], "deleted")
        self.assertIsNotNone(owner_view["deleted_at"])

        self.assertError(self.client.get(url), 404, "NotFound")
        self.assertError(self.client.delete(url, headers=self.auth(self.owner)), 409, "IllegalTransition")

    def test_activity_feed(self):
        memorial = self.make_published(self.owner)
        self._post(memorial, "archive")
        self._post(memorial, "unarchive")

        response = self.client.get(
            f"/api/v1/memorials/{memorial.id}/activity",
            headers=self.auth(self.owner),
        )

        body = response.get_json()
        actions = {item["action"] for item in body["activity"]}
        self.assertEqual(actions, {"memorial.archive", "memorial.unarchive"})
        self.assertFalse(body["pagination"]["has_more"])


class AutosaveTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()
        self.memorial = self.make_memorial(self.owner, first_name=None)
        self.url = f"/api/v1/memorials/{self.memorial.id}/autosave"
        self.app.config["AUTOSAVE_RATE_LIMIT"] = "100 per second"

    def _autosave(self, payload):
        return self.client.post(self.url, json=payload, headers=self.auth(self.owner))

    def test_autosave_step_fields(self):
        response = self._autosave({"step": 1, "data": {"firstName": "Jane", "dateOfBirth": "1950-01-01"}})

        body = response.get_json()
        self.assertEqual(response.status_code, 200, body)
        self.assertTrue(body["has_changes"])

        memorial = db.session.get(Memorial, self.memorial.id)
        self.assertEqual(memorial.first_name, "Jane")
        self.assertEqual(memorial.date_of_birth.isoformat(), "1950-01-01")

        again = self._autosave({"step": 1, "data": {"firstName": "Jane"}}).get_json()
        self.assertFalse(again["has_changes"])

    def test_fields_outside_the_step_are_ignored(self):
        self._autosave({"step": 2, "data": {"firstName": "Ignored", "headline": "Loved by all"}})

        memorial = db.session.get(Memorial, self.memorial.id)
        self.assertIsNone(memorial.first_name)
        self.assertEqual(memorial.headline, "Loved by all")
        self.assertEqual(memorial.current_step, 2)

    def test_completed_step_and_status(self):
        self._autosave({"step": 2, "data": {"headline": "Loved"}, "completed": True})

        status = self.client.get(self.url, headers=self.auth(self.owner)).get_json()

        self.assertEqual(status["completed_steps"], [2])
        self.assertEqual(status["current_step"], 2)
        self.assertEqual(status["progress_percentage"], 11)
        self.assertEqual(status["last_saved_display"], "Just saved")

    def test_invalid_step(self):
        self.assertError(self._autosave({"step": 10, "data": {}}), 400, "InvariantViolation")

    def test_published_memorials_are_not_autosaved(self):
        memorial = self.make_published(self.owner)
        response = self.client.post(
            f"/api/v1/memorials/{memorial.id}/autosave",
            json={"step": 2, "data": {"headline": "X"}},
            headers=self.auth(self.owner),
        )
        self.assertError(response, 400, "InvariantViolation")

    def test_autosave_is_rate_limited(self):
        self.app.config["AUTOSAVE_RATE_LIMIT"] = "1 per minute"

        self.assertEqual(self._autosave({"step": 2, "data": {"headline": "A"}}).status_code, 200)
        self.assertError(self._autosave({"step": 2, "data": {"headline": "B"}}), 429, "RateLimitExceeded")


class CollaboratorTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user()
        self.helper = self.make_user(email="helper@example.com", full_name="Hal Helper")
        self.memorial = self.make_published(self.owner)
        self.url = f"/api/v1/memorials/{self.memorial.id}/collaborators"

    def test_add_list_remove(self):
        response = self.client.post(self.url, json={"email": "HELPER@example.com"}, headers=self.auth(self.owner))
        self.assertEqual(response.status_code, 201, response.get_json())
        self.assertEqual(response.get_json()["collaborator"]["role"], "moderator")

        duplicate = self.client.post(self.url, json={"email": "helper@example.com"}, headers=self.auth(self.owner))
        self.assertError(duplicate, 409, "Conflict")

        listed = self.client.get(self.url, headers=self.auth(self.owner)).get_json()["collaborators"]
        self.assertEqual([c["email"] for c in listed], ["helper@example.com"])

        removed = self.client.delete(f"{self.url}/{self.helper.id}", headers=self.auth(self.owner))
        self.assertEqual(removed.status_code, 200)
        self.assertEqual(self.client.get(self.url, headers=self.auth(self.owner)).get_json()["collaborators"], [])

    def test_owner_and_unknown_emails(self):
        owner = self.client.post(self.url, json={"email": "owner@example.com"}, headers=self.auth(self.owner))
        self.assertError(owner, 400, "InvariantViolation")

        unknown = self.client.post(self.url, json={"email": "nobody@example.com"}, headers=self.auth(self.owner))
        self.assertError(unknown, 404, "NotFound")

    def test_only_owner_manages_collaborators(self):
        response = self.client.post(self.url, json={"email": "helper@example.com"}, headers=self.auth(self.helper))
        self.assertError(response, 403, "PermissionDenied")
