import unittest

from resi_app.models.enums import UserRole

from .support import ApiTestCase


class TestAnnouncementRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tenant = self.make_tenant("GRN")
        self.manager = self.make_user(self.tenant, UserRole.MANAGER, email="manajer@resismart.id")
        self.staff = self.make_user(self.tenant, UserRole.STAFF, email="satpam@resismart.id")
        self.resident = self.make_user(self.tenant, UserRole.RESIDENT, email="warga@resismart.id")
        self.prop = self.make_property(self.tenant)

    def _payload(self, **overrides):
        payload = {
            "property": str(self.prop.id),
            "title": "Pemadaman listrik",
            "content": "Listrik padam hari Sabtu pukul 09.00 sampai 12.00 WIB",
            "type": "maintenance",
            "priority": "high",
            "targetAudience": "residents",
        }
        payload.update(overrides)
        return payload

    def _create(self, **overrides):
        return self.client.post(
            "/api/announcements/",
            json=self._payload(**overrides),
            headers=self.auth(self.manager),
        )

    def test_create_notifies_target_audience(self):
        res = self._create()
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()["data"]
        self.assertEqual(data["author"]["id"], str(self.manager.id))
        self.assertEqual(data["viewCount"], 0)
        self.assertEqual(data["schedule"]["recurrence"], None)
        self.assertEqual(
            self.dispatcher.recipients("announcement_published"), ["warga@resismart.id"]
        )

        self._create(targetAudience="all")
        self.assertEqual(
            sorted(self.dispatcher.recipients("announcement_published")[1:]),
            ["satpam@resismart.id", "warga@resismart.id"],
        )

    def test_delete_notifies_target_audience(self):
        announcement_id = self._create().json()["data"]["id"]
        res = self.client.delete(
            f"/api/announcements/{announcement_id}", headers=self.auth(self.manager)
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(
            self.dispatcher.recipients("announcement_deleted"), ["warga@resismart.id"]
        )

        listing = self.client.get("/api/announcements/", headers=self.auth(self.manager))
        self.assertEqual(listing.json()["count"], 0)

    def test_view_is_recorded_once(self):
        announcement_id = self._create().json()["data"]["id"]
        url = f"/api/announcements/{announcement_id}"

        first = self.client.get(url, headers=self.auth(self.resident))
        self.assertEqual(first.status_code, 200, first.text)
        data = first.json()["data"]
        self.assertEqual(data["viewCount"], 1)
        self.assertEqual(data["views"][0]["user"]["id"], str(self.resident.id))

        self.redis.store.clear()
        again = self.client.get(url, headers=self.auth(self.resident))
        self.assertEqual(again.json()["data"]["viewCount"], 1)

        stats = self.client.get("/api/announcements/stats", headers=self.auth(self.manager))
        self.assertEqual(stats.json()["data"]["totalViews"], 1)
        self.assertEqual(stats.json()["data"]["uniqueViewers"], 1)

    def test_update_keeps_validation(self):
        announcement_id = self._create().json()["data"]["id"]
        res = self.client.put(
            f"/api/announcements/{announcement_id}",
            json=self._payload(content="pendek"),
            headers=self.auth(self.manager),
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "content")

        res = self.client.put(
            f"/api/announcements/{announcement_id}",
            json=self._payload(title="Pemadaman dibatalkan", status="archived"),
            headers=self.auth(self.manager),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["data"]["status"], "archived")

    def test_schedule_window_is_checked(self):
        res = self._create(
            schedule={
                "startDate": "2026-11-02T00:00:00Z",
                "endDate": "2026-11-01T00:00:00Z",
            }
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "schedule.endDate")

    def test_resident_cannot_publish(self):
        res = self.client.post(
            "/api/announcements/", json=self._payload(), headers=self.auth(self.resident)
        )
        self.assertEqual(res.status_code, 403)


if __name__ == "__main__":
    unittest.main()
