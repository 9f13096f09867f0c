import unittest

from resi_app.models.enums import UserRole
from resi_app.models.models import User

from .support import ApiTestCase


class TestUserRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tenant = self.make_tenant("GRN")
        self.admin = self.make_user(self.tenant, UserRole.ADMIN)
        self.manager = self.make_user(self.tenant, UserRole.MANAGER)
        self.resident = self.make_user(self.tenant, UserRole.RESIDENT, email="warga@resismart.id")

    def test_manager_creates_staff_but_not_admin(self):
        body = {"email": "Teknisi@ResiSmart.id", "password": "rahasia123", "role": "staff"}
        res = self.client.post("/api/users/", json=body, headers=self.auth(self.manager))
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()["data"]
        self.assertEqual(data["email"], "teknisi@resismart.id")
        self.assertEqual(data["tenant"]["id"], str(self.tenant.id))
        self.assertEqual(data["preferences"]["language"], "id")
        self.assertNotIn("password", data)
        self.assertIn("user_verification", self.dispatcher.templates())

        body = {"email": "boss@resismart.id", "password": "rahasia123", "role": "admin"}
        res = self.client.post("/api/users/", json=body, headers=self.auth(self.manager))
        self.assertEqual(res.status_code, 403)

        res = self.client.put(
            f"/api/users/{self.resident.id}",
            json={"role": "admin"},
            headers=self.auth(self.manager),
        )
        self.assertEqual(res.status_code, 403)

    def test_partial_update(self):
        res = self.client.put(
            f"/api/users/{self.resident.id}",
            json={"phone": "081234567890"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(res.status_code, 200, res.text)
        data = res.json()["data"]
        self.assertEqual(data["phone"], "081234567890")
        self.assertEqual(data["email"], "warga@resismart.id")
        self.assertEqual(self.dispatcher.recipients("user_updated"), ["warga@resismart.id"])

        res = self.client.put(
            f"/api/users/{self.resident.id}",
            json={"phone": "12345"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "phone")

    def test_preferences_are_self_service(self):
        res = self.client.patch(
            f"/api/users/{self.resident.id}/preferences",
            json={"theme": "dark", "notifications": {"sms": True}},
            headers=self.auth(self.resident),
        )
        self.assertEqual(res.status_code, 200, res.text)
        prefs = res.json()["data"]["preferences"]
        self.assertEqual(prefs["theme"], "dark")
        self.assertEqual(prefs["notifications"], {"email": True, "push": True, "sms": True})

        res = self.client.patch(
            f"/api/users/{self.resident.id}/preferences",
            json={"theme": "dark"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(res.status_code, 403)

    def test_delete_deactivates(self):
        res = self.client.delete(f"/api/users/{self.resident.id}", headers=self.auth(self.admin))
        self.assertEqual(res.status_code, 200)
        self.assertFalse(self.fetch(User, self.resident.id).is_active)
        self.assertEqual(self.dispatcher.recipients("user_deactivated"), ["warga@resismart.id"])

    def test_stats_and_scoping(self):
        other = self.make_tenant("BLU", "Blue Tower")
        self.make_user(other, UserRole.RESIDENT)

        res = self.client.get("/api/users/stats", headers=self.auth(self.admin))
        self.assertEqual(res.status_code, 200, res.text)
        stats = res.json()["data"]
        self.assertEqual(stats["totalUsers"], 3)
        self.assertEqual(stats["roleDistribution"], {"admin": 1, "manager": 1, "resident": 1})

        res = self.client.get("/api/users/", headers=self.auth(self.resident))
        self.assertEqual(res.status_code, 403)

    def test_secret_columns_are_not_filterable(self):
        stored = self.fetch(User, self.resident.id).hashed_password
        res = self.client.get(
            "/api/users/",
            params={"hashedPassword": stored, "sort": "hashedPassword"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["count"], 3)

        res = self.client.get(
            "/api/users/", params={"resetTokenHash": "abc"}, headers=self.auth(self.admin)
        )
        self.assertEqual(res.json()["count"], 3)

    def test_reset_password_request(self):
        res = self.client.post(
            "/api/users/reset-password",
            json={"email": "warga@resismart.id"},
            headers=self.auth(self.resident),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(self.dispatcher.recipients("password_reset"), ["warga@resismart.id"])


class TestTenantRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.home = self.make_tenant("GRN")
        self.admin = self.make_user(self.home, UserRole.ADMIN)
        self.manager = self.make_user(self.home, UserRole.MANAGER)

    def _payload(self, **overrides):
        payload = {
            "name": "Puri Indah",
            "code": "pri",
            "subscription": {
                "plan": "premium",
                "startDate": "2026-01-01T00:00:00Z",
                "endDate": "2027-01-01T00:00:00Z",
            },
            "contactInfo": {"email": "kontak@puri.id", "phone": "0215551234"},
        }
        payload.update(overrides)
        return payload

    def test_admin_creates_tenant(self):
        res = self.client.post(
            "/api/tenants/", json=self._payload(), headers=self.auth(self.admin)
        )
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()["data"]
        self.assertEqual(data["code"], "PRI")
        self.assertEqual(data["subscription"]["plan"], "premium")
        self.assertEqual(data["contactInfo"]["email"], "kontak@puri.id")
        self.assertEqual(self.dispatcher.recipients("tenant_welcome"), ["kontak@puri.id"])

        dup = self.client.post(
            "/api/tenants/", json=self._payload(name="Puri Lain"), headers=self.auth(self.admin)
        )
        self.assertEqual(dup.status_code, 400)
        self.assertEqual(dup.json()["errors"][0]["field"], "code")

    def test_manager_is_refused(self):
        res = self.client.get("/api/tenants/", headers=self.auth(self.manager))
        self.assertEqual(res.status_code, 403)

    def test_subscription_update(self):
        tenant_id = self.client.post(
            "/api/tenants/", json=self._payload(), headers=self.auth(self.admin)
        ).json()["data"]["id"]

        res = self.client.patch(
            f"/api/tenants/{tenant_id}/subscription",
            json={
                "plan": "enterprise",
                "status": "trial",
                "startDate": "2026-02-01T00:00:00Z",
                "endDate": "2026-01-01T00:00:00Z",
            },
            headers=self.auth(self.admin),
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "endDate")

        res = self.client.patch(
            f"/api/tenants/{tenant_id}/subscription",
            json={
                "plan": "enterprise",
                "status": "trial",
                "startDate": "2026-02-01T00:00:00Z",
                "endDate": "2027-02-01T00:00:00Z",
            },
            headers=self.auth(self.admin),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["data"]["subscription"]["status"], "trial")
        self.assertIn("subscription_updated", self.dispatcher.templates())

    def test_stats_cover_every_tenant(self):
        self.client.post("/api/tenants/", json=self._payload(), headers=self.auth(self.admin))
        res = self.client.get("/api/tenants/stats", headers=self.auth(self.admin))
        self.assertEqual(res.status_code, 200, res.text)
        stats = res.json()["data"]
        self.assertEqual(stats["totalTenants"], 2)
        self.assertEqual(stats["planDistribution"], {"basic": 1, "premium": 1})


if __name__ == "__main__":
    unittest.main()
