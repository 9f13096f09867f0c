import unittest

from resi_app.models.enums import UserRole
from resi_app.models.models import User

from .support import PASSWORD, ApiTestCase


class TestAuthRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tenant = self.make_tenant()

    def _register(self, **overrides):
        payload = {
            "email": "Siti@ResiSmart.id",
            "password": "rahasia123",
            "name": "Siti Rahma",
            "tenantCode": self.tenant.code,
        }
        payload.update(overrides)
        return self.client.post("/api/auth/register", json=payload)

    def test_register_returns_token_and_sends_verification(self):
        res = self._register()
        self.assertEqual(res.status_code, 201, res.text)
        body = res.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["email"], "siti@resismart.id")
        self.assertEqual(body["data"]["role"], UserRole.RESIDENT.value)
        self.assertEqual(body["data"]["tenant"]["code"], self.tenant.code)
        self.assertFalse(body["data"]["isVerified"])
        self.assertTrue(body["data"]["token"])
        self.assertEqual(self.dispatcher.recipients("user_verification"), ["siti@resismart.id"])

    def test_register_rejects_duplicate_email(self):
        self._register()
        res = self._register()
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "email")

    def test_register_rejects_unknown_tenant_code(self):
        res = self._register(tenantCode="NOPE")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "tenantCode")

    def test_register_validates_body(self):
        res = self.client.post("/api/auth/register", json={"email": "bukan-email", "password": "1"})
        self.assertEqual(res.status_code, 400)
        body = res.json()
        self.assertFalse(body["success"])
        fields = {e["field"] for e in body["errors"]}
        self.assertIn("email", fields)
        self.assertIn("password", fields)

    def test_verify_email_is_single_use(self):
        self._register()
        url = self.dispatcher.sent[0].context["verify_url"]
        token = url.rsplit("/", 1)[-1]

        res = self.client.get(f"/api/auth/verify-email/{token}")
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["message"], "Email berhasil diverifikasi.")

        again = self.client.get(f"/api/auth/verify-email/{token}")
        self.assertEqual(again.status_code, 400)

    def test_login_and_profile(self):
        user = self.make_user(self.tenant, email="andi@resismart.id")

        bad = self.client.post(
            "/api/auth/login", json={"email": "andi@resismart.id", "password": "salah"}
        )
        self.assertEqual(bad.status_code, 401)
        self.assertEqual(bad.json()["message"], "Email atau password salah.")

        res = self.client.post(
            "/api/auth/login", json={"email": "ANDI@resismart.id", "password": PASSWORD}
        )
        self.assertEqual(res.status_code, 200, res.text)
        token = res.json()["data"]["token"]
        self.assertIsNotNone(res.json()["data"]["lastLogin"])

        profile = self.client.get(
            "/api/auth/profile", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(profile.status_code, 200)
        self.assertEqual(profile.json()["data"]["id"], str(user.id))

    def test_profile_requires_token(self):
        res = self.client.get("/api/auth/profile")
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["message"], "Akses ditolak. Token tidak ditemukan.")

        res = self.client.get("/api/auth/profile", headers={"Authorization": "Bearer rusak"})
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["message"], "Akses ditolak. Token tidak valid.")

    def test_forgot_and_reset_password(self):
        user = self.make_user(self.tenant, email="dewi@resismart.id")

        missing = self.client.post(
            "/api/auth/forgot-password", json={"email": "siapa@resismart.id"}
        )
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["message"], "Pengguna tidak ditemukan.")

        res = self.client.post("/api/auth/forgot-password", json={"email": user.email})
        self.assertEqual(res.status_code, 200)
        reset_url = self.dispatcher.sent[-1].context["reset_url"]
        token = reset_url.rsplit("/", 1)[-1]

        done = self.client.post(
            f"/api/auth/reset-password/{token}", json={"password": "passwordbaru"}
        )
        self.assertEqual(done.status_code, 200, done.text)
        self.assertEqual(done.json()["message"], "Password berhasil direset.")
        self.assertTrue(self.fetch(User, user.id).check_password("passwordbaru"))

        reused = self.client.post(
            f"/api/auth/reset-password/{token}", json={"password": "lainlagi"}
        )
        self.assertEqual(reused.status_code, 400)
        self.assertEqual(reused.json()["errors"][0]["field"], "token")


if __name__ == "__main__":
    unittest.main()
