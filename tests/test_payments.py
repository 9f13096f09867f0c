import unittest

from resi_app.models.enums import UserRole
from resi_app.models.models import Payment

from .support import ApiTestCase


class TestPaymentRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tenant = self.make_tenant("GRN")
        self.manager = self.make_user(self.tenant, UserRole.MANAGER)
        self.resident = self.make_user(self.tenant, UserRole.RESIDENT, email="warga@resismart.id")
        self.prop = self.make_property(self.tenant)
        self.unit = self.make_unit(self.prop)

    def _payload(self, **overrides):
        payload = {
            "unit": str(self.unit.id),
            "resident": str(self.resident.id),
            "type": "rent",
            "amount": 3500000,
            "dueDate": "2026-11-01T00:00:00+07:00",
            "paymentMethod": "bank_transfer",
            "paymentDetails": {
                "bankName": "BCA",
                "accountNumber": "1234567890",
                "accountName": "Siti Rahma",
            },
        }
        payload.update(overrides)
        return payload

    def _create(self, **overrides):
        return self.client.post(
            "/api/payments/", json=self._payload(**overrides), headers=self.auth(self.manager)
        )

    def test_create_stores_details_and_notifies_resident(self):
        res = self._create()
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()["data"]
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["currency"], "IDR")
        self.assertIsNone(data["paidAt"])
        self.assertEqual(data["paymentDetails"]["bankName"], "BCA")
        self.assertNotIn("cardNumber", data["paymentDetails"])
        self.assertTrue(data["dueDate"].startswith("2026-10-31T17:00:00"))
        self.assertEqual(self.dispatcher.recipients("payment_created"), ["warga@resismart.id"])

    def test_bank_transfer_requires_bank_details(self):
        res = self._create(paymentDetails={"accountNumber": "1234567890"})
        self.assertEqual(res.status_code, 400)
        error = res.json()["errors"][0]
        self.assertEqual(error["field"], "paymentDetails")
        self.assertIn("bankName", error["message"])
        self.assertEqual(self.count(Payment), 0)

    def test_cash_needs_no_details(self):
        res = self._create(paymentMethod="cash", paymentDetails={})
        self.assertEqual(res.status_code, 201, res.text)

    def test_resident_from_other_tenant_is_rejected(self):
        other = self.make_tenant("BLU", "Blue Tower")
        outsider = self.make_user(other, UserRole.RESIDENT)
        res = self._create(resident=str(outsider.id))
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "resident")

    def test_completing_stamps_paid_at(self):
        payment_id = self._create().json()["data"]["id"]
        res = self.client.patch(
            f"/api/payments/{payment_id}/status",
            json={"status": "completed"},
            headers=self.auth(self.manager),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertIsNotNone(res.json()["data"]["paidAt"])
        self.assertEqual(self.dispatcher.recipients("payment_status"), ["warga@resismart.id"])

        created_paid = self._create(status="completed").json()["data"]
        self.assertIsNotNone(created_paid["paidAt"])

    def test_resident_cannot_create(self):
        res = self.client.post(
            "/api/payments/", json=self._payload(), headers=self.auth(self.resident)
        )
        self.assertEqual(res.status_code, 403)

    def test_stats(self):
        self._create(amount=1000000, status="completed")
        self._create(amount=2000000, status="overdue", type="utility")
        self._create(amount=500000, paymentMethod="cash", paymentDetails={})

        res = self.client.get("/api/payments/stats", headers=self.auth(self.manager))
        self.assertEqual(res.status_code, 200, res.text)
        stats = res.json()["data"]
        self.assertEqual(stats["totalPayments"], 3)
        self.assertAlmostEqual(stats["totalAmount"], 3500000)
        self.assertEqual(stats["completedPayments"], 1)
        self.assertAlmostEqual(stats["totalCompletedAmount"], 1000000)
        self.assertEqual(stats["overduePayments"], 1)
        self.assertAlmostEqual(stats["totalOverdueAmount"], 2000000)
        self.assertEqual(stats["typeDistribution"], {"rent": 2, "utility": 1})
        self.assertEqual(
            stats["paymentMethodDistribution"], {"bank_transfer": 2, "cash": 1}
        )


if __name__ == "__main__":
    unittest.main()
