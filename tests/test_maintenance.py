import unittest
from datetime import timedelta

from resi_app.core.date_helper import utcnow
from resi_app.models.enums import (
    MaintenanceCategory,
    MaintenanceStatus,
    MaintenanceType,
    UserRole,
)
from resi_app.models.models import Maintenance

from .support import ApiTestCase


class TestMaintenanceRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tenant = self.make_tenant("GRN")
        self.manager = self.make_user(self.tenant, UserRole.MANAGER)
        self.staff = self.make_user(self.tenant, UserRole.STAFF, email="teknisi@resismart.id")
        self.prop = self.make_property(self.tenant)
        self.unit = self.make_unit(self.prop)

    def _payload(self, **overrides):
        payload = {
            "property": str(self.prop.id),
            "unit": str(self.unit.id),
            "title": "Servis AC",
            "description": "Pembersihan rutin unit AC di seluruh lantai",
            "type": "preventive",
            "category": "appliance",
            "schedule": {
                "startDate": "2026-11-01T08:00:00Z",
                "endDate": "2026-11-01T17:00:00Z",
            },
            "cost": {"estimated": 750000},
            "assignedTo": str(self.staff.id),
        }
        payload.update(overrides)
        return payload

    def _create(self, **overrides):
        return self.client.post(
            "/api/maintenance/",
            json=self._payload(**overrides),
            headers=self.auth(self.manager),
        )

    def test_create_notifies_assignee(self):
        res = self._create()
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()["data"]
        self.assertEqual(data["status"], "scheduled")
        self.assertEqual(data["cost"], {"estimated": 750000.0, "actual": None, "currency": "IDR"})
        self.assertEqual(data["assignedTo"]["id"], str(self.staff.id))
        self.assertFalse(data["schedule"]["isRecurring"])
        self.assertEqual(
            self.dispatcher.recipients("maintenance_assigned"), ["teknisi@resismart.id"]
        )

    def test_end_must_follow_start(self):
        res = self._create(
            schedule={
                "startDate": "2026-11-01T08:00:00Z",
                "endDate": "2026-11-01T08:00:00Z",
            }
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "schedule.endDate")
        self.assertEqual(self.count(Maintenance), 0)

    def test_recurring_requires_pattern(self):
        schedule = {
            "startDate": "2026-11-01T08:00:00Z",
            "endDate": "2026-11-02T08:00:00Z",
            "isRecurring": True,
        }
        res = self._create(schedule=schedule)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "schedule.recurrence")

        res = self._create(schedule=dict(schedule, recurrence="quarterly"))
        self.assertEqual(res.status_code, 201, res.text)
        self.assertEqual(res.json()["data"]["schedule"]["recurrence"], "quarterly")

    def test_unit_must_belong_to_property(self):
        other_prop = self.make_property(self.tenant, name="Gedung Lain")
        stray = self.make_unit(other_prop, "Z-1")
        res = self._create(unit=str(stray.id))
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["field"], "unit")

    def test_staff_completes_task(self):
        task_id = self._create().json()["data"]["id"]
        res = self.client.patch(
            f"/api/maintenance/{task_id}/status",
            json={"status": "completed", "actualCost": 800000, "notes": "Filter diganti"},
            headers=self.auth(self.staff),
        )
        self.assertEqual(res.status_code, 200, res.text)
        data = res.json()["data"]
        self.assertIsNotNone(data["completedAt"])
        self.assertEqual(data["completedBy"]["id"], str(self.staff.id))
        self.assertEqual(data["cost"]["actual"], 800000.0)
        self.assertEqual(data["notes"], "Filter diganti")
        # the assignee made the change, so nobody else is told
        self.assertEqual(self.dispatcher.recipients("maintenance_status"), [])

    def test_stats_counts_overdue(self):
        self._create()
        past = utcnow() - timedelta(days=3)
        self.seed(
            Maintenance(
                tenant_id=self.tenant.id,
                property_id=self.prop.id,
                title="Cat ulang",
                description="Pengecatan ulang koridor lantai dua",
                type=MaintenanceType.CORRECTIVE,
                category=MaintenanceCategory.STRUCTURAL,
                status=MaintenanceStatus.IN_PROGRESS,
                start_date=past - timedelta(days=1),
                end_date=past,
                actual_cost=1000000,
                attachments=[],
            )
        )

        res = self.client.get("/api/maintenance/stats", headers=self.auth(self.manager))
        self.assertEqual(res.status_code, 200, res.text)
        stats = res.json()["data"]
        self.assertEqual(stats["totalMaintenance"], 2)
        self.assertEqual(stats["completedMaintenance"], 0)
        self.assertEqual(stats["overdueMaintenance"], 1)
        self.assertAlmostEqual(stats["totalCost"], 1000000)
        self.assertEqual(stats["typeDistribution"], {"preventive": 1, "corrective": 1})


if __name__ == "__main__":
    unittest.main()
