import unittest

from resi_app.models.enums import UnitStatus, UserRole

from .support import ApiTestCase


class TestUnitRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tenant = self.make_tenant("GRN")
        self.manager = self.make_user(self.tenant, UserRole.MANAGER)
        self.resident = self.make_user(self.tenant, UserRole.RESIDENT)
        self.prop = self.make_property(self.tenant)

    def _payload(self, **overrides):
        payload = {
            "property": str(self.prop.id),
            "unitNumber": "B-201",
            "floor": 2,
            "type": "2BR",
            "size": 54.5,
            "price": 3500000,
            "amenities": ["balcony"],
        }
        payload.update(overrides)
        return payload

    def test_create_and_reject_duplicate_number(self):
        res = self.client.post(
            "/api/units/", json=self._payload(), headers=self.auth(self.manager)
        )
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()["data"]
        self.assertEqual(data["property"]["id"], str(self.prop.id))
        self.assertEqual(data["status"], UnitStatus.AVAILABLE.value)

        dup = self.client.post(
            "/api/units/", json=self._payload(), headers=self.auth(self.manager)
        )
        self.assertEqual(dup.status_code, 400)
        self.assertEqual(dup.json()["errors"][0]["field"], "unitNumber")

    def test_create_on_foreign_property_is_forbidden(self):
        other = self.make_tenant("BLU", "Blue Tower")
        foreign = self.make_property(other)
        res = self.client.post(
            "/api/units/",
            json=self._payload(property=str(foreign.id)),
            headers=self.auth(self.manager),
        )
        self.assertEqual(res.status_code, 403)

    def test_status_patch(self):
        unit = self.make_unit(self.prop)
        res = self.client.patch(
            f"/api/units/{unit.id}/status",
            json={"status": "maintenance"},
            headers=self.auth(self.manager),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["data"]["status"], "maintenance")

        bad = self.client.patch(
            f"/api/units/{unit.id}/status",
            json={"status": "hancur"},
            headers=self.auth(self.manager),
        )
        self.assertEqual(bad.status_code, 400)

    def test_resident_can_read_but_not_write(self):
        unit = self.make_unit(self.prop)
        res = self.client.get(f"/api/units/{unit.id}", headers=self.auth(self.resident))
        self.assertEqual(res.status_code, 200)

        res = self.client.put(
            f"/api/units/{unit.id}", json=self._payload(), headers=self.auth(self.resident)
        )
        self.assertEqual(res.status_code, 403)

    def test_property_stats(self):
        self.make_unit(self.prop, "A-1", price=1000000)
        self.make_unit(self.prop, "A-2", price=3000000, status=UnitStatus.OCCUPIED)
        other_prop = self.make_property(self.tenant, name="Gedung Lain")
        self.make_unit(other_prop, "Z-9")

        res = self.client.get(
            f"/api/units/stats/{self.prop.id}", headers=self.auth(self.manager)
        )
        self.assertEqual(res.status_code, 200, res.text)
        stats = res.json()["data"]
        self.assertEqual(stats["totalUnits"], 2)
        self.assertEqual(stats["availableUnits"], 1)
        self.assertEqual(stats["occupiedUnits"], 1)
        self.assertEqual(stats["maintenanceUnits"], 0)
        self.assertAlmostEqual(stats["averagePrice"], 2000000)
        self.assertEqual(stats["unitTypeDistribution"], {"2BR": 2})


if __name__ == "__main__":
    unittest.main()
