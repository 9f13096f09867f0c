import unittest
import uuid

from resi_app.core.query_engine import (
    DEFAULT_SORT,
    ListParams,
    build_filter_clauses,
    build_order_by,
    pagination_meta,
    project,
)
from resi_app.repos.maintenance_repo import MAINTENANCE_DESCRIPTOR
from resi_app.repos.property_repo import PROPERTY_DESCRIPTOR
from resi_app.repos.tenant_repo import TENANT_DESCRIPTOR
from resi_app.repos.user_repo import USER_DESCRIPTOR


class TestListParams(unittest.TestCase):
    def test_defaults(self):
        params = ListParams.from_query({})
        self.assertEqual(params.page, 1)
        self.assertEqual(params.limit, 10)
        self.assertEqual(params.sort, DEFAULT_SORT)
        self.assertIsNone(params.query)
        self.assertEqual(params.fields, [])
        self.assertEqual(params.filters, {})

    def test_bad_pagination_falls_back(self):
        params = ListParams.from_query({"page": "abc", "limit": "-5"})
        self.assertEqual((params.page, params.limit), (1, 10))

        params = ListParams.from_query({"page": "0", "limit": "5000"})
        self.assertEqual((params.page, params.limit), (1, 100))

    def test_reserved_keys_are_not_filters(self):
        params = ListParams.from_query(
            {
                "query": "  menara ",
                "page": "2",
                "limit": "5",
                "sort": "price,-name",
                "fields": "name, price,",
                "propertyType": "condo",
                "address.city": "",
            }
        )
        self.assertEqual(params.query, "menara")
        self.assertEqual(params.fields, ["name", "price"])
        self.assertEqual(params.filters, {"propertyType": "condo"})

    def test_cache_shape_includes_filters(self):
        params = ListParams.from_query({"status": "available", "page": "3"})
        shape = params.cache_shape()
        self.assertEqual(shape["status"], "available")
        self.assertEqual(shape["page"], 3)


class TestDescriptors(unittest.TestCase):
    def test_column_resolution(self):
        self.assertEqual(PROPERTY_DESCRIPTOR.column("propertyType").key, "property_type")
        self.assertEqual(PROPERTY_DESCRIPTOR.column("address.city").key, "city")
        self.assertEqual(PROPERTY_DESCRIPTOR.column("owner").key, "owner_id")
        self.assertIsNone(PROPERTY_DESCRIPTOR.column("nonsense"))

    def test_hidden_columns_do_not_resolve(self):
        self.assertIsNone(USER_DESCRIPTOR.column("hashedPassword"))
        self.assertIsNone(USER_DESCRIPTOR.column("verificationTokenHash"))
        self.assertEqual(USER_DESCRIPTOR.column("email").key, "email")

        params = ListParams(filters={"hashedPassword": "x"})
        clauses = build_filter_clauses(USER_DESCRIPTOR, params, uuid.uuid4())
        self.assertFalse(any("hashed_password" in str(c) for c in clauses))

    def test_aliases_win(self):
        column = MAINTENANCE_DESCRIPTOR.column("schedule.startDate")
        self.assertEqual(column.key, "start_date")
        column = TENANT_DESCRIPTOR.column("subscription.plan")
        self.assertEqual(column.key, "subscription_plan")


class TestClauses(unittest.TestCase):
    def test_tenant_scope_and_active_flag(self):
        tenant_id = uuid.uuid4()
        clauses = build_filter_clauses(PROPERTY_DESCRIPTOR, ListParams(), tenant_id)
        rendered = [str(c) for c in clauses]
        self.assertTrue(any("tenant_id" in r for r in rendered))
        self.assertTrue(any("is_active" in r for r in rendered))

    def test_unscoped_entities_skip_tenant(self):
        clauses = build_filter_clauses(TENANT_DESCRIPTOR, ListParams(), None)
        self.assertFalse(any("tenant_id" in str(c) for c in clauses))

    def test_tenant_filter_cannot_be_overridden(self):
        params = ListParams(filters={"tenant": str(uuid.uuid4())})
        clauses = build_filter_clauses(PROPERTY_DESCRIPTOR, params, uuid.uuid4())
        self.assertEqual(sum("tenant_id" in str(c) for c in clauses), 1)

    def test_unparsable_filters_match_nothing(self):
        params = ListParams(filters={"propertyType": "castle", "price": "murah"})
        clauses = build_filter_clauses(PROPERTY_DESCRIPTOR, params, uuid.uuid4())
        self.assertEqual(sum(str(c) == "false" for c in clauses), 2)

    def test_enum_filters_ignore_case(self):
        params = ListParams(filters={"propertyType": "CONDO"})
        clauses = build_filter_clauses(PROPERTY_DESCRIPTOR, params, uuid.uuid4())
        self.assertFalse(any(str(c) == "false" for c in clauses))
        self.assertTrue(any("property_type" in str(c) for c in clauses))

    def test_explicit_active_filter_replaces_default(self):
        params = ListParams(filters={"isActive": "false"})
        clauses = build_filter_clauses(PROPERTY_DESCRIPTOR, params, uuid.uuid4())
        self.assertEqual(sum("is_active" in str(c) for c in clauses), 1)

    def test_order_by_falls_back_to_created_at(self):
        order = build_order_by(PROPERTY_DESCRIPTOR, "bogus")
        self.assertEqual(len(order), 2)
        self.assertIn("created_at DESC", str(order[0]))

        order = build_order_by(PROPERTY_DESCRIPTOR, "price,-name")
        self.assertIn("price ASC", str(order[0]))
        self.assertIn("name DESC", str(order[1]))


class TestHelpers(unittest.TestCase):
    def test_pagination_meta(self):
        self.assertEqual(
            pagination_meta(2, 10, 21), {"page": 2, "limit": 10, "total": 21, "totalPages": 3}
        )
        self.assertEqual(pagination_meta(1, 10, 0)["totalPages"], 0)

    def test_project_keeps_id_and_top_level_of_dotted(self):
        item = {"id": "1", "name": "A", "price": 10, "address": {"city": "X"}}
        self.assertEqual(project(item, []), item)
        self.assertEqual(
            project(item, ["name", "address.city"]),
            {"id": "1", "name": "A", "address": {"city": "X"}},
        )


if __name__ == "__main__":
    unittest.main()
