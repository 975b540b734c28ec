"""
Unit tests for the admin order filter builder in db/storage/orders.py
"""

from db.storage.orders import STATUS_CONDITIONS, build_order_filters, check_statuses


class TestBuildOrderFilters:

    def test_no_filters(self):
        assert build_order_filters([]) == ("", [])

    def test_statuses_are_or_combined(self):
        where, params = build_order_filters(["pending", "canceled"])

        assert where.startswith("WHERE ((")
        assert " OR " in where
        assert STATUS_CONDITIONS["pending"] in where
        assert STATUS_CONDITIONS["canceled"] in where
        assert params == []

    def test_unknown_status_is_skipped(self):
        assert build_order_filters(["bogus"]) == ("", [])

    def test_period_and_search(self):
        where, params = build_order_filters(["finalized"], "2024-01-01", "2024-01-31", " Maria ")

        assert "DATE(created_at) >= %s" in where
        assert "DATE(created_at) <= %s" in where
        assert 'customer_name ILIKE %s OR "order" ILIKE %s' in where
        assert params == ["2024-01-01", "2024-01-31", "%Maria%", "%Maria%"]

    def test_blank_search_is_ignored(self):
        where, params = build_order_filters([], search="   ")

        assert where == ""
        assert params == []


class TestStatusConditions:

    def test_every_status_has_a_condition(self):
        assert set(STATUS_CONDITIONS) == {"pending", "art_mounted", "in_production", "finalized", "canceled"}

    def test_open_statuses_exclude_closed_orders(self):
        for status in ("pending", "art_mounted", "in_production"):
            assert "canceled_at IS NULL" in STATUS_CONDITIONS[status]
            assert "finalized_at IS NULL" in STATUS_CONDITIONS[status]

    def test_check_statuses_keeps_order(self):
        assert check_statuses(["finalized", "x", "pending"]) == ["finalized", "pending"]
