"""Unit tests for the in-memory inventory store and scan retention."""

from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

import jwt

from stockscan.api.retention import ScanRetentionJob
from stockscan.api.services import InventoryService, parse_user_spec
from stockscan.capture.modes import ScanMode
from stockscan.warehouse.errors import (
    AuthenticationError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from stockscan.warehouse.models import StockDirection

SECRET = "unit-test-secret"


class _Clock:
    def __init__(self) -> None:
        self.value = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.value

    def advance(self, **kwargs) -> None:
        self.value += timedelta(**kwargs)


class InventoryServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.service = InventoryService(
            ["admin:secret:Store Admin", "clerk:pw"],
            token_ttl_seconds=3600,
            secret_key=SECRET,
            hash_rounds=4,
            clock=self.clock,
        )
        _, self.user = self.service.authenticate("admin", "secret")

    def test_parse_user_spec(self) -> None:
        self.assertEqual(parse_user_spec("a:b:Full Name"), ("a", "b", "Full Name"))
        self.assertEqual(parse_user_spec("a:b"), ("a", "b", "a"))
        with self.assertRaises(ValueError):
            parse_user_spec("nopassword")

    def test_authentication_issues_signed_token(self) -> None:
        token, user = self.service.authenticate("ADMIN", "secret")
        self.assertEqual(user.full_name, "Store Admin")
        self.assertEqual(self.service.resolve_token(token).username, "admin")
        claims = jwt.decode(token, SECRET, algorithms=["HS256"])
        self.assertEqual(claims["sub"], "admin")
        self.assertEqual(claims["exp"] - claims["iat"], 3600)
        with self.assertRaises(AuthenticationError):
            self.service.authenticate("admin", "wrong")
        with self.assertRaises(AuthenticationError):
            self.service.authenticate("nobody", "secret")

    def test_passwords_are_stored_as_bcrypt_hashes(self) -> None:
        account = self.service._accounts["admin"]
        self.assertTrue(account.password_hash.startswith(b"$2"))
        self.assertNotIn(b"secret", account.password_hash)
        with self.assertRaises(ValidationError):
            self.service.add_user("long", "x" * 73)

    def test_expired_token_is_rejected(self) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "admin",
                "jti": "j1",
                "iat": now - timedelta(hours=2),
                "exp": now - timedelta(hours=1),
            },
            SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(AuthenticationError) as ctx:
            self.service.resolve_token(token)
        self.assertEqual(ctx.exception.message, "Token expired")

    def test_forged_or_incomplete_tokens_are_rejected(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        forged = jwt.encode({"sub": "admin", "jti": "j1", "exp": exp}, "other-key", algorithm="HS256")
        missing_jti = jwt.encode({"sub": "admin", "exp": exp}, SECRET, algorithm="HS256")
        unknown_user = jwt.encode({"sub": "ghost", "jti": "j2", "exp": exp}, SECRET, algorithm="HS256")
        for token in (forged, missing_jti, "not-a-jwt"):
            with self.assertRaises(AuthenticationError):
                self.service.resolve_token(token)
        with self.assertRaises(AuthenticationError) as ctx:
            self.service.resolve_token(unknown_user)
        self.assertEqual(ctx.exception.message, "User not found")

    def test_revoked_token_is_rejected(self) -> None:
        token, _ = self.service.authenticate("clerk", "pw")
        other, _ = self.service.authenticate("clerk", "pw")
        self.service.revoke(token)
        with self.assertRaises(AuthenticationError):
            self.service.resolve_token(token)
        self.assertEqual(self.service.resolve_token(other).username, "clerk")

    def test_scans_are_listed_newest_first_with_pagination(self) -> None:
        for index in range(5):
            self.service.record_scan(self.user, f" code-{index} ", ScanMode.KEYBOARD, "linux")
            self.clock.advance(seconds=1)
        page = self.service.list_scans(self.user.id, page=2, limit=2)
        self.assertEqual([scan.barcode for scan in page.items], ["code-2", "code-1"])
        self.assertEqual(page.pagination.total, 5)
        self.assertEqual(page.pagination.pages, 3)

    def test_scan_requires_barcode(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.record_scan(self.user, "   ")

    def test_scan_stats_and_cleanup(self) -> None:
        self.service.record_scan(self.user, "old", ScanMode.CAMERA)
        self.clock.advance(days=4)
        self.service.record_scan(self.user, "new", ScanMode.CAMERA)
        stats = self.service.scan_stats(self.user.id)
        self.assertEqual(stats.total_scans, 2)
        self.assertEqual(stats.today_scans, 1)
        self.assertEqual(stats.recent_scans[0].barcode, "new")

        job = ScanRetentionJob(self.service, retention_days=3, interval_seconds=60)
        self.assertEqual(job.run_once(), 1)
        remaining = self.service.list_scans(None, 1, 10)
        self.assertEqual([scan.barcode for scan in remaining.items], ["new"])

    def test_create_product_records_initial_history(self) -> None:
        product = self.service.create_product(self.user, "123", "Widget", 5, buying_price=1.0)
        self.assertEqual(product.current_stock, 5)
        self.assertEqual(len(product.stock_history), 1)
        self.assertEqual(product.stock_history[0].direction, StockDirection.ADD)
        self.assertEqual(product.created_by_name, "Store Admin")
        with self.assertRaises(ConflictError):
            self.service.create_product(self.user, "123", "Other", 1)

    def test_zero_initial_quantity_has_no_history(self) -> None:
        product = self.service.create_product(self.user, "555", "Empty", 0)
        self.assertEqual(product.stock_history, [])

    def test_stock_history_sums_to_current_stock(self) -> None:
        self.service.create_product(self.user, "123", "Widget", 5)
        self.service.add_stock(self.user, "123", 10, supplier="Acme")
        self.service.remove_stock(self.user, "123", 7, location="Shop")
        with self.assertRaises(InsufficientStockError):
            self.service.remove_stock(self.user, "123", 9)
        product = self.service.get_product("123")
        signed = sum(
            entry.quantity if entry.direction == StockDirection.ADD else -entry.quantity
            for entry in product.stock_history
        )
        self.assertEqual(product.current_stock, 8)
        self.assertEqual(signed, product.current_stock)
        self.assertEqual(len(product.stock_history), 3)
        self.assertEqual(product.stock_history[1].supplier, "Acme")
        self.assertEqual(product.stock_history[2].location, "Shop")

    def test_snapshots_do_not_leak_internal_state(self) -> None:
        product = self.service.create_product(self.user, "123", "Widget", 5)
        product.stock_history.clear()
        product.current_stock = 99
        self.assertEqual(self.service.get_product("123").current_stock, 5)
        self.assertEqual(len(self.service.get_product("123").stock_history), 1)

    def test_update_product_never_touches_stock(self) -> None:
        self.service.create_product(self.user, "123", "Widget", 5)
        updated = self.service.update_product(
            "123", {"name": "Gadget", "current_stock": 100, "selling_price": 3.0}
        )
        self.assertEqual(updated.name, "Gadget")
        self.assertEqual(updated.current_stock, 5)
        self.assertEqual(updated.selling_price, 3.0)
        with self.assertRaises(NotFoundError):
            self.service.update_product("nope", {"name": "x"})

    def test_list_products_filters(self) -> None:
        self.service.create_product(self.user, "111", "Blue Pen", 1)
        self.service.create_product(self.user, "222", "Red Pen", 1)
        self.service.create_product(self.user, "333", "Stapler", 1)
        page = self.service.list_products(1, 50, search="pen")
        self.assertEqual(sorted(p.barcode for p in page.items), ["111", "222"])
        page = self.service.list_products(1, 50, search="333")
        self.assertEqual([p.name for p in page.items], ["Stapler"])

    def test_categories_lifecycle(self) -> None:
        category = self.service.create_category(self.user, "Office")
        with self.assertRaises(ConflictError):
            self.service.create_category(self.user, "office")
        self.service.create_product(self.user, "111", "Pen", 1, category_id=category.id)
        self.service.create_product(self.user, "222", "Mug", 1)

        self.service.update_category(category.id, "Stationery", "", "#000000")
        self.assertEqual(self.service.get_product("111").category_name, "Stationery")
        distribution = {row["name"]: row["count"] for row in self.service.category_distribution()}
        self.assertEqual(distribution, {"Stationery": 1, "Uncategorized": 1})

        self.service.delete_category(category.id)
        self.assertIsNone(self.service.get_product("111").category_id)
        with self.assertRaises(NotFoundError):
            self.service.delete_category(category.id)

    def test_dashboard_profit_counts_recent_removals(self) -> None:
        self.service.create_product(
            self.user, "123", "Widget", 10, buying_price=2.0, selling_price=5.0
        )
        self.service.remove_stock(self.user, "123", 2)
        self.clock.advance(days=31)
        self.service.remove_stock(self.user, "123", 1)
        stats = self.service.dashboard_stats()
        self.assertEqual(stats.total_products, 1)
        self.assertEqual(stats.total_buy_value, 14.0)
        self.assertEqual(stats.total_sell_value, 35.0)
        self.assertEqual(stats.monthly_profit, 3.0)

    def test_rejected_update_leaves_product_unchanged(self) -> None:
        category = self.service.create_category(self.user, "Food")
        self.service.create_product(self.user, "123", "Widget", 5, note="keep")
        with self.assertRaises(ValidationError):
            self.service.update_product(
                "123", {"category_id": category.id, "note": "changed", "name": "  "}
            )
        with self.assertRaises(NotFoundError):
            self.service.update_product("123", {"category_id": "missing", "note": "changed"})
        product = self.service.get_product("123")
        self.assertIsNone(product.category_id)
        self.assertIsNone(product.category_name)
        self.assertEqual(product.note, "keep")
        self.assertEqual(product.name, "Widget")

        updated = self.service.update_product("123", {"category_id": category.id, "name": "Snack"})
        self.assertEqual((updated.name, updated.category_name), ("Snack", "Food"))

    def test_inventory_value_groups_movements_by_day(self) -> None:
        self.service.create_product(
            self.user, "123", "Widget", 10, buying_price=2.0, selling_price=5.0
        )
        self.service.remove_stock(self.user, "123", 2)
        self.clock.advance(days=1)
        self.service.add_stock(self.user, "123", 3)
        self.service.remove_stock(self.user, "123", 1)

        self.assertEqual(
            self.service.inventory_value(),
            [
                {"date": "2024-05-10", "bought": 20.0, "sold": 10.0, "profit": 6.0},
                {"date": "2024-05-11", "bought": 6.0, "sold": 5.0, "profit": 3.0},
            ],
        )

        self.clock.advance(days=40)
        self.service.add_stock(self.user, "123", 1)
        self.assertEqual(
            self.service.inventory_value(30),
            [{"date": "2024-06-20", "bought": 2.0, "sold": 0.0, "profit": 0.0}],
        )
        with self.assertRaises(ValidationError):
            self.service.inventory_value(0)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
