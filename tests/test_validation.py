import unittest

from stockbook.errors import ValidationError
from stockbook.services.purchase_service import derive_purchase_payment_status
from stockbook.services.receivables_service import derive_payment_status, split_amounts
from stockbook.validation import (
    coerce_bool,
    coerce_int,
    normalize_order_items,
    normalize_purchase_items,
    require_choice,
    require_positive_amount,
)


class CoerceIntTests(unittest.TestCase):
    def test_accepts_ints_and_digit_strings(self):
        self.assertEqual(coerce_int(5, "qty"), 5)
        self.assertEqual(coerce_int(" 12 ", "qty"), 12)
        self.assertEqual(coerce_int("-3", "qty"), -3)

    def test_rejects_non_integers(self):
        for value in (True, 1.5, "1.0", "1e3", "", "abc", None, [1]):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    coerce_int(value, "qty")

    def test_positive_amount(self):
        self.assertEqual(require_positive_amount("250", "amount_cents"), 250)
        with self.assertRaises(ValidationError):
            require_positive_amount(0, "amount_cents")

    def test_choice_normalization(self):
        self.assertEqual(require_choice("mobile banking", "method", {"MOBILE_BANKING"}), "MOBILE_BANKING")
        self.assertEqual(require_choice(None, "method", {"CASH"}, default="CASH"), "CASH")
        with self.assertRaises(ValidationError):
            require_choice("cheque", "method", {"CASH"})


class CoerceBoolTests(unittest.TestCase):
    def test_accepts_bools_and_literal_strings(self):
        self.assertIs(coerce_bool(True, "flag"), True)
        self.assertIs(coerce_bool(False, "flag"), False)
        self.assertIs(coerce_bool(" TRUE ", "flag"), True)
        self.assertIs(coerce_bool("false", "flag"), False)
        self.assertIs(coerce_bool(None, "flag"), False)

    def test_rejects_everything_else(self):
        for value in ("f", "1", 1, 0.0, {}):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    coerce_bool(value, "flag")


class ItemNormalizationTests(unittest.TestCase):
    def test_order_item_defaults(self):
        items = normalize_order_items([{"product_id": "7", "quantity": 2}])

        self.assertEqual(items, [{
            "product_id": 7,
            "is_custom": False,
            "name": None,
            "sku": None,
            "unit_price_cents": None,
            "quantity": 2,
        }])

    def test_string_false_keeps_product_link(self):
        items = normalize_order_items([{"product_id": 7, "is_custom": "false", "quantity": 2}])

        self.assertFalse(items[0]["is_custom"])
        self.assertEqual(items[0]["product_id"], 7)

    def test_ambiguous_custom_flag_rejected(self):
        for value in ("no", "0", 0, 1, "", [], "yes"):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    normalize_order_items([{"product_id": 7, "is_custom": value, "quantity": 1}])

    def test_custom_item_needs_name_and_price(self):
        with self.assertRaises(ValidationError):
            normalize_order_items([{"is_custom": True, "unit_price_cents": 100, "quantity": 1}])
        with self.assertRaises(ValidationError):
            normalize_order_items([{"is_custom": True, "name": "Fee", "quantity": 1}])

    def test_purchase_line_total(self):
        items = normalize_purchase_items([{"product_id": 1, "quantity": 4, "purchase_price_cents": 250}])

        self.assertEqual(items[0]["line_total_cents"], 1000)


class ReceivablesHelperTests(unittest.TestCase):
    def test_split_amounts(self):
        self.assertEqual(split_amounts(4700, None), (4700, 0))
        self.assertEqual(split_amounts(4700, 1000), (1000, 3700))
        self.assertEqual(split_amounts(4700, 9000), (4700, 0))
        self.assertEqual(split_amounts(0, None), (0, 0))

    def test_derive_payment_status(self):
        self.assertEqual(derive_payment_status(100, 0), "PAID")
        self.assertEqual(derive_payment_status(0, 0), "PAID")
        self.assertEqual(derive_payment_status(50, 50), "PARTIAL")
        self.assertEqual(derive_payment_status(0, 100), "UNPAID")

    def test_purchase_payment_status_shares_invoice_rules(self):
        self.assertEqual(derive_purchase_payment_status(1000, 1000), "PAID")
        self.assertEqual(derive_purchase_payment_status(1000, 1500), "PAID")
        self.assertEqual(derive_purchase_payment_status(0, 0), "PAID")
        self.assertEqual(derive_purchase_payment_status(1000, 400), "PARTIAL")
        self.assertEqual(derive_purchase_payment_status(1000, 0), "UNPAID")
