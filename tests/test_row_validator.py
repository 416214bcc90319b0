from __future__ import annotations

import unittest
from decimal import Decimal
from types import SimpleNamespace

from app.validators.row_rules import (
    BandCode,
    DifferentFrom,
    ExistsIn,
    NonNegative,
    NotGreaterThan,
    OneOf,
    References,
    Required,
    build_rule_set,
)
from app.validators.row_validator import ImportRowValidator
from db.models.import_batch import ImportType


def _product_values(**overrides):
    values = {
        "product_code": "OK1",
        "description": None,
        "part_type": "GENUINE",
        "free_stock": 10,
        "price": Decimal("5.00"),
        "band_level": None,
        "band_1": None,
        "band_2": None,
        "band_3": None,
        "band_4": None,
        "cost_price": None,
        "retail_price": None,
        "trade_price": None,
        "is_active": None,
    }
    values.update(overrides)
    return values


class TestRowRules(unittest.TestCase):
    def test_required_treats_blank_text_as_missing(self) -> None:
        rule = Required("product_code", "productCode")

        self.assertEqual(rule.check({"product_code": "  "}), ["productCode is required."])
        self.assertEqual(rule.check({"product_code": "A1"}), [])

    def test_one_of_is_case_insensitive_and_ignores_missing(self) -> None:
        rule = OneOf("status", "status", ("SHIPPED", "CANCELLED"))

        self.assertEqual(rule.check({"status": "shipped"}), [])
        self.assertEqual(rule.check({"status": None}), [])
        self.assertEqual(len(rule.check({"status": "LOST"})), 1)

    def test_non_negative(self) -> None:
        rule = NonNegative("free_stock", "freeStock")

        self.assertEqual(rule.check({"free_stock": 0}), [])
        self.assertEqual(rule.check({"free_stock": -1}), ["freeStock must not be negative (got -1)."])

    def test_band_code(self) -> None:
        rule = BandCode("band_level", "bandLevel")

        self.assertEqual(rule.check({"band_level": "4"}), [])
        self.assertEqual(len(rule.check({"band_level": "5"})), 1)

    def test_exists_in(self) -> None:
        rule = ExistsIn("order_number", "orderNumber", frozenset({"SO-1"}), "order")

        self.assertEqual(rule.check({"order_number": "SO-1"}), [])
        self.assertEqual(
            rule.check({"order_number": "SO-2"}),
            ["orderNumber SO-2 does not match an existing order."],
        )

    def test_cross_field_rules(self) -> None:
        not_greater = NotGreaterThan("quantity_outstanding", "quantityOutstanding", "quantity_ordered", "quantityOrdered")
        different = DifferentFrom("superseded_by", "supersededBy", "product_code", "productCode")

        self.assertEqual(not_greater.check({"quantity_outstanding": 3, "quantity_ordered": 5}), [])
        self.assertEqual(len(not_greater.check({"quantity_outstanding": 6, "quantity_ordered": 5})), 1)
        self.assertEqual(len(different.check({"superseded_by": "A", "product_code": "A"})), 1)

    def test_unknown_import_type(self) -> None:
        with self.assertRaises(ValueError):
            build_rule_set("invoices")


class TestImportRowValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = ImportRowValidator(
            import_type=ImportType.GENUINE_PRODUCTS,
            rules=build_rule_set(ImportType.GENUINE_PRODUCTS),
        )

    def test_valid_row(self) -> None:
        verdict = self.validator.validate(values=_product_values())

        self.assertTrue(verdict.is_valid)
        self.assertEqual(verdict.errors, ())

    def test_empty_product_code_is_invalid(self) -> None:
        verdict = self.validator.validate(values=_product_values(product_code=None))

        self.assertFalse(verdict.is_valid)
        self.assertEqual(verdict.errors, ("productCode is required.",))

    def test_unrecognized_part_type_is_invalid(self) -> None:
        verdict = self.validator.validate(values=_product_values(part_type="INVALID_TYPE"))

        self.assertFalse(verdict.is_valid)
        self.assertIn("partType must be one of GENUINE, BRANDED", verdict.errors[0])

    def test_aftermarket_part_type_not_allowed_in_genuine_import(self) -> None:
        verdict = self.validator.validate(values=_product_values(part_type="AFTERMARKET"))

        self.assertFalse(verdict.is_valid)

    def test_all_errors_are_collected(self) -> None:
        verdict = self.validator.validate(
            values=_product_values(product_code=None, free_stock=-2, price=Decimal("-1.00"), band_level="9")
        )

        self.assertEqual(len(verdict.errors), 4)
        self.assertEqual(verdict.errors[0], "productCode is required.")

    def test_parse_errors_come_first_and_suppress_rules_on_that_column(self) -> None:
        verdict = self.validator.validate(
            values=_product_values(free_stock=None, product_code=None),
            parse_errors=[{"column": "freeStock", "message": "freeStock must be a whole number (got 'ten')."}],
        )

        self.assertEqual(
            verdict.errors,
            ("freeStock must be a whole number (got 'ten').", "productCode is required."),
        )

    def test_validate_staged_row_reads_attributes(self) -> None:
        staged = SimpleNamespace(parse_errors=[], **_product_values(part_type="BRANDED"))

        self.assertTrue(self.validator.validate_staged_row(staged).is_valid)


class TestReferenceRules(unittest.TestCase):
    def test_supersession_requires_existing_distinct_products(self) -> None:
        validator = ImportRowValidator(
            import_type=ImportType.SUPERSESSION,
            rules=build_rule_set(ImportType.SUPERSESSION, References(product_codes=frozenset({"OLD-1", "NEW-1"}))),
        )

        self.assertTrue(validator.validate(values={"product_code": "OLD-1", "superseded_by": "NEW-1"}).is_valid)
        self.assertEqual(
            validator.validate(values={"product_code": "OLD-1", "superseded_by": "GONE"}).errors,
            ("supersededBy GONE does not match an existing product.",),
        )
        self.assertEqual(
            validator.validate(values={"product_code": "OLD-1", "superseded_by": "OLD-1"}).errors,
            ("supersededBy must differ from productCode.",),
        )

    def test_fulfillment_status_must_be_known(self) -> None:
        validator = ImportRowValidator(
            import_type=ImportType.FULFILLMENT_STATUS,
            rules=build_rule_set(ImportType.FULFILLMENT_STATUS, References(order_numbers=frozenset({"SO-1"}))),
        )

        verdict = validator.validate(values={"order_number": "SO-1", "status": "LOST", "tracking_number": None})

        self.assertFalse(verdict.is_valid)
        self.assertIn("status must be one of", verdict.errors[0])

    def test_backorder_outstanding_cannot_exceed_ordered(self) -> None:
        validator = ImportRowValidator(
            import_type=ImportType.BACKORDERS,
            rules=build_rule_set(ImportType.BACKORDERS),
        )

        verdict = validator.validate(
            values={
                "account_number": "D1001",
                "order_number": None,
                "product_code": "A1",
                "description": None,
                "quantity_ordered": 2,
                "quantity_outstanding": 5,
            }
        )

        self.assertEqual(verdict.errors, ("quantityOutstanding (5) must not exceed quantityOrdered (2).",))


if __name__ == "__main__":
    unittest.main()
