from __future__ import annotations

import unittest
from decimal import Decimal

from refund_desk.currency import (
    clean,
    format_money,
    is_missing_or_invalid,
    parse_lenient,
    parse_or_zero,
    parse_stat_value,
    round2,
    try_parse,
)
from refund_desk.errors import FormatError


class CleanTests(unittest.TestCase):
    def test_none_becomes_literal_zero(self):
        self.assertEqual(clean(None), "0")

    def test_strips_everything_but_digits_dot_and_minus(self):
        self.assertEqual(clean("$1,234.50"), "1234.50")
        self.assertEqual(clean("-£7.25 GBP"), "-7.25")
        self.assertEqual(clean("abc"), "")


class StrictParseTests(unittest.TestCase):
    def test_none_and_blank_parse_to_zero(self):
        self.assertEqual(parse_or_zero(None), Decimal("0"))
        self.assertEqual(parse_or_zero(""), Decimal("0"))
        self.assertEqual(parse_or_zero("   "), Decimal("0"))

    def test_currency_text_parses_exactly(self):
        self.assertEqual(parse_or_zero("$1,234.50"), Decimal("1234.50"))

    def test_text_without_digits_is_a_format_error(self):
        with self.assertRaises(FormatError):
            parse_or_zero("abc")

    def test_malformed_number_raises_format_error_naming_field(self):
        with self.assertRaises(FormatError) as ctx:
            parse_or_zero("1.2.3", field="Shipping Paid")
        self.assertEqual(ctx.exception.field, "Shipping Paid")
        self.assertIn("Shipping Paid", str(ctx.exception))

    def test_lone_minus_is_a_format_error(self):
        with self.assertRaises(FormatError):
            parse_or_zero("-")


class LenientParseTests(unittest.TestCase):
    def test_failure_is_absent_for_try_parse_and_zero_for_parse_lenient(self):
        self.assertIsNone(try_parse("1.2.3"))
        self.assertEqual(parse_lenient("1.2.3"), Decimal("0"))
        self.assertEqual(parse_lenient("abc"), Decimal("0"))

    def test_decimal_sums_do_not_drift(self):
        total = sum((parse_lenient(v) for v in ["0.10", "0.20"]), Decimal("0"))
        self.assertEqual(total, Decimal("0.30"))


class StatValueTests(unittest.TestCase):
    def test_dollar_and_thousands_separator_are_accepted(self):
        self.assertEqual(parse_stat_value("$1,020.00"), Decimal("1020.00"))
        self.assertEqual(parse_stat_value(" -4.5 "), Decimal("-4.5"))

    def test_non_numbers_and_blanks_are_absent(self):
        self.assertIsNone(parse_stat_value(""))
        self.assertIsNone(parse_stat_value(None))
        self.assertIsNone(parse_stat_value("N/A"))
        self.assertIsNone(parse_stat_value("12 USD"))

    def test_decimal_values_pass_through(self):
        self.assertEqual(parse_stat_value(Decimal("2.50")), Decimal("2.50"))


class FormattingTests(unittest.TestCase):
    def test_format_money_uses_two_decimals_and_blank_for_none(self):
        self.assertEqual(format_money(Decimal("15")), "15.00")
        self.assertEqual(format_money(None), "")

    def test_round2_is_half_even(self):
        self.assertEqual(round2(Decimal("1.005")), Decimal("1.00"))
        self.assertEqual(round2(Decimal("1.015")), Decimal("1.02"))

    def test_missing_or_invalid(self):
        self.assertTrue(is_missing_or_invalid(""))
        self.assertTrue(is_missing_or_invalid("1.2.3"))
        self.assertFalse(is_missing_or_invalid("$0.00"))
        self.assertTrue(is_missing_or_invalid("$0.00", zero_is_missing=True))


if __name__ == "__main__":
    unittest.main()
