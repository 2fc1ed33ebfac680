from datetime import date, datetime
from decimal import Decimal
import unittest

from clinic_ledger.core import money, to_amount, to_date
from clinic_ledger.periods import (
    DateWindow,
    PeriodSelectionError,
    in_period,
    period_window,
    prior_window,
    resolve_reference,
)


class DateParsingTestCase(unittest.TestCase):
    def test_supported_formats(self):
        self.assertEqual(to_date("2025-03-04"), date(2025, 3, 4))
        self.assertEqual(to_date("2025-03-04T18:22:10.000Z"), date(2025, 3, 4))
        self.assertEqual(to_date("04/03/2025"), date(2025, 3, 4))
        self.assertEqual(to_date("04-03-2025"), date(2025, 3, 4))
        self.assertEqual(to_date("31.12.2024"), date(2024, 12, 31))
        self.assertEqual(to_date(datetime(2025, 3, 4, 23, 59)), date(2025, 3, 4))

    def test_unresolvable_dates_are_none(self):
        for raw in (None, "", "garbage", "2025-13-01", "31/02/2025", 20250304):
            self.assertIsNone(to_date(raw), raw)


class AmountParsingTestCase(unittest.TestCase):
    def test_amount_coercion(self):
        self.assertEqual(to_amount("1,200.50"), Decimal("1200.50"))
        self.assertEqual(to_amount(0.1), Decimal("0.1"))
        self.assertEqual(to_amount(7), Decimal("7"))

    def test_missing_negative_and_junk_amounts_are_zero(self):
        for raw in (None, "-5", -5, "abc", "NaN", True):
            self.assertEqual(to_amount(raw), Decimal("0"), raw)

    def test_money_rounds_half_up(self):
        self.assertEqual(str(money(Decimal("2.675"))), "2.68")
        self.assertEqual(str(money(Decimal("-4200"))), "-4200.00")


class PeriodWindowTestCase(unittest.TestCase):
    def test_day_month_year_windows(self):
        self.assertEqual(period_window("day", "2025-03-04"), DateWindow(date(2025, 3, 4), date(2025, 3, 5)))
        self.assertEqual(period_window("month", "2025-02-14"), DateWindow(date(2025, 2, 1), date(2025, 3, 1)))
        self.assertEqual(period_window("month", "2024-12-31"), DateWindow(date(2024, 12, 1), date(2025, 1, 1)))
        self.assertEqual(period_window("year", "2025-06-30"), DateWindow(date(2025, 1, 1), date(2026, 1, 1)))

    def test_unsupported_period_type_raises(self):
        with self.assertRaises(PeriodSelectionError):
            period_window("week", "2025-03-04")
        with self.assertRaises(PeriodSelectionError):
            period_window("month", "not a date")

    def test_window_is_half_open(self):
        window = period_window("month", "2025-02-01")
        self.assertTrue(window.contains("2025-02-01"))
        self.assertTrue(window.contains("2025-02-28T23:59:59.000Z"))
        self.assertFalse(window.contains("01/03/2025"))
        self.assertFalse(window.contains("2025-01-31"))

    def test_unparseable_dates_are_in_no_window(self):
        self.assertFalse(in_period("garbage", "year", "2025-01-01"))
        self.assertFalse(in_period(None, "year", "2025-01-01"))
        self.assertFalse(DateWindow().contains(None))
        self.assertTrue(DateWindow().contains("2025-01-01"))

    def test_prior_window_ends_before_start(self):
        window = prior_window(date(2025, 3, 1))
        self.assertTrue(window.contains("1999-01-01"))
        self.assertTrue(window.contains("2025-02-28"))
        self.assertFalse(window.contains("2025-03-01"))
        self.assertEqual(window.label(), "[..., 2025-03-01)")


class ResolveReferenceTestCase(unittest.TestCase):
    today = date(2025, 7, 15)

    def test_explicit_reference_wins(self):
        self.assertEqual(resolve_reference("day", "2025-03-04", month=0, year=2020), date(2025, 3, 4))

    def test_month_index_is_zero_based(self):
        self.assertEqual(resolve_reference("month", month=0, year=2025), date(2025, 1, 1))
        self.assertEqual(resolve_reference("month", month=11, year=2024), date(2024, 12, 1))
        self.assertEqual(resolve_reference("month", month=2, today=self.today), date(2025, 3, 1))

    def test_year_only(self):
        self.assertEqual(resolve_reference("year", year=2023), date(2023, 1, 1))
        self.assertEqual(resolve_reference("month", year=2023, today=self.today), date(2023, 7, 1))

    def test_defaults_to_today(self):
        self.assertEqual(resolve_reference("day", today=self.today), self.today)

    def test_malformed_selectors_raise(self):
        with self.assertRaises(PeriodSelectionError):
            resolve_reference("month", month=12, year=2025)
        with self.assertRaises(PeriodSelectionError):
            resolve_reference("month", month=-1, year=2025)
        with self.assertRaises(PeriodSelectionError):
            resolve_reference("year", year=25)
        with self.assertRaises(PeriodSelectionError):
            resolve_reference("day", "yesterday")
        with self.assertRaises(PeriodSelectionError):
            resolve_reference("quarter", "2025-03-04")
