# coding: utf-8
"""
Unit tests for costbasis.utils
"""
import unittest
import datetime
from decimal import Decimal

from costbasis import utils


class RoundingTestCase(unittest.TestCase):
    def test_round_units(self):
        self.assertEqual(utils.round_units(Decimal("1.234567885")), Decimal("1.23456789"))
        self.assertEqual(utils.round_units(Decimal("1.234567884")), Decimal("1.23456788"))
        self.assertEqual(str(utils.round_units(10)), "10.00000000")

    def test_round_money(self):
        self.assertEqual(utils.round_money(Decimal("2.345")), Decimal("2.35"))
        self.assertEqual(utils.round_money(Decimal("-2.345")), Decimal("-2.35"))
        self.assertEqual(str(utils.round_money(Decimal("7"))), "7.00")

    def test_round_int(self):
        self.assertEqual(utils.round_int(Decimal("16.5")), 17)
        self.assertEqual(utils.round_int(Decimal("16.49")), 16)
        self.assertEqual(utils.round_int(Decimal("-2.5")), -2)
        self.assertEqual(utils.round_int(0), 0)


class ToDecimalTestCase(unittest.TestCase):
    def test_none(self):
        self.assertEqual(utils.to_decimal(None), Decimal("0"))

    def test_convert(self):
        self.assertEqual(utils.to_decimal("1.5"), Decimal("1.5"))
        self.assertEqual(utils.to_decimal(3), Decimal("3"))
        value = Decimal("2.25")
        self.assertEqual(utils.to_decimal(value), value)

    def test_float(self):
        with self.assertRaises(TypeError):
            utils.to_decimal(0.1)


class HoldingPeriodTestCase(unittest.TestCase):
    def test_days_between(self):
        opendt = datetime.date(2023, 1, 1)
        self.assertEqual(utils.days_between(opendt, datetime.date(2023, 12, 31)), 364)
        self.assertEqual(utils.days_between(opendt, datetime.date(2024, 1, 1)), 365)
        # Leap year
        leapyear = datetime.date(2024, 1, 1)
        self.assertEqual(utils.days_between(leapyear, datetime.date(2025, 1, 1)), 366)

    def test_date_or_datetime(self):
        # Time of day is ignored
        opendt = datetime.datetime(2023, 1, 1, 23, 59)
        closedt = datetime.datetime(2023, 1, 2, 0, 1)
        self.assertEqual(utils.days_between(opendt, closedt), 1)
        self.assertEqual(utils.days_between(opendt.date(), closedt), 1)
        self.assertEqual(utils.days_between(opendt, closedt.date()), 1)

    def test_is_longterm(self):
        self.assertFalse(utils.is_longterm(0))
        self.assertFalse(utils.is_longterm(364))
        self.assertTrue(utils.is_longterm(365))
        self.assertTrue(utils.is_longterm(1000))
        self.assertTrue(utils.is_longterm(None))


if __name__ == "__main__":
    unittest.main()
