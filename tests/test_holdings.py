# coding: utf-8
"""
Unit tests for costbasis.holdings
"""
# stdlib imports
import unittest
from decimal import Decimal


# local imports
from costbasis import holdings, models
from costbasis.models import TransactionType
from common import LedgerMixin, OWNER, day


class RecalculateTestCase(LedgerMixin, unittest.TestCase):
    def testBuys(self):
        self.buy(day(0), "10", "10", fees="5")
        self.buy(day(1), "10", "20")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertIs(holding, self.holding)
        self.assertEqual(holding.quantity, Decimal("20"))
        # Fees aren't part of weighted-average cost
        self.assertEqual(holding.costbasis, Decimal("300"))
        self.assertEqual(holding.avgcostperunit, Decimal("15"))

    def testSellAtAverageCost(self):
        self.buy(day(0), "10", "10")
        self.buy(day(1), "10", "20")
        self.sell(day(2), "5", "100")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("15"))
        self.assertEqual(holding.costbasis, Decimal("225"))
        self.assertEqual(holding.avgcostperunit, Decimal("15"))

    def testTransfers(self):
        self.transact(TransactionType.TRANSFER_IN, day(0), "10", "30")
        self.transact(TransactionType.TRANSFER_OUT, day(1), "4", "35")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("6"))
        self.assertEqual(holding.costbasis, Decimal("180"))

    def testReinvestDividend(self):
        self.buy(day(0), "10", "10")
        self.transact(TransactionType.REINVEST_DIVIDEND, day(1), "0.5", "12")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("10.5"))
        self.assertEqual(holding.costbasis, Decimal("106"))
        # 106 / 10.5 = 10.0952380952...
        self.assertEqual(holding.avgcostperunit, Decimal("10.0952381"))

    def testUnpricedAcquisition(self):
        # Units added, no cost
        self.buy(day(0), "10", "10")
        self.transact(TransactionType.TRANSFER_IN, day(1), "10", None)
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("20"))
        self.assertEqual(holding.costbasis, Decimal("100"))
        self.assertEqual(holding.avgcostperunit, Decimal("5"))

    def testSplit(self):
        self.buy(day(0), "10", "40")
        self.transact(TransactionType.SPLIT, day(1), "4", None)
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("40"))
        self.assertEqual(holding.costbasis, Decimal("400"))
        self.assertEqual(holding.avgcostperunit, Decimal("10"))

    def testSplitWithoutRatio(self):
        self.buy(day(0), "10", "40")
        self.transact(TransactionType.SPLIT, day(1), None, None)
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("10"))

    def testNonQuantityTypesIgnored(self):
        self.buy(day(0), "10", "10")
        for type_ in (
            TransactionType.DIVIDEND,
            TransactionType.INTEREST,
            TransactionType.FEE,
            TransactionType.ADJUSTMENT,
        ):
            self.transact(type_, day(1), "3", "7", amount="21")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("10"))
        self.assertEqual(holding.costbasis, Decimal("100"))

    def testReplayInDateOrder(self):
        # Entered out of order: the SELL happens after both BUYs
        self.sell(day(2), "10", "50")
        self.buy(day(1), "10", "30")
        self.buy(day(0), "10", "10")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("10"))
        self.assertEqual(holding.costbasis, Decimal("200"))
        self.assertEqual(holding.avgcostperunit, Decimal("20"))

    def testSameDayAcquisitionFirst(self):
        # Entered SELL first; the BUY on the same day still comes first
        self.sell(day(0), "5", "12")
        self.buy(day(0), "10", "10")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("5"))
        self.assertEqual(holding.costbasis, Decimal("50"))
        self.assertEqual(holding.avgcostperunit, Decimal("10"))

    def testClampedAtZero(self):
        # Oversold, e.g. history missing a BUY
        self.buy(day(0), "5", "10")
        self.sell(day(1), "8", "12")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("0"))
        self.assertEqual(holding.costbasis, Decimal("0"))
        self.assertEqual(holding.avgcostperunit, Decimal("0"))

    def testSellFromNothing(self):
        self.sell(day(0), "5", "10")
        self.buy(day(1), "10", "10")
        holding = holdings.recalculate(self.session, self.holding.id)
        # Quantity goes -5 then +10; no cost removed while quantity <= 0
        self.assertEqual(holding.quantity, Decimal("5"))
        self.assertEqual(holding.costbasis, Decimal("100"))
        self.assertEqual(holding.avgcostperunit, Decimal("20"))

    def testEmptyLedger(self):
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("0"))
        self.assertEqual(holding.costbasis, Decimal("0"))
        self.assertEqual(holding.avgcostperunit, Decimal("0"))

    def testIdempotent(self):
        self.buy(day(0), "3", "10.01")
        self.sell(day(1), "1", "12")
        first = holdings.recalculate(self.session, self.holding.id)
        values = (first.quantity, first.costbasis, first.avgcostperunit)
        second = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual((second.quantity, second.costbasis, second.avgcostperunit), values)

    def testOverwritesStaleValues(self):
        self.holding.quantity = Decimal("999")
        self.holding.costbasis = Decimal("1")
        self.buy(day(0), "2", "10")
        holding = holdings.recalculate(self.session, self.holding.id)
        self.assertEqual(holding.quantity, Decimal("2"))
        self.assertEqual(holding.costbasis, Decimal("20"))

    def testNotFound(self):
        with self.assertRaises(models.NotFound):
            holdings.recalculate(self.session, 12345)


class ReplayTestCase(unittest.TestCase):
    """ replay() works on anything quacking like a Transaction """

    def testReplay(self):
        transactions = [
            models.Transaction(
                type=TransactionType.BUY, quantity=Decimal("10"), price=Decimal("10")
            ),
            models.Transaction(type=TransactionType.SPLIT, quantity=Decimal("2")),
            models.Transaction(
                type=TransactionType.SELL, quantity=Decimal("5"), price=Decimal("8")
            ),
        ]
        position = holdings.replay(transactions)
        self.assertEqual(position.quantity, Decimal("15"))
        self.assertEqual(position.totalcost, Decimal("75"))

    def testEmpty(self):
        self.assertEqual(holdings.replay([]), holdings.Position())


class RecalculatePortfolioTestCase(LedgerMixin, unittest.TestCase):
    def testRecalculatePortfolio(self):
        other = self.make_holding("MSFT")
        self.buy(day(0), "10", "10")
        self.buy(day(0), "2", "300", holding=other)

        count = holdings.recalculate_portfolio(self.session, self.portfolio.id, OWNER)
        self.assertEqual(count, 2)
        self.assertEqual(self.holding.quantity, Decimal("10"))
        self.assertEqual(other.costbasis, Decimal("600"))

    def testRecalculateAccount(self):
        self.buy(day(0), "10", "10")
        count = holdings.recalculate_account(self.session, self.account.id)
        self.assertEqual(count, 1)
        self.assertEqual(self.holding.costbasis, Decimal("100"))

    def testWrongOwner(self):
        with self.assertRaises(models.NotFound):
            holdings.recalculate_portfolio(self.session, self.portfolio.id, "intruder")


if __name__ == "__main__":
    unittest.main(verbosity=3)
