# coding: utf-8
""" Reusable test elements """
# stdlib imports
import datetime
import inspect
from decimal import Decimal


# local imports
from costbasis.config import CONFIG
from costbasis import database, models, utils
from costbasis.models import TransactionType


DB_URI = CONFIG.test_db_uri

OWNER = "user-1"
DAY0 = datetime.date(2022, 1, 3)


def logPoint(context):
    """" Utility function to trace control flow """
    callingFunction = inspect.stack()[1][3]
    print("in %s - %s()" % (context, callingFunction))


def day(n):
    """Date `n` days after DAY0."""
    return DAY0 + datetime.timedelta(days=n)


class DatabaseMixin(object):
    """ Mixin providing a fresh, empty database for each test """

    def setUp(self):
        """ Called multiple times, before every test method """
        self.engine = database.make_engine(DB_URI)
        database.Base.metadata.create_all(self.engine)
        self.session = database.Session(bind=self.engine)

    def tearDown(self):
        """ Called multiple times, after every test method """
        self.session.close()
        self.engine.dispose()

    def logPoint(self):
        """ Utility method to trace control flow """
        callingFunction = inspect.stack()[1][3]
        currentTest = self.id().split(".")[-1]
        print("in {} - {}()".format(currentTest, callingFunction))


class LedgerMixin(DatabaseMixin):
    """ One portfolio / account / holding, plus helpers to add Transactions """

    symbol = "AAPL"

    def setUp(self):
        super(LedgerMixin, self).setUp()
        self.portfolio = models.Portfolio.merge(
            self.session, owner=OWNER, name="Taxable"
        )
        self.account = models.Account.merge(
            self.session, portfolio=self.portfolio, name="Brokerage"
        )
        self.holding = models.Holding.merge(
            self.session, account=self.account, symbol=self.symbol
        )
        self.session.flush()

    def make_holding(self, symbol, account=None):
        holding = models.Holding.merge(
            self.session, account=account or self.account, symbol=symbol
        )
        self.session.flush()
        return holding

    def transact(
        self,
        type,
        date,
        quantity=None,
        price=None,
        fees=None,
        amount=None,
        holding=NotImplemented,
    ):
        """Add a Transaction to the ledger.

        String quantity/price/fees are converted to Decimal.  Unless given,
        `amount` is the cash effect of a trade (negative for purchases).
        """
        if holding is NotImplemented:
            holding = self.holding
        quantity = None if quantity is None else Decimal(quantity)
        price = None if price is None else Decimal(price)
        fees = None if fees is None else Decimal(fees)

        if amount is None:
            gross = utils.to_decimal(quantity) * utils.to_decimal(price)
            fee = utils.to_decimal(fees)
            if type in models.LOT_OPENING_TYPES:
                amount = -(gross + fee)
            elif type in models.LOT_CLOSING_TYPES:
                amount = gross - fee
            else:
                amount = utils.ZERO

        transaction = models.Transaction(
            account=self.account if holding is None else holding.account,
            holding=holding,
            type=type,
            symbol=None if holding is None else holding.symbol,
            quantity=quantity,
            price=price,
            fees=fees,
            amount=utils.round_money(Decimal(amount)),
            date=date,
        )
        self.session.add(transaction)
        self.session.flush()
        return transaction

    def buy(self, date, quantity, price, fees=None, **kwargs):
        return self.transact(TransactionType.BUY, date, quantity, price, fees, **kwargs)

    def sell(self, date, quantity, price, fees=None, **kwargs):
        return self.transact(TransactionType.SELL, date, quantity, price, fees, **kwargs)
