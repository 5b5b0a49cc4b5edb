# coding: utf-8
"""
ORM models for the transaction ledger, the tax lot store, and derived holdings.
"""
# stdlib imports
import enum
import logging


# 3rd party imports
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    Numeric,
    ForeignKey,
    Enum,
    Index,
    case,
    event,
    inspect,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql.schema import UniqueConstraint, CheckConstraint


# Local imports
from costbasis.database import Base


class ModelError(Exception):
    """ Base class for exceptions raised by this module.  """

    pass


class NotFound(ModelError):
    """Raised when a holding is unknown, or a portfolio isn't owned by the caller.
    """

    pass


class ModelConstraintError(ModelError):
    """
    Exception raised upon violation of a model constraint (outside sqlalchemy)
    """

    pass


@enum.unique
class TransactionType(enum.Enum):
    BUY = 1
    SELL = 2
    DIVIDEND = 3
    INTEREST = 4
    FEE = 5
    TAX_WITHHOLDING = 6
    REINVEST_DIVIDEND = 7
    TRANSFER_IN = 8
    TRANSFER_OUT = 9
    SPLIT = 10
    ADJUSTMENT = 11
    FOREX = 12
    DEPOSIT = 13
    WITHDRAWAL = 14
    OTHER = 15


#  Transaction types that add units to a holding
ACQUISITION_TYPES = frozenset(
    (
        TransactionType.BUY,
        TransactionType.REINVEST_DIVIDEND,
        TransactionType.TRANSFER_IN,
        TransactionType.SPLIT,
    )
)
#  Transaction types that remove units from a holding
DISPOSAL_TYPES = frozenset((TransactionType.SELL, TransactionType.TRANSFER_OUT))
#  Subsets of the above that open/close tax lots
LOT_OPENING_TYPES = frozenset((TransactionType.BUY, TransactionType.REINVEST_DIVIDEND))
LOT_CLOSING_TYPES = frozenset((TransactionType.SELL,))


class Mergeable(object):
    """Mixin implementing merge() classmethod.
    """

    signature = NotImplemented

    @classmethod
    def merge(cls, session, **kwargs):
        """
        Query DB for unique persisted instance matching given values for
        signature attributes; if not found, insert a new instance with
        all attributes from kwargs.
        """
        if cls.signature is NotImplemented:
            raise NotImplementedError
        sig = {k: v for k, v in kwargs.items() if k in cls.signature}
        instance = session.query(cls).filter_by(**sig).one_or_none()
        msg = "Existing {} loaded from DB".format(instance)
        if instance is None:
            instance = cls(**kwargs)
            msg = "Created {}".format(instance)
        logging.info(msg)
        session.add(instance)
        return instance


class Portfolio(Base, Mergeable):
    """A user's collection of financial accounts.
    """

    id = Column(Integer, primary_key=True)
    owner = Column(String, nullable=False, comment="Owning user identifier")
    name = Column(String, nullable=False)
    basecurrency = Column(String(3), nullable=False, default="USD")

    accounts = relationship("Account", back_populates="portfolio")

    __table_args__ = (
        UniqueConstraint("owner", "name"),
        {"comment": "Portfolios (scope for backfill & gains reporting)"},
    )

    signature = ("owner", "name")

    @classmethod
    def owned(cls, session, portfolio_id, owner):
        """Load a portfolio, checking that `owner` owns it.

        Raises:
            NotFound: if no portfolio `portfolio_id` is owned by `owner`.
        """
        portfolio = (
            session.query(cls).filter_by(id=portfolio_id, owner=owner).one_or_none()
        )
        if portfolio is None:
            raise NotFound(
                f"Portfolio {portfolio_id} not found or access denied for {owner!r}"
            )
        return portfolio

    @classmethod
    def account_ids(cls, session, portfolio_id, owner):
        """Resolve a portfolio scope into the ids of its accounts."""
        portfolio = cls.owned(session, portfolio_id, owner)
        return [account.id for account in portfolio.accounts]


class Account(Base, Mergeable):
    """A financial institution (e.g. brokerage) account within a portfolio.
    """

    id = Column(Integer, primary_key=True)
    portfolio_id = Column(
        Integer,
        ForeignKey("portfolio.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        comment="FK portfolio.id",
    )
    portfolio = relationship("Portfolio", back_populates="accounts")
    name = Column(String, nullable=False)
    institution = Column(String)
    currency = Column(String(3), nullable=False, default="USD")

    holdings = relationship("Holding", back_populates="account")

    __table_args__ = {"comment": "Financial Institution (e.g. Brokerage) Account"}

    signature = ("portfolio", "name")


class Holding(Base, Mergeable):
    """Position in one symbol within one account.

    quantity/costbasis/avgcostperunit are a derived cache; they're overwritten
    wholesale by holdings.recalculate() and can always be regenerated from the
    ledger.
    """

    id = Column(Integer, primary_key=True)
    account_id = Column(
        Integer,
        ForeignKey("account.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        comment="FK account.id",
    )
    account = relationship("Account", back_populates="holdings")
    symbol = Column(String, nullable=False)
    name = Column(String)
    currency = Column(String(3), nullable=False, default="USD")
    quantity = Column(Numeric(18, 8), nullable=False, default=0)
    costbasis = Column(Numeric(18, 2), comment="Weighted-average cost basis")
    avgcostperunit = Column(Numeric(18, 8))

    transactions = relationship("Transaction", back_populates="holding")
    taxlots = relationship("TaxLot", back_populates="holding")

    __table_args__ = (
        UniqueConstraint("account_id", "symbol"),
        {"comment": "Holdings (derived positions)"},
    )

    signature = ("account", "symbol")

    def __repr__(self):
        rp = "Holding(id={}, symbol='{}', quantity={}, costbasis={})"
        return rp.format(self.id, self.symbol, self.quantity, self.costbasis)


#  Cost basis fields are written by the tax lot engine and only for SELLs.
ENGINE_FIELDS = ("costbasisused", "realizedgainloss", "holdingperioddays")
ENGINE_FIELDS_CONSTRAINT = (
    "type = 'SELL' "
    "OR (costbasisused IS NULL "
    "AND realizedgainloss IS NULL "
    "AND holdingperioddays IS NULL)"
)


class Transaction(Base):
    """Ledger entry: one financial event in an account.

    Immutable once created, except for the ENGINE_FIELDS, which the tax lot
    engine fills in (once) when it consumes lots for a SELL.
    """

    id = Column(Integer, primary_key=True)
    account_id = Column(
        Integer,
        ForeignKey("account.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        comment="FK account.id",
    )
    account = relationship("Account", backref="transactions")
    holding_id = Column(
        Integer,
        ForeignKey("holding.id", onupdate="CASCADE", ondelete="SET NULL"),
        comment="FK holding.id; NULL for cash events that don't touch a holding",
    )
    holding = relationship("Holding", back_populates="transactions")
    type = Column(
        Enum(TransactionType, name="transaction_type"),
        nullable=False,
        comment=f"One of {tuple(TransactionType.__members__.keys())}",
    )
    symbol = Column(String)
    quantity = Column(
        Numeric(18, 8),
        comment="Units bought/sold (for splits: the split ratio)",
    )
    price = Column(
        Numeric(18, 8),
        CheckConstraint("price >= 0", name="price_not_negative"),
        comment="Per-unit trade price",
    )
    amount = Column(
        Numeric(18, 2), nullable=False, comment="Signed change in cash"
    )
    fees = Column(Numeric(18, 2))
    currency = Column(String(3), nullable=False, default="USD", comment="ISO 4217")
    date = Column(Date, nullable=False, comment="Economic (trade) date")
    memo = Column(Text)
    costbasisused = Column(
        Numeric(18, 2), comment="SELL only: cost basis of the lots consumed"
    )
    realizedgainloss = Column(
        Numeric(18, 2), comment="SELL only: proceeds less cost basis consumed"
    )
    holdingperioddays = Column(
        Integer,
        comment="SELL only: quantity-weighted average days held of lots consumed",
    )

    taxlot = relationship("TaxLot", back_populates="transaction", uselist=False)
    consumptions = relationship(
        "LotConsumption", back_populates="transaction", order_by="LotConsumption.id"
    )

    __table_args__ = (
        CheckConstraint(ENGINE_FIELDS_CONSTRAINT, name="engine_fields_sell_only"),
        Index("ix_transaction_holding_id_date", "holding_id", "date", "id"),
        {"comment": "Ledger of Portfolio Transactions"},
    )

    @property
    def realized(self):
        """True if the tax lot engine has already written cost basis fields."""
        return self.realizedgainloss is not None

    @classmethod
    def between(cls, session, account_ids, dtstart=None, dtend=None, types=None):
        """Query Transactions for the given accounts, optionally within dates.

        Args:
            account_ids: sequence of Account.id.
            dtstart: include Transactions on/after this date.
            dtend: include Transactions before this date.
            types: restrict to these TransactionTypes.
        """
        query = session.query(cls).filter(cls.account_id.in_(account_ids))
        if dtstart is not None:
            query = query.filter(cls.date >= dtstart)
        if dtend is not None:
            query = query.filter(cls.date < dtend)
        if types is not None:
            query = query.filter(cls.type.in_(types))
        return query

    @classmethod
    def ledger_order(cls):
        """ORDER BY clauses for replaying the ledger.

        By date; within a date acquisitions come before disposals, then by id.
        """
        disposals = sorted(DISPOSAL_TYPES, key=lambda type_: type_.name)
        return (cls.date, case((cls.type.in_(disposals), 1), else_=0), cls.id)


@event.listens_for(Transaction, "before_update")
def enforce_write_once(mapper, connection, instance):
    """Cost basis fields may be filled in, but never rewritten."""
    state = inspect(instance)
    for attr in ENGINE_FIELDS:
        history = state.attrs[attr].history
        if any(value is not None for value in history.deleted):
            msg = "Transaction.{} is already set and can't be changed: {}"
            raise ModelConstraintError(msg.format(attr, instance))


class TaxLot(Base):
    """Units/cost remaining from a single acquisition Transaction.
    """

    id = Column(Integer, primary_key=True)
    holding_id = Column(
        Integer,
        ForeignKey("holding.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        comment="FK holding.id",
    )
    holding = relationship("Holding", back_populates="taxlots")
    transaction_id = Column(
        Integer,
        ForeignKey("transaction.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="Opening (BUY/REINVEST_DIVIDEND) transaction - FK transaction.id",
    )
    transaction = relationship("Transaction", back_populates="taxlot")
    quantity = Column(
        Numeric(18, 8),
        CheckConstraint("quantity > 0", name="quantity_positive"),
        nullable=False,
        comment="Units originally acquired",
    )
    remaining = Column(
        Numeric(18, 8),
        CheckConstraint("remaining >= 0", name="remaining_not_negative"),
        nullable=False,
        comment="Units not yet consumed by SELLs",
    )
    costbasis = Column(
        Numeric(18, 2), nullable=False, comment="quantity * price + fees"
    )
    costperunit = Column(Numeric(18, 8), nullable=False)
    acquired = Column(
        Date, nullable=False, comment="Opening transaction date; FIFO sort key"
    )

    consumptions = relationship(
        "LotConsumption", back_populates="taxlot", order_by="LotConsumption.id"
    )

    __table_args__ = (
        CheckConstraint("remaining <= quantity", name="remaining_within_quantity"),
        Index("ix_taxlot_holding_id_acquired", "holding_id", "acquired", "id"),
        {"comment": "Tax Lots"},
    )


class LotConsumption(Base):
    """Units drawn from one TaxLot by one SELL Transaction.
    """

    id = Column(Integer, primary_key=True)
    taxlot_id = Column(
        Integer,
        ForeignKey("taxlot.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        comment="FK taxlot.id",
    )
    taxlot = relationship("TaxLot", back_populates="consumptions")
    transaction_id = Column(
        Integer,
        ForeignKey("transaction.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        comment="Realizing (SELL) transaction - FK transaction.id",
    )
    transaction = relationship("Transaction", back_populates="consumptions")
    quantity = Column(
        Numeric(18, 8),
        CheckConstraint("quantity > 0", name="quantity_positive"),
        nullable=False,
    )
    costbasis = Column(Numeric(18, 8), nullable=False)
    daysheld = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("taxlot_id", "transaction_id"),
        {"comment": "Tax Lot Consumption by Sales"},
    )
