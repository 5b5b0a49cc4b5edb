# coding: utf-8
"""Regenerate Holding positions by replaying each holding's full ledger.

This is the weighted-average view of cost used for live valuation.  It is kept
apart from the tax lot engine (costbasis.lots), which tracks exact FIFO,
fee-inclusive basis for tax reporting; the two deliberately disagree:
    * acquisition fees are left out of cost here;
    * disposals remove cost pro rata (average cost), not FIFO;
    * SPLITs scale quantity here, but TaxLots are never split.

recalculate() always starts from zero and overwrites the Holding, so calling it
any number of times gives the same answer.
"""

__all__ = [
    "Position",
    "replay",
    "recalculate",
    "recalculate_account",
    "recalculate_portfolio",
]


# stdlib imports
import functools
import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, NamedTuple


# 3rd party imports
from sqlalchemy.orm.session import Session


# local imports
from costbasis import models, utils
from costbasis.models import Holding, Transaction, TransactionType


logger = logging.getLogger(__name__)


class Position(NamedTuple):
    """Running totals while replaying a holding's Transactions."""

    quantity: Decimal = utils.ZERO
    totalcost: Decimal = utils.ZERO


def add_units(position: Position, transaction: Transaction) -> Position:
    """BUY, TRANSFER_IN, REINVEST_DIVIDEND: add units; add cost if priced."""
    units = utils.to_decimal(transaction.quantity)
    price = utils.to_decimal(transaction.price)
    totalcost = position.totalcost
    if units > 0 and price > 0:
        totalcost += units * price
    return Position(position.quantity + units, totalcost)


def remove_units(position: Position, transaction: Transaction) -> Position:
    """SELL, TRANSFER_OUT: remove units, and cost at the current average."""
    units = utils.to_decimal(transaction.quantity)
    totalcost = position.totalcost
    if position.quantity > 0 and units > 0:
        costperunit = totalcost / position.quantity
        totalcost -= costperunit * units
    return Position(position.quantity - units, totalcost)


def split_units(position: Position, transaction: Transaction) -> Position:
    """SPLIT: Transaction.quantity holds the ratio (e.g. 4 for 4:1)."""
    ratio = utils.to_decimal(transaction.quantity)
    if ratio > 0:
        return position._replace(quantity=position.quantity * ratio)
    return position


def unchanged(position: Position, transaction: Transaction) -> Position:
    """Income, fees, cash movements etc. don't change units or cost."""
    return position


HANDLERS: Dict[TransactionType, Callable[[Position, Transaction], Position]] = {
    TransactionType.BUY: add_units,
    TransactionType.TRANSFER_IN: add_units,
    TransactionType.REINVEST_DIVIDEND: add_units,
    TransactionType.SELL: remove_units,
    TransactionType.TRANSFER_OUT: remove_units,
    TransactionType.SPLIT: split_units,
}


def replay(transactions: Iterable[Transaction]) -> Position:
    """Fold Transactions (presorted by date) into a Position.

    Quantity and cost are floored at zero once all Transactions are applied,
    absorbing drift from incomplete or bad ledger data.
    """

    def accum(position: Position, transaction: Transaction) -> Position:
        handler = HANDLERS.get(transaction.type, unchanged)
        return handler(position, transaction)

    position = functools.reduce(accum, transactions, Position())
    return Position(
        quantity=max(position.quantity, utils.ZERO),
        totalcost=max(position.totalcost, utils.ZERO),
    )


def recalculate(session: Session, holding_id: int) -> Holding:
    """Overwrite a Holding's quantity/costbasis/avgcostperunit from its ledger.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
        holding_id: Holding.id

    Raises:
        NotFound: if there's no such Holding.
    """
    holding = session.get(Holding, holding_id)
    if holding is None:
        raise models.NotFound(f"Holding not found: {holding_id}")

    transactions = (
        session.query(Transaction)
        .filter(Transaction.holding_id == holding_id)
        .order_by(*Transaction.ledger_order())
        .all()
    )
    position = replay(transactions)

    avgcostperunit = utils.ZERO
    if position.quantity > 0:
        avgcostperunit = position.totalcost / position.quantity

    holding.quantity = utils.round_units(position.quantity)
    holding.costbasis = utils.round_money(position.totalcost)
    holding.avgcostperunit = utils.round_units(avgcostperunit)
    session.flush()

    logger.debug(
        "Recalculated %s from %d transactions", holding, len(transactions)
    )
    return holding


def recalculate_account(session: Session, account_id: int) -> int:
    """Recalculate every Holding in an Account; return how many."""
    holding_ids = [
        id_
        for (id_,) in session.query(Holding.id)
        .filter(Holding.account_id == account_id)
        .order_by(Holding.symbol)
    ]
    for holding_id in holding_ids:
        recalculate(session, holding_id)
    return len(holding_ids)


def recalculate_portfolio(session: Session, portfolio_id: int, owner: str) -> int:
    """Recalculate every Holding in a Portfolio; return how many.

    Raises:
        NotFound: if `owner` doesn't own Portfolio `portfolio_id`.
    """
    account_ids = models.Portfolio.account_ids(session, portfolio_id, owner)
    return sum(recalculate_account(session, account_id) for account_id in account_ids)
