# coding: utf-8
"""Functions to open and consume tax lots, computing realized gains FIFO.

Acquisitions (BUY, REINVEST_DIVIDEND) open one TaxLot apiece.  SELLs consume the
open TaxLots of their holding oldest-first, and the cost basis / gain / holding
period of the units consumed is written back onto the SELL.

Both operations are idempotent, so a ledger can be replayed through them any
number of times (cf. backfill.backfill()):
    * create_lot() returns the existing TaxLot for a Transaction it has seen.
    * consume_lots() leaves the lot store alone for a SELL that already carries
      realized gain fields, and reports the recorded result instead.

The functions in this module are impure; they write to the database through the
session passed in (flushing, never committing).  Transaction boundaries belong to
the caller.

Lot consumption takes row locks (SELECT ... FOR UPDATE) in a fixed order: first
the SELL itself, whose realized gain fields are then read afresh, and then the open
TaxLots of its holding.  Inside the caller's DB transaction this serializes
concurrent consumers of the same SELL or the same holding on databases that
support row locks, so a SELL is never consumed twice.  Nothing here serializes
across holdings; it doesn't need to.

Data-quality problems (missing quantity/price/holding) and oversold positions
aren't errors; they're logged and reflected in the return value.
"""

__all__ = [
    "create_lot",
    "consume_lots",
    "process_transaction",
    "lots_for_holding",
]


# stdlib imports
import logging
from decimal import Decimal
from typing import List, Optional


# 3rd party imports
from sqlalchemy.orm.session import Session


# local imports
from costbasis import models, utils
from costbasis.models import TaxLot, LotConsumption, TransactionType
from .types import Consumption, RealizedGain, ProcessResult
from . import sortkeys


logger = logging.getLogger(__name__)


def create_lot(session: Session, transaction: models.Transaction) -> Optional[TaxLot]:
    """Open a TaxLot for an acquisition Transaction.

    Cost basis includes fees: quantity * price + fees.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
        transaction: BUY or REINVEST_DIVIDEND Transaction.

    Returns:
        The new TaxLot, or the TaxLot previously opened for the same Transaction.
        None if the Transaction doesn't open lots, or lacks the data to do so.
    """
    if transaction.type not in models.LOT_OPENING_TYPES:
        return None

    if not _has_trade_data(transaction):
        logger.warning(
            "Can't create tax lot for transaction %s: missing holding, "
            "quantity or price",
            transaction.id,
        )
        return None

    quantity = utils.to_decimal(transaction.quantity)
    if quantity <= 0:
        logger.warning(
            "Can't create tax lot for transaction %s: quantity=%s",
            transaction.id,
            quantity,
        )
        return None

    if transaction.id is None:
        session.flush()

    existing = (
        session.query(TaxLot).filter_by(transaction_id=transaction.id).one_or_none()
    )
    if existing is not None:
        logger.debug("Existing %s loaded from DB", existing)
        return existing

    price = utils.to_decimal(transaction.price)
    fees = utils.to_decimal(transaction.fees)
    costbasis = quantity * price + fees
    costperunit = costbasis / quantity

    lot = TaxLot(
        holding_id=transaction.holding_id,
        transaction=transaction,
        quantity=utils.round_units(quantity),
        remaining=utils.round_units(quantity),
        costbasis=utils.round_money(costbasis),
        costperunit=utils.round_units(costperunit),
        acquired=transaction.date,
    )
    session.add(lot)
    session.flush()
    logger.info("Created %s", lot)
    return lot


def consume_lots(
    session: Session, transaction: models.Transaction
) -> Optional[RealizedGain]:
    """Match a SELL against open TaxLots of its holding, oldest first.

    Each TaxLot consumed is decremented (and flushed) as it's consumed, and a
    LotConsumption row records the units/cost taken.  The SELL is then updated
    with costbasisused, realizedgainloss and holdingperioddays.

    If the open TaxLots can't cover the whole sale, whatever can be matched is
    consumed; the rest of the sale carries no cost basis and is reported as
    RealizedGain.unmatched.  No TaxLot is ever fabricated for the shortfall.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
        transaction: SELL Transaction.

    Returns:
        RealizedGain for the SELL.  None if the Transaction isn't a SELL, lacks
        the data to match lots, or its holding has no open TaxLots at all.
    """
    if transaction.type not in models.LOT_CLOSING_TYPES:
        return None

    if not _has_trade_data(transaction):
        logger.warning(
            "Can't consume tax lots for transaction %s: missing holding, "
            "quantity or price",
            transaction.id,
        )
        return None

    sellquantity = utils.round_units(utils.to_decimal(transaction.quantity))
    if sellquantity <= 0:
        logger.warning(
            "Can't consume tax lots for transaction %s: quantity=%s",
            transaction.id,
            transaction.quantity,
        )
        return None

    # Lock the SELL before the TaxLots, and look again at whether it's realized.
    session.flush()
    session.refresh(transaction, with_for_update=True)
    if transaction.realized:
        logger.info(
            "Transaction %s already realized; tax lots left untouched", transaction.id
        )
        return _recorded_gain(transaction)

    price = utils.to_decimal(transaction.price)
    fees = utils.to_decimal(transaction.fees)
    proceeds = sellquantity * price - fees

    lots = (
        session.query(TaxLot)
        .filter(
            TaxLot.holding_id == transaction.holding_id,
            TaxLot.remaining > 0,
        )
        .order_by(*sortkeys.FIFO)
        .with_for_update()
        .all()
    )
    if not lots:
        logger.warning("No tax lots available for holding %s", transaction.holding_id)
        return None

    unitsleft = sellquantity
    totalcost = utils.ZERO
    weighteddays = utils.ZERO
    consumptions: List[Consumption] = []

    for lot in lots:
        if unitsleft <= 0:
            break

        taken = min(lot.remaining, unitsleft)
        cost = taken * lot.costperunit
        daysheld = utils.days_between(lot.acquired, transaction.date)

        lot.remaining = utils.round_units(lot.remaining - taken)
        session.add(
            LotConsumption(
                taxlot=lot,
                transaction=transaction,
                quantity=utils.round_units(taken),
                costbasis=utils.round_units(cost),
                daysheld=daysheld,
            )
        )
        session.flush()

        consumptions.append(
            Consumption(
                taxlot_id=lot.id,
                quantity=taken,
                costbasis=cost,
                acquired=lot.acquired,
                daysheld=daysheld,
            )
        )
        totalcost += cost
        weighteddays += taken * daysheld
        unitsleft -= taken

    if unitsleft > 0:
        logger.warning(
            "Insufficient tax lots for transaction %s: %s units could not be matched",
            transaction.id,
            unitsleft,
        )

    realizedgainloss = proceeds - totalcost
    averagedaysheld = utils.round_int(weighteddays / sellquantity)

    transaction.costbasisused = utils.round_money(totalcost)
    transaction.realizedgainloss = utils.round_money(realizedgainloss)
    transaction.holdingperioddays = averagedaysheld
    session.flush()

    return RealizedGain(
        transaction=transaction,
        proceeds=proceeds,
        costbasis=totalcost,
        realizedgainloss=realizedgainloss,
        averagedaysheld=averagedaysheld,
        consumptions=tuple(consumptions),
        unmatched=max(unitsleft, utils.ZERO),
    )


def process_transaction(
    session: Session, transaction: models.Transaction
) -> ProcessResult:
    """Apply a Transaction to the tax lot store.

    BUY/REINVEST_DIVIDEND open a TaxLot; SELL consumes TaxLots.  Other
    Transaction types don't affect tax lots.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
        transaction: any ledger Transaction.
    """
    handlers = {
        TransactionType.BUY: _open,
        TransactionType.REINVEST_DIVIDEND: _open,
        TransactionType.SELL: _close,
    }
    handler = handlers.get(transaction.type)
    if handler is None:
        return ProcessResult()
    return handler(session, transaction)


def lots_for_holding(session: Session, holding_id: int) -> List[TaxLot]:
    """All TaxLots ever opened for a holding (exhausted ones included), FIFO."""
    return (
        session.query(TaxLot)
        .filter(TaxLot.holding_id == holding_id)
        .order_by(*sortkeys.FIFO)
        .all()
    )


def _open(session: Session, transaction: models.Transaction) -> ProcessResult:
    return ProcessResult(lot=create_lot(session, transaction))


def _close(session: Session, transaction: models.Transaction) -> ProcessResult:
    return ProcessResult(gain=consume_lots(session, transaction))


def _has_trade_data(transaction: models.Transaction) -> bool:
    return (
        transaction.holding_id is not None
        and transaction.quantity is not None
        and transaction.price is not None
    )


def _recorded_gain(transaction: models.Transaction) -> RealizedGain:
    """Rebuild the RealizedGain of a SELL from what consume_lots() persisted."""
    sellquantity = utils.round_units(utils.to_decimal(transaction.quantity))
    proceeds = sellquantity * utils.to_decimal(transaction.price) - utils.to_decimal(
        transaction.fees
    )
    records = sorted(
        transaction.consumptions, key=lambda rec: sortkeys.sort_oldest(rec.taxlot)
    )
    consumptions = tuple(
        Consumption(
            taxlot_id=rec.taxlot_id,
            quantity=rec.quantity,
            costbasis=rec.costbasis,
            acquired=rec.taxlot.acquired,
            daysheld=rec.daysheld,
        )
        for rec in records
    )
    matched = sum((c.quantity for c in consumptions), utils.ZERO)
    return RealizedGain(
        transaction=transaction,
        proceeds=proceeds,
        costbasis=utils.to_decimal(transaction.costbasisused),
        realizedgainloss=utils.to_decimal(transaction.realizedgainloss),
        averagedaysheld=transaction.holdingperioddays or 0,
        consumptions=consumptions,
        unmatched=max(sellquantity - matched, utils.ZERO),
    )
