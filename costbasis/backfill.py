# coding: utf-8
"""Build the tax lot store for a whole portfolio from its transaction ledger.

Every lot-relevant Transaction (BUY, REINVEST_DIVIDEND, SELL) is run through
lots.process_transaction() in economic order.  Since that's idempotent, a
backfill may be rerun over the same portfolio at any time; lots already opened
are left alone and SELLs already realized aren't consumed again.

Each Transaction is processed inside its own SAVEPOINT.  A failure rolls back
only that Transaction's partial writes; it's recorded in BackfillResult.errors
and the run carries on with the next Transaction.
"""

__all__ = ["BackfillResult", "backfill"]


# stdlib imports
import logging
from typing import List, MutableMapping, NamedTuple, Optional


# 3rd party imports
from sqlalchemy.orm.session import Session


# local imports
from costbasis import lots, models
from costbasis.models import Transaction, TaxLot


logger = logging.getLogger(__name__)


LOT_TYPES = [
    models.TransactionType.BUY,
    models.TransactionType.REINVEST_DIVIDEND,
    models.TransactionType.SELL,
]


class BackfillResult(NamedTuple):
    """Counts of Transactions with a TaxLot / a realized gain, and failures.

    `created` counts every processed acquisition that has a TaxLot afterward,
    whether or not this run opened it.
    """

    created: int
    consumed: int
    errors: List[str]


def backfill(
    session: Session,
    portfolio_id: int,
    owner: str,
    pending: Optional[MutableMapping[int, List[TaxLot]]] = None,
) -> BackfillResult:
    """Process a portfolio's whole ledger through the tax lot engine.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
        portfolio_id: Portfolio.id
        owner: Portfolio.owner; must match or NotFound is raised.
        pending: if given, TaxLots newly opened by this run are appended to
                 pending[holding_id], e.g. for an import pipeline to link.

    Raises:
        NotFound: if `owner` doesn't own Portfolio `portfolio_id`.
    """
    account_ids = models.Portfolio.account_ids(session, portfolio_id, owner)
    transactions = (
        Transaction.between(session, account_ids, types=LOT_TYPES)
        .filter(Transaction.holding_id.isnot(None))
        .order_by(*Transaction.ledger_order())
        .all()
    )
    logger.info(
        "Backfilling tax lots for portfolio %s: %d transactions",
        portfolio_id,
        len(transactions),
    )

    created = consumed = 0
    errors: List[str] = []

    for transaction in transactions:
        # Read these before a failure can expire the instance.
        transaction_id = transaction.id
        preexisting = transaction.taxlot
        try:
            with session.begin_nested():
                result = lots.process_transaction(session, transaction)
        except Exception as err:
            msg = f"Transaction {transaction_id}: {err}"
            logger.error(msg)
            errors.append(msg)
            continue

        if result.lot is not None:
            created += 1
            if pending is not None and preexisting is None:
                pending.setdefault(result.lot.holding_id, []).append(result.lot)
        if result.gain is not None:
            consumed += 1

    logger.info(
        "Portfolio %s: %d lots, %d sales realized, %d errors",
        portfolio_id,
        created,
        consumed,
        len(errors),
    )
    return BackfillResult(created=created, consumed=consumed, errors=errors)
