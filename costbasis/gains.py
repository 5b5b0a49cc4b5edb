# coding: utf-8
"""Aggregate realized gains already recorded on SELL Transactions.

Nothing here recomputes cost basis; the figures summed are the ones
costbasis.lots.consume_lots() wrote at the time each SELL was processed.
"""

__all__ = ["GainsSummary", "summarize", "realized_sells", "tax_years"]


# stdlib imports
import datetime
import logging
from decimal import Decimal
from typing import List, NamedTuple, Optional, Tuple


# 3rd party imports
from sqlalchemy.orm.session import Session


# local imports
from costbasis import models, utils
from costbasis.models import Transaction, TransactionType


logger = logging.getLogger(__name__)


class GainsSummary(NamedTuple):
    """Realized gain totals for a portfolio over a period.

    `transactions` are the realized SELLs summed, most recent first.
    """

    shortterm: Decimal
    longterm: Decimal
    total: Decimal
    transactions: Tuple[Transaction, ...]


def date_range(
    year: Optional[int] = None,
    start: Optional[datetime.date] = None,
    end: Optional[datetime.date] = None,
) -> Tuple[Optional[datetime.date], Optional[datetime.date]]:
    """Convert filter arguments to a half-open [dtstart, dtend) date range.

    `year` wins over `start`/`end`.  `end` is inclusive, so the returned dtend
    is the following day.
    """
    if year is not None:
        return datetime.date(year, 1, 1), datetime.date(year + 1, 1, 1)
    dtend = None
    if end is not None:
        dtend = end + datetime.timedelta(days=1)
    return start, dtend


def realized_sells(
    session: Session,
    account_ids: List[int],
    dtstart: Optional[datetime.date] = None,
    dtend: Optional[datetime.date] = None,
):
    """Query SELLs carrying realized gain within [dtstart, dtend)."""
    return Transaction.between(
        session,
        account_ids,
        dtstart=dtstart,
        dtend=dtend,
        types=[TransactionType.SELL],
    ).filter(Transaction.realizedgainloss.isnot(None))


def summarize(
    session: Session,
    portfolio_id: int,
    owner: str,
    year: Optional[int] = None,
    start: Optional[datetime.date] = None,
    end: Optional[datetime.date] = None,
) -> GainsSummary:
    """Total realized gains for a portfolio, split short-term/long-term.

    A holding period under 365 days is short-term; 365 days or more (or no
    recorded holding period) is long-term.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
        portfolio_id: Portfolio.id
        owner: Portfolio.owner; must match or NotFound is raised.
        year: restrict to SELLs dated in this calendar year.
        start: restrict to SELLs dated on/after this date (ignored if `year`).
        end: restrict to SELLs dated on/before this date (ignored if `year`).
    """
    account_ids = models.Portfolio.account_ids(session, portfolio_id, owner)
    dtstart, dtend = date_range(year, start, end)

    transactions = tuple(
        realized_sells(session, account_ids, dtstart, dtend)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )

    shortterm = longterm = utils.ZERO
    for transaction in transactions:
        if utils.is_longterm(transaction.holdingperioddays):
            longterm += transaction.realizedgainloss
        else:
            shortterm += transaction.realizedgainloss

    logger.debug(
        "Portfolio %s: %d realized SELLs in [%s, %s)",
        portfolio_id,
        len(transactions),
        dtstart,
        dtend,
    )
    return GainsSummary(
        shortterm=shortterm,
        longterm=longterm,
        total=shortterm + longterm,
        transactions=transactions,
    )


def tax_years(session: Session, portfolio_id: int, owner: str) -> List[int]:
    """Calendar years in which a portfolio realized gains, most recent first."""
    account_ids = models.Portfolio.account_ids(session, portfolio_id, owner)
    dates = realized_sells(session, account_ids).with_entities(Transaction.date)
    return sorted({date.year for (date,) in dates}, reverse=True)
