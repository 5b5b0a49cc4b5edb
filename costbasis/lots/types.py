# coding: utf-8
"""
Result containers returned by the tax lot engine.

TaxLots themselves are ORM rows (models.TaxLot) whose `remaining` is mutated in
place as SELLs consume them.  The containers here are immutable snapshots of what
a single SELL did to the lot store:

    * Consumption - units & cost drawn from one TaxLot by the SELL.
    * RealizedGain - totals for the SELL, binding its Consumptions.

To compute realized capital gains from a RealizedGain instance:
    * Proceeds = gain.proceeds (sale quantity * price, less fees)
    * Basis = gain.costbasis (sum of consumption.costbasis)
    * Gain/loss = gain.realizedgainloss
    * Character = gain.longterm (averaged holding period >= 365 days)
"""

__all__ = ["Consumption", "RealizedGain", "ProcessResult"]


# stdlib imports
from decimal import Decimal
import datetime as _datetime
from typing import NamedTuple, Tuple, Any, Optional


# local imports
from costbasis import utils


class Consumption(NamedTuple):
    """Units drawn from one TaxLot by a SELL.

    Attributes:
        taxlot_id: TaxLot.id consumed from.
        quantity: units taken from the TaxLot.
        costbasis: quantity * TaxLot.costperunit (unrounded).
        acquired: TaxLot.acquired, i.e. start of the holding period.
        daysheld: whole days from `acquired` to the SELL date.
    """

    taxlot_id: int
    quantity: Decimal
    costbasis: Decimal
    acquired: _datetime.date
    daysheld: int


class RealizedGain(NamedTuple):
    """Outcome of matching a SELL against the TaxLots of its holding.

    Attributes:
        transaction: the realizing SELL (models.Transaction).
        proceeds: sale quantity * price, less fees.
        costbasis: total cost basis of the units matched to TaxLots.
        realizedgainloss: proceeds - costbasis.
        averagedaysheld: quantity-weighted average of Consumption.daysheld.
        consumptions: Consumption instances, in FIFO order.
        unmatched: units of the sale for which no TaxLot was available.
                   These carry no cost basis (see DESIGN.md, oversold positions).
    """

    transaction: Any
    proceeds: Decimal
    costbasis: Decimal
    realizedgainloss: Decimal
    averagedaysheld: int
    consumptions: Tuple[Consumption, ...]
    unmatched: Decimal = utils.ZERO

    @property
    def longterm(self) -> bool:
        return utils.is_longterm(self.averagedaysheld)

    @property
    def reconciled(self) -> bool:
        """False if part of the sale couldn't be matched to any TaxLot."""
        return self.unmatched == 0


class ProcessResult(NamedTuple):
    """What process_transaction() did with a Transaction.

    Attributes:
        lot: the TaxLot opened by (or already existing for) an acquisition.
        gain: the RealizedGain of a SELL.
    """

    lot: Optional[Any] = None
    gain: Optional[RealizedGain] = None
