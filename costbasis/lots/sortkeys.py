# coding: utf-8
"""
Orderings used to select TaxLots for consumption.
"""

__all__ = ["sort_oldest", "FIFO"]


# stdlib imports
from typing import Tuple


# local imports
from costbasis import models


def sort_oldest(lot: models.TaxLot) -> Tuple:
    """Sort by holding period, then by TaxLot.id.

    Args:
        lot: a TaxLot instance.

    Returns:
        (TaxLot.acquired, TaxLot.id)
    """
    return (lot.acquired, lot.id)


#  SQL equivalent of sort_oldest, for Query.order_by()
FIFO = (models.TaxLot.acquired.asc(), models.TaxLot.id.asc())
