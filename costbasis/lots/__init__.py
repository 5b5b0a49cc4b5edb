# coding: utf-8
from .types import Consumption, RealizedGain, ProcessResult
from .api import create_lot, consume_lots, process_transaction, lots_for_holding
from .sortkeys import sort_oldest, FIFO
