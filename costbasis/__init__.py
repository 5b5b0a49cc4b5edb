# coding: utf-8
"""FIFO tax lot accounting for an append-only ledger of investment transactions."""
from .config import CONFIG


__version__ = "0.1.0dev"
