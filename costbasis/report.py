# coding: utf-8
"""IRS Form 8949 / Schedule D style reporting of a year's realized gains.

Reporting is a two-step process.

First tax_report() reads the realized SELLs of a portfolio's tax year and
"flattens" each one into a Form8949Row, sorted into Part I (short-term) or
Part II (long-term), with totals and the matching Schedule D lines.

Next the TaxReport can be "exported", i.e. attributes formatted the way tax
software expects (MM/DD/YYYY dates, amounts to the cent), and written out as CSV
by Form8949Writer.

All figures come from the cost basis fields the tax lot engine stored on each
SELL; nothing is recomputed.  All rows are reported in Box A / Box D (basis
reported to the IRS); the other boxes of Schedule D are left at zero.
"""
__all__ = [
    "Form8949Row",
    "Form8949Summary",
    "Form8949",
    "ScheduleD",
    "TaxReport",
    "tax_report",
    "flatten_sell",
    "form8949_rows",
    "Form8949Writer",
]

# stdlib imports
import csv
import datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence, Tuple

# 3rd party imports
from sqlalchemy.orm.session import Session

# local imports
from costbasis import models, utils
from costbasis.gains import date_range, realized_sells
from costbasis.models import Transaction


class Form8949Row(NamedTuple):
    """One line of Form 8949.

    Attributes:
        description: "<units> sh <symbol>" (column a).
        dateacquired: date sold less holding period days (column b).
        datesold: SELL date (column c).
        proceeds: absolute value of the SELL's cash amount (column d).
        costbasis: cost basis of the tax lots consumed (column e).
        gain: realized gain/loss (column h).
        symbol: holding symbol.
        quantity: units sold.
        holdingperioddays: average days held of the tax lots consumed.
        transaction_id: Transaction.id of the SELL.
    """

    description: str
    dateacquired: datetime.date
    datesold: datetime.date
    proceeds: Decimal
    costbasis: Decimal
    gain: Decimal
    symbol: str
    quantity: Decimal
    holdingperioddays: int
    transaction_id: int

    @property
    def longterm(self) -> bool:
        return utils.is_longterm(self.holdingperioddays)


class Form8949Summary(NamedTuple):
    shortterm_proceeds: Decimal
    shortterm_costbasis: Decimal
    shortterm_gain: Decimal
    longterm_proceeds: Decimal
    longterm_costbasis: Decimal
    longterm_gain: Decimal

    @property
    def total_proceeds(self) -> Decimal:
        return self.shortterm_proceeds + self.longterm_proceeds

    @property
    def total_costbasis(self) -> Decimal:
        return self.shortterm_costbasis + self.longterm_costbasis

    @property
    def total_gain(self) -> Decimal:
        return self.shortterm_gain + self.longterm_gain


class Form8949(NamedTuple):
    year: int
    parti: Tuple[Form8949Row, ...]
    partii: Tuple[Form8949Row, ...]
    summary: Form8949Summary


class ScheduleD(NamedTuple):
    """Schedule D lines; only boxes A (line 1a) and D (line 8a) are used."""

    year: int
    line1a: Decimal
    line1b: Decimal
    line2: Decimal
    line7: Decimal
    line8a: Decimal
    line8b: Decimal
    line9: Decimal
    line15: Decimal
    line16: Decimal


class TaxReport(NamedTuple):
    portfolio_id: int
    portfolio_name: str
    year: int
    generated: datetime.datetime
    form8949: Form8949
    scheduled: ScheduleD

    @property
    def shortterm_count(self) -> int:
        return len(self.form8949.parti)

    @property
    def longterm_count(self) -> int:
        return len(self.form8949.partii)

    @property
    def transaction_count(self) -> int:
        return self.shortterm_count + self.longterm_count


def tax_report(
    session: Session,
    portfolio_id: int,
    owner: str,
    year: int,
    include_zero: bool = False,
) -> TaxReport:
    """Build the Form 8949 / Schedule D report of a portfolio's tax year.

    Args:
        session: a sqlalchemy.Session instance bound to a database engine.
        portfolio_id: Portfolio.id
        owner: Portfolio.owner; must match or NotFound is raised.
        year: calendar (tax) year.
        include_zero: if True, report SELLs realizing exactly zero gain.
    """
    portfolio = models.Portfolio.owned(session, portfolio_id, owner)
    account_ids = [account.id for account in portfolio.accounts]
    dtstart, dtend = date_range(year)

    sells = (
        realized_sells(session, account_ids, dtstart, dtend)
        .filter(Transaction.holding_id.isnot(None))
        .order_by(Transaction.date, Transaction.id)
    )
    rows = [flatten_sell(tx) for tx in sells]
    if not include_zero:
        rows = [row for row in rows if row.gain != 0]

    parti = tuple(row for row in rows if not row.longterm)
    partii = tuple(row for row in rows if row.longterm)

    summary = Form8949Summary(
        shortterm_proceeds=_total(parti, "proceeds"),
        shortterm_costbasis=_total(parti, "costbasis"),
        shortterm_gain=_total(parti, "gain"),
        longterm_proceeds=_total(partii, "proceeds"),
        longterm_costbasis=_total(partii, "costbasis"),
        longterm_gain=_total(partii, "gain"),
    )

    scheduled = ScheduleD(
        year=year,
        line1a=summary.shortterm_gain,
        line1b=utils.ZERO,
        line2=utils.ZERO,
        line7=summary.shortterm_gain,
        line8a=summary.longterm_gain,
        line8b=utils.ZERO,
        line9=utils.ZERO,
        line15=summary.longterm_gain,
        line16=summary.total_gain,
    )

    return TaxReport(
        portfolio_id=portfolio.id,
        portfolio_name=portfolio.name,
        year=year,
        generated=datetime.datetime.now(),
        form8949=Form8949(year=year, parti=parti, partii=partii, summary=summary),
        scheduled=scheduled,
    )


def flatten_sell(transaction: Transaction) -> Form8949Row:
    """Convert a realized SELL into a Form8949Row."""
    quantity = utils.to_decimal(transaction.quantity)
    holdingperioddays = transaction.holdingperioddays or 0
    symbol = transaction.holding.symbol
    return Form8949Row(
        description=f"{format_units(quantity)} sh {symbol}",
        dateacquired=transaction.date - datetime.timedelta(days=holdingperioddays),
        datesold=transaction.date,
        proceeds=abs(transaction.amount),
        costbasis=utils.to_decimal(transaction.costbasisused),
        gain=transaction.realizedgainloss,
        symbol=symbol,
        quantity=quantity,
        holdingperioddays=holdingperioddays,
        transaction_id=transaction.id,
    )


def _total(rows: Sequence[Form8949Row], attr: str) -> Decimal:
    return sum((getattr(row, attr) for row in rows), utils.ZERO)


#######################################################################################
# EXPORT
#######################################################################################
def format_units(units: Decimal) -> str:
    """Drop trailing zeros, e.g. Decimal('10.50000000') -> '10.5'."""
    return "{:f}".format(units.normalize())


def format_date(date: datetime.date) -> str:
    return date.strftime("%m/%d/%Y")


def format_money(amount: Optional[Decimal]) -> str:
    if amount is None:
        return ""
    return "{:,.2f}".format(utils.round_money(amount))


def export_row(row: Form8949Row) -> dict:
    return {
        "Description": row.description,
        "Date Acquired": format_date(row.dateacquired),
        "Date Sold": format_date(row.datesold),
        "Proceeds": format_money(row.proceeds),
        "Cost Basis": format_money(row.costbasis),
        "Adjustment Code": "",
        "Adjustment Amount": "",
        "Gain or Loss": format_money(row.gain),
        "Term": "Long-term" if row.longterm else "Short-term",
    }


def form8949_rows(report: TaxReport) -> List[dict]:
    """Export rows of Part I then Part II, ready for Form8949Writer."""
    form = report.form8949
    return [export_row(row) for row in form.parti + form.partii]


class Form8949Writer(csv.DictWriter):
    """Write a TaxReport as CSV importable by consumer tax software.

    Form 8949 rows come first; a summary section follows after a blank line.
    """

    fieldnames = [
        "Description",
        "Date Acquired",
        "Date Sold",
        "Proceeds",
        "Cost Basis",
        "Adjustment Code",
        "Adjustment Amount",
        "Gain or Loss",
        "Term",
    ]

    def __init__(self, csvfile):
        self.csvfile = csvfile
        super(Form8949Writer, self).__init__(csvfile, self.fieldnames, delimiter=",")

    def writereport(self, report: TaxReport) -> None:
        self.writeheader()
        self.writerows(form8949_rows(report))

        summary = report.form8949.summary
        self.writer.writerow([])
        self.writer.writerow(["Summary"])
        for label, amount in (
            ("Short-term Proceeds", summary.shortterm_proceeds),
            ("Short-term Cost Basis", summary.shortterm_costbasis),
            ("Short-term Gain/Loss", summary.shortterm_gain),
            ("Long-term Proceeds", summary.longterm_proceeds),
            ("Long-term Cost Basis", summary.longterm_costbasis),
            ("Long-term Gain/Loss", summary.longterm_gain),
            ("Total Gain/Loss", summary.total_gain),
        ):
            self.writer.writerow([label, format_money(amount)])
