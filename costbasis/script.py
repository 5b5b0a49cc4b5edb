# coding: utf-8
"""CLI front end to build tax lots, recalculate holdings, and report gains.


INSTALL
-------
q.v. package README.  The package requires Python v3.9+, SQLAlchemy, and a
database; PostgreSQL (with the Psycopg2 adapter, `pip install costbasis[postgres]`)
is expected in production.

CONFIGURE
---------
We look for the config file in ~/.config/costbasis/costbasis.cfg, unless the
COSTBASIS_CONFIG environment variable names another path.  It's in INI format,
and needs to have at least the following sections (with values modified for your
installation):

    [db]
    dialect = postgresql
    driver = psycopg2
    username = user
    password = pass
    host = localhost
    port = 5432
    database = costbasis

BACKFILL
--------
Open tax lots for every BUY/REINVEST_DIVIDEND and realize every SELL of a
portfolio (safe to rerun):

    costbasis backfill <portfolio id> <owner>

RECALCULATE
-----------
Regenerate holding quantity & average cost from the ledger:

    costbasis recalc <portfolio id> <owner>

REPORT
------
Realized gains, short-term vs. long-term, for a tax year or a date range:

    costbasis gains <portfolio id> <owner> -y 2024
    costbasis gains <portfolio id> <owner> -s 2024-01-01 -e 2024-06-30

Form 8949 CSV for a tax year:

    costbasis report <portfolio id> <owner> 2024 /path/to/form8949.csv
"""
# stdlib imports
import argparse
from argparse import ArgumentParser, _SubParsersAction
import logging
from datetime import datetime
from typing import Tuple

# 3rd party imports
import sqlalchemy


# Local imports
from costbasis import CONFIG, backfill, gains, holdings, report
from costbasis.database import Base, make_engine, sessionmanager


def create_engine() -> sqlalchemy.engine.Engine:
    """
    """
    engine = make_engine(CONFIG.db_uri)
    # Create table metadata here too
    Base.metadata.create_all(bind=engine)
    return engine


def drop_all_tables(args: argparse.Namespace) -> None:
    """Just what it says on the tin.  DROP all tables defined by models.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    engine = make_engine(CONFIG.db_uri)
    print("Dropping all tables on {}...".format(engine.url), end=" ")
    Base.metadata.drop_all(bind=engine)
    print("finished.")


def run_backfill(args: argparse.Namespace) -> backfill.BackfillResult:
    """Build tax lots for a portfolio; print counts and any per-transaction errors.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    engine = create_engine()
    with sessionmanager(bind=engine) as session:
        result = backfill.backfill(session, args.portfolio, args.owner)

    print("Tax lots: {}".format(result.created))
    print("Sales realized: {}".format(result.consumed))
    for error in result.errors:
        print(error)
    return result


def run_recalc(args: argparse.Namespace) -> int:
    """Recalculate every holding of a portfolio.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    engine = create_engine()
    with sessionmanager(bind=engine) as session:
        count = holdings.recalculate_portfolio(session, args.portfolio, args.owner)
    print("Recalculated {} holdings".format(count))
    return count


def print_gains(args: argparse.Namespace) -> gains.GainsSummary:
    """Print realized gain totals for a portfolio.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    engine = create_engine()
    with sessionmanager(bind=engine) as session:
        summary = gains.summarize(
            session,
            args.portfolio,
            args.owner,
            year=args.year,
            start=args.dtstart,
            end=args.dtend,
        )
        count = len(summary.transactions)

    print("Sales: {}".format(count))
    print("Short-term: {}".format(summary.shortterm))
    print("Long-term: {}".format(summary.longterm))
    print("Total: {}".format(summary.total))
    return summary


def dump_report(args: argparse.Namespace) -> report.TaxReport:
    """Write a tax year's Form 8949 to a CSV file.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    engine = create_engine()
    with sessionmanager(bind=engine) as session:
        taxreport = report.tax_report(
            session, args.portfolio, args.owner, args.year, include_zero=args.zero
        )

    with open(args.file, "w", newline="") as csvfile:
        report.Form8949Writer(csvfile).writereport(taxreport)
    print(
        "Wrote {} short-term, {} long-term sales to {}".format(
            taxreport.shortterm_count, taxreport.longterm_count, args.file
        )
    )
    return taxreport


def make_argparser() -> Tuple[ArgumentParser, _SubParsersAction]:
    """Return subparsers along with the ArgumentParer, so the latter can be extended.
    """
    argparser = ArgumentParser(description="Tax lot utility")
    argparser.add_argument(
        "--verbose", "-v", action="count", default=0, help="-vv for DEBUG"
    )
    argparser.set_defaults(func=None)
    subparsers = argparser.add_subparsers()

    drop_parser = subparsers.add_parser(
        "drop", aliases=["erase"], help="Drop all database tables"
    )
    drop_parser.set_defaults(func=drop_all_tables)

    backfill_parser = subparsers.add_parser(
        "backfill", help="Create tax lots & realize gains for a portfolio"
    )
    _add_scope(backfill_parser)
    backfill_parser.set_defaults(func=run_backfill)

    recalc_parser = subparsers.add_parser(
        "recalc", help="Recalculate holdings of a portfolio"
    )
    _add_scope(recalc_parser)
    recalc_parser.set_defaults(func=run_recalc)

    gain_parser = subparsers.add_parser("gains", help="Print realized gain totals")
    _add_scope(gain_parser)
    gain_parser.add_argument(
        "-y", "--year", type=int, default=None, help="Tax year (overrides -s/-e)"
    )
    gain_parser.add_argument(
        "-s",
        "--dtstart",
        default=None,
        help="Start date for sales reported (included)",
    )
    gain_parser.add_argument(
        "-e",
        "--dtend",
        default=None,
        help="End date for sales reported (included)",
    )
    gain_parser.set_defaults(func=print_gains)

    report_parser = subparsers.add_parser(
        "report", aliases=["8949"], help="Dump Form 8949 to CSV file"
    )
    _add_scope(report_parser)
    report_parser.add_argument("year", type=int, help="Tax year")
    report_parser.add_argument("file", help="CSV file")
    report_parser.add_argument(
        "-z", "--zero", action="store_true", help="Include sales with zero gain"
    )
    report_parser.set_defaults(func=dump_report)

    return argparser, subparsers


def _add_scope(parser: ArgumentParser) -> None:
    parser.add_argument("portfolio", type=int, help="Portfolio ID")
    parser.add_argument("owner", help="Portfolio owner")


def parse_args(argparser: ArgumentParser, argv=None) -> argparse.Namespace:
    """Parse CLI args, converting date strings.

    Args:
        argparser: the ArgumentParser instance returned by make_argparser().
        argv: list of args to parse; defaults to sys.argv.
    """
    args = argparser.parse_args(argv)

    # Parse date args
    for attr in ("dtstart", "dtend"):
        value = getattr(args, attr, None)
        if value:
            setattr(args, attr, datetime.strptime(value, "%Y-%m-%d").date())

    return args


def run(argparser: ArgumentParser, argv=None) -> None:
    """Parse args and pass them to the indication function.

    Args:
        argparser: the ArgumentParser instance returned by make_argparser().
        argv: list of args to parse; defaults to sys.argv.
    """
    args = parse_args(argparser, argv)

    loglevel = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=loglevel)

    # Execute selected function
    if args.func:
        args.func(args)
    else:
        argparser.print_help()


def main() -> None:
    argparser, subparsers = make_argparser()
    run(argparser)


if __name__ == "__main__":
    main()
