#!/usr/bin/env python3
"""InvestIQ CLI - personal finance backend and local reports."""
import argparse
import getpass
import sys
import logging
from pathlib import Path

from investiq.api.auth import AuthError
from investiq.api.finance_service import FinanceService
from investiq.config import DEFAULT_TREND_MONTHS, HOST, PORT
from investiq.reports.assistant import format_money


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )


def _resolve_user(service: FinanceService, email: str):
    user = service.store.get_user_by_email(email)
    if not user:
        print(f"Error: No user registered with email {email}")
    return user


def cmd_serve(args):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("investiq.web.api:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_register(args):
    """Create a user account."""
    password = args.password or getpass.getpass("Password: ")
    with FinanceService() as service:
        try:
            user = service.identity.register(args.email, password, args.name)
        except AuthError as e:
            print(f"Error: {e}")
            return 1
        print(f"Registered {user['email']} (id {user['id']})")
    return 0


def cmd_import(args):
    """Import transactions from CSV/Excel file."""
    file_path = Path(args.file)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return 1

    with FinanceService() as service:
        user = _resolve_user(service, args.email)
        if not user:
            return 1

        try:
            result = service.import_file(user["id"], file_path)
        except ValueError as e:
            print(f"Error: {e}")
            return 1

        print("Import complete:")
        print(f"  Total parsed:  {result['total_parsed']}")
        print(f"  Added:         {result['added']}")
        print(f"  Rejected:      {result['rejected']}")
        for error in result["errors"][:10]:
            print(f"    row {error['row']}: {error['reason']}")

    return 0


def cmd_summary(args):
    """Show the monthly summary."""
    with FinanceService() as service:
        user = _resolve_user(service, args.email)
        if not user:
            return 1
        summary = service.monthly_summary(user["id"], args.month, args.year)

        print("=" * 50)
        print(f"MONTHLY SUMMARY {summary['year']}-{summary['month']:02d}")
        print("=" * 50)
        print(f"\nTransactions: {summary['transactionCount']}")
        print(f"Income:       {format_money(summary['income'])}")
        print(f"Expenses:     {format_money(summary['expenses'])}")
        print(f"Net:          {format_money(summary['netIncome'])}")

        if summary["categoryBreakdown"]:
            print("\n" + "-" * 50)
            print("CATEGORY BREAKDOWN")
            print("-" * 50)
            sorted_cats = sorted(
                summary["categoryBreakdown"].items(),
                key=lambda x: x[1],
                reverse=True
            )
            for name, total in sorted_cats:
                print(f"  {name:25s}  {format_money(total):>14s}")

    return 0


def cmd_trends(args):
    """Show monthly expenses for the last N months."""
    with FinanceService() as service:
        user = _resolve_user(service, args.email)
        if not user:
            return 1
        try:
            trend = service.spending_trends(user["id"], args.months)
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        for entry in trend:
            print(f"  {entry['year']}-{entry['month']:02d}  {format_money(entry['expenses']):>14s}")
    return 0


def cmd_budgets(args):
    """Show budget vs actual for the current month."""
    with FinanceService() as service:
        user = _resolve_user(service, args.email)
        if not user:
            return 1
        report = service.budget_vs_actual(user["id"])
        if not report:
            print("No budgets defined.")
            return 0

        for row in report:
            used = row["percentageUsed"]
            used_str = f"{used:6.1f}%" if used is not None else "    n/a"
            print(
                f"  {row['category']:20s}  {format_money(row['actualAmount']):>12s} of "
                f"{format_money(row['budgetAmount']):>12s}  {used_str}"
            )
    return 0


def cmd_ask(args):
    """Ask the assistant a question."""
    with FinanceService() as service:
        user = _resolve_user(service, args.email)
        if not user:
            return 1
        print(service.insights(user["id"], args.prompt)["response"])
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="InvestIQ - personal finance backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  investiq serve                                 Run the HTTP API
  investiq register me@example.com               Create a user
  investiq import me@example.com bank.csv        Import transactions from CSV
  investiq summary me@example.com --month 3      Monthly summary
  investiq trends me@example.com -n 12           Expenses for the last 12 months
  investiq budgets me@example.com                Budget vs actual
  investiq ask me@example.com "budget tips?"     Ask the assistant
"""
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=HOST)
    serve_parser.add_argument("--port", type=int, default=PORT)
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.set_defaults(func=cmd_serve)

    register_parser = subparsers.add_parser("register", help="Create a user account")
    register_parser.add_argument("email")
    register_parser.add_argument("--name", help="Full name")
    register_parser.add_argument("--password", help="Password (prompted if omitted)")
    register_parser.set_defaults(func=cmd_register)

    import_parser = subparsers.add_parser("import", help="Import transactions from file")
    import_parser.add_argument("email", help="Owner of the imported transactions")
    import_parser.add_argument("file", help="CSV or Excel file to import")
    import_parser.set_defaults(func=cmd_import)

    summary_parser = subparsers.add_parser("summary", help="Show monthly summary")
    summary_parser.add_argument("email")
    summary_parser.add_argument("--month", type=int, help="Month 1-12 (default: current)")
    summary_parser.add_argument("--year", type=int, help="Year (default: current)")
    summary_parser.set_defaults(func=cmd_summary)

    trends_parser = subparsers.add_parser("trends", help="Show spending trend")
    trends_parser.add_argument("email")
    trends_parser.add_argument("-n", "--months", type=int, default=DEFAULT_TREND_MONTHS)
    trends_parser.set_defaults(func=cmd_trends)

    budgets_parser = subparsers.add_parser("budgets", help="Show budget vs actual")
    budgets_parser.add_argument("email")
    budgets_parser.set_defaults(func=cmd_budgets)

    ask_parser = subparsers.add_parser("ask", help="Ask the assistant")
    ask_parser.add_argument("email")
    ask_parser.add_argument("prompt")
    ask_parser.set_defaults(func=cmd_ask)

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
