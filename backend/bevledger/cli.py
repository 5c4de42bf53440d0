# Overview: Flask CLI command groups for bootstrap and stock inspection.

# backend/bevledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock inspection:
# - python -m flask stock balance 12 --as-of 2024-02-01
#   Quantity on hand of item 12 (omit --as-of for the current balance).
# - python -m flask stock summary --family material
#   Every item of a family with its balance and category totals.
# - python -m flask stock check-openings --family product
#   Compare every opening stock with the balance its earlier history implies.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models.stock import FAMILIES
from .services import stock_service
from .validation import ValidationError, NotFoundError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('stock')
def stock_group():
    """Stock balance inspection."""


@stock_group.command('balance')
@click.argument('item_id', type=int)
@click.option('--as-of', 'as_of', default=None, help='Business date YYYY-MM-DD')
@with_appcontext
def balance(item_id, as_of):
    """Show the quantity on hand for ITEM_ID."""
    try:
        summary = stock_service.get_balance_summary(item_id, as_of=as_of)
    except (ValidationError, NotFoundError) as exc:
        raise click.ClickException(str(exc))

    when = summary["as_of"] or "now"
    click.echo(f"{summary['name']} ({summary['family']}) as of {when}: {summary['quantity_on_hand']}")
    baseline = summary["baseline"]
    if baseline:
        click.echo(f"  baseline: {baseline['quantity']} on {baseline['date']} ({summary['opening_stock_match']})")
    else:
        click.echo("  baseline: none")


@stock_group.command('summary')
@click.option('--family', type=click.Choice(FAMILIES), required=True)
@click.option('--as-of', 'as_of', default=None, help='Business date YYYY-MM-DD')
@with_appcontext
def summary(family, as_of):
    """List every item of a family with its balance."""
    try:
        report = stock_service.stock_summary(family=family, as_of=as_of)
    except ValidationError as exc:
        raise click.ClickException(str(exc))

    if not report["items"]:
        click.echo(f"No {family} items found.")
        return

    click.echo(f"\n{'ID':<6} {'Name':<30} {'Category':<20} {'On hand':>10}")
    click.echo("-" * 70)
    for row in report["items"]:
        click.echo(
            f"{row['id']:<6} {row['name'][:30]:<30} {row['category_name'][:20]:<20} "
            f"{row['quantity_on_hand']:>10}"
        )
    click.echo("-" * 70)
    for bucket in report["category_totals"]:
        click.echo(f"{bucket['category_name']}: {bucket['quantity_on_hand']} ({bucket['item_count']} items)")
    click.echo(f"Total: {report['total_quantity']}")


@stock_group.command('check-openings')
@click.option('--family', type=click.Choice(FAMILIES), required=True)
@with_appcontext
def check_openings(family):
    """Report opening stocks that disagree with their earlier history."""
    mismatches = 0
    for item in stock_service.list_items(family=family):
        for row in stock_service.list_opening_stocks(item.id):
            check = stock_service.check_opening_stock(row.id)
            if check["status"] == "mismatch":
                mismatches += 1
                click.echo(
                    f"FAIL {item.name} on {check['date']}: recorded {check['recorded']}, "
                    f"calculated {check['calculated']} (difference {check['difference']})"
                )
    if mismatches:
        click.echo(f"{mismatches} mismatched opening stock(s).")
    else:
        click.echo("PASS All opening stocks match their history.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
