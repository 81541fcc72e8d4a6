# Overview: Flask CLI command groups for bootstrap, directory setup, and commission inspection.

# backend/vendorpro/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to vendorpro (PowerShell: $env:FLASK_APP="vendorpro").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create any missing tables (safe to re-run).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Directory:
# - python -m flask shops create --name "Main Street" --owner "R. Gupta"
# - python -m flask shops list
# - python -m flask salesmen create --shop-id 1 --name "Asha"
# - python -m flask salesmen list --shop-id 1
#
# Commission rules:
# - python -m flask rules create --type PERCENTAGE_OF_SALES --value 10 --description "10% of sales"
# - python -m flask rules list
# - python -m flask rules assign --salesman-id 1 --rule-id 1
#
# Commissions:
# - python -m flask commissions summary --salesman-id 1
# - python -m flask commissions summary --shop-id 1

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import SalesEngineError
from .models.commissions import COMMISSION_RULE_TYPES
from .services import commission_rule_service, commission_service, directory_service


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap commands."""


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


@click.group('shops')
def shops_group():
    """Shop directory."""


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--owner', 'owner_name', help='Owner name')
@click.option('--address', help='Address')
@with_appcontext
def create_shop_cli(name, owner_name, address):
    try:
        shop = directory_service.create_shop(name, owner_name=owner_name, address=address)
    except SalesEngineError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")


@shops_group.command('list')
@with_appcontext
def list_shops_cli():
    shops = directory_service.list_shops()
    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Name':<30} {'Owner':<20}")
    click.echo("="*60)
    for shop in shops:
        click.echo(f"{shop.id:<5} {shop.name:<30} {shop.owner_name or '-':<20}")
    click.echo("="*60 + "\n")


@click.group('salesmen')
def salesmen_group():
    """Salesman directory."""


@salesmen_group.command('create')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--name', required=True, help='Salesman name')
@click.option('--phone', help='Phone number')
@with_appcontext
def create_salesman_cli(shop_id, name, phone):
    try:
        salesman = directory_service.create_salesman(shop_id, name, phone=phone)
    except SalesEngineError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created salesman: {salesman.name} (ID: {salesman.id}, Shop: {shop_id})")


@salesmen_group.command('list')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive salesmen')
@with_appcontext
def list_salesmen_cli(shop_id, include_inactive):
    salesmen = directory_service.list_salesmen(shop_id, include_inactive=include_inactive)
    if not salesmen:
        click.echo("No salesmen found.")
        return

    for salesman in salesmen:
        rule = commission_rule_service.active_rule_for(salesman.id)
        rule_str = f"{rule.type} {rule.value}" if rule else "no active rule"
        active_str = "Yes" if salesman.is_active else "No"
        click.echo(f"{salesman.id:<5} {salesman.name:<30} {active_str:<5} {rule_str}")


@click.group('rules')
def rules_group():
    """Commission rules."""


@rules_group.command('create')
@click.option('--type', 'rule_type', type=click.Choice(COMMISSION_RULE_TYPES), required=True)
@click.option('--value', required=True, help='Percent, or currency per unit for FIXED_AMOUNT')
@click.option('--description', help='Free-text description')
@click.option('--inactive', is_flag=True, help='Create the rule disabled')
@with_appcontext
def create_rule_cli(rule_type, value, description, inactive):
    try:
        rule = commission_rule_service.create_rule(rule_type, value, description=description, is_active=not inactive)
    except SalesEngineError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created rule {rule.id}: {rule.type} {rule.value}")


@rules_group.command('list')
@with_appcontext
def list_rules_cli():
    rules = commission_rule_service.list_rules()
    if not rules:
        click.echo("No commission rules found.")
        return
    for rule in rules:
        active_str = "Yes" if rule.is_active else "No"
        click.echo(f"{rule.id:<5} {rule.type:<26} {str(rule.value):<12} {active_str:<5} {rule.description or ''}")


@rules_group.command('assign')
@click.option('--salesman-id', type=int, required=True)
@click.option('--rule-id', type=int, required=True)
@with_appcontext
def assign_rule_cli(salesman_id, rule_id):
    try:
        commission_rule_service.assign_rule(salesman_id, rule_id)
    except SalesEngineError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Rule {rule_id} is now active for salesman {salesman_id}")


@click.group('commissions')
def commissions_group():
    """Commission ledger inspection."""


@commissions_group.command('summary')
@click.option('--salesman-id', type=int)
@click.option('--shop-id', type=int)
@with_appcontext
def commission_summary_cli(salesman_id, shop_id):
    try:
        summary = commission_service.summarize(salesman_id=salesman_id, shop_id=shop_id)
    except SalesEngineError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"Approved:  {_money(summary.approved_total_cents)} ({summary.approved_count} sales)")
    click.echo(f"  paid:    {_money(summary.paid_total_cents)}")
    click.echo(f"  unpaid:  {_money(summary.unpaid_total_cents)}")
    click.echo(f"Pending:   {_money(summary.pending_total_cents)} ({summary.pending_count} sales, estimate)")
    click.echo(f"Total:     {_money(summary.total_cents)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(salesmen_group)
    app.cli.add_command(rules_group)
    app.cli.add_command(commissions_group)
