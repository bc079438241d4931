# Overview: Flask CLI command groups for bootstrap, demo data and user management.

# backend/quotecraft/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to quotecraft (PowerShell: $env:FLASK_APP="quotecraft").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Load demo clients, projects, quotations, invoices and a default user
#   into an empty database.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users.
# - python -m flask users create --name admin --email admin@quotecraft.local --password "secret"
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import directory_service, lifecycle_service
from .services.record_store import record_store
from .validation import ValidationError


DEMO_ITEMS = [
    {"id": "1", "description": "Hikvision 8-Channel DVR", "brand_name": "Hikvision", "quantity": 1, "unit_price": 150},
    {"id": "2", "description": "2MP Dome Camera", "brand_name": "Hikvision", "quantity": 4, "unit_price": 55},
    {"id": "3", "description": "1TB Surveillance Hard Drive", "brand_name": "Seagate", "quantity": 1, "unit_price": 60},
    {"id": "4", "description": "100m CAT6 Cable", "brand_name": "Generic", "quantity": 1, "unit_price": 40},
    {"id": "5", "description": "Installation & Configuration Labor", "brand_name": "QuoteCraft", "quantity": 8, "unit_price": 75},
]

DEMO_CLIENTS = [
    {"name": "Innovate Corp", "email": "contact@innovatecorp.com", "phone": "+1-202-555-0149", "address": "123 Innovation Drive, Tech City"},
    {"name": "Quantum Solutions", "email": "hello@quantumsolutions.dev", "phone": "+1-202-555-0128", "address": "456 Quantum Way, Silicon Valley"},
    {"name": "Apex Industries", "email": "info@apexindustries.net", "phone": "+1-202-555-0182", "address": "789 Apex Lane, Industrial Park"},
]

# (client index, project name)
DEMO_PROJECTS = [
    (0, "Office Security Upgrade"),
    (1, "New HQ Network Setup"),
    (2, "Warehouse Surveillance System"),
    (0, "Retail Store Audio System"),
]

# (client index, project name, date, status)
DEMO_QUOTATIONS = [
    (0, "Office Security Upgrade", "2024-07-15", "Approved"),
    (1, "New HQ Network Setup", "2024-07-18", "Sent"),
    (2, "Warehouse Surveillance System", "2024-07-20", "Draft"),
    (0, "Retail Store Audio System", "2024-07-22", "Rejected"),
    (1, "Phase 2 Network Expansion", "2024-07-25", "Sent"),
]

# (client index, project name, date, status)
DEMO_INVOICES = [
    (2, "Legacy System Maintenance", "2024-06-10", "Paid"),
    (1, "Fire Alarm Inspection", "2024-05-01", "Overdue"),
    (0, "Q2 Support Contract", "2024-07-01", "Paid"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables ready")


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
    click.echo("PASS Database reset")


@system_group.command('seed')
@with_appcontext
def seed_demo():
    """Load demo data. Refuses to run when clients already exist."""
    db.create_all()
    if record_store.list("clients"):
        click.echo("SKIP Clients already exist; demo data not loaded")
        return

    clients = [directory_service.create_client(dict(c)) for c in DEMO_CLIENTS]
    click.echo(f"PASS Created {len(clients)} clients")

    for index, name in DEMO_PROJECTS:
        directory_service.create_project({"name": name, "client_id": clients[index]["id"]})
    click.echo(f"PASS Created {len(DEMO_PROJECTS)} projects")

    quotations = []
    for index, project, date, status in DEMO_QUOTATIONS:
        quotations.append(lifecycle_service.create_quotation(
            client_id=clients[index]["id"],
            items=DEMO_ITEMS,
            project_name=project,
            date=date,
            status=status,
        ))
    click.echo(f"PASS Created {len(quotations)} quotations")

    converted = lifecycle_service.convert_to_invoice(quotations[0])
    lifecycle_service.set_invoice_status(converted["id"], "Sent")
    for index, project, date, status in DEMO_INVOICES:
        lifecycle_service.create_invoice(
            client_id=clients[index]["id"],
            items=DEMO_ITEMS,
            project_name=project,
            date=date,
            status=status,
        )
    click.echo(f"PASS Created {len(DEMO_INVOICES) + 1} invoices")

    if not directory_service.list_users():
        directory_service.create_user({
            "name": "user",
            "email": "user@example.com",
            "password": "password",
            "requires_password_change": True,
        })
        click.echo("PASS Created default user user@example.com (password change required)")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = directory_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<20} {'Name':<20} {'Email':<30} {'Must change'}")
    click.echo("="*80)

    for user in users:
        must_change = "Yes" if user.get("requires_password_change") else "No"
        click.echo(f"{user['id']:<20} {user.get('name') or '-':<20} {user.get('email') or '-':<30} {must_change}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--require-change', is_flag=True, help='Force a password change on first login')
@with_appcontext
def create_user_cmd(name, email, password, require_change):
    """Create a user."""
    try:
        user = directory_service.create_user({
            "name": name,
            "email": email,
            "password": password,
            "requires_password_change": require_change,
        })
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user['name']} (ID: {user['id']})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
