# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/junkshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app junkshop <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask --app junkshop system init
#   Idempotent bootstrap: creates tables and the default business.
# - python -m flask --app junkshop system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business management (MULTI-TENANT):
# - python -m flask --app junkshop businesses list
#   List all businesses with member and transaction counts.
# - python -m flask --app junkshop businesses create --name "Scrappy Junkshop" --owner-email owner@scrappy.com
#   Create a business owned by an existing profile.
#
# Profile bootstrap:
# - python -m flask --app junkshop users create --email cashier@scrappy.com --name "Cashier" --password "Password123" --role employee
#   Create a profile and add it to a business (default business if --business-id is omitted).

import click
from flask.cli import with_appcontext

from . import get_services
from .errors import JunkshopError
from .extensions import db
from .models import Business, BusinessUser, Profile, Transaction
from .permissions import VALID_ROLES
from .services.auth_service import create_profile
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database and the default business.

    Profiles that cannot resolve a business are recovered into the default
    business at sign-in; creating it here keeps that path cheap.
    """
    click.echo("START Initializing junkshop system...")

    db.create_all()
    click.echo("PASS Tables created")

    business = get_services().directory.ensure_default_business()
    click.echo(f"PASS Default business: {business.name} (ID: {business.id})")

    bootstrap_email = get_services().directory.bootstrap_owner_email
    if bootstrap_email:
        click.echo(f"INFO Profiles signing in as {bootstrap_email} become owner of the default business")


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

    click.echo("PASS Database reset complete. Run 'flask --app junkshop system init' to initialize.")


@click.group('businesses')
def businesses_group():
    """Business (tenant) management commands."""


@businesses_group.command('list')
@with_appcontext
def list_businesses():
    """List all businesses."""
    businesses = db.session.query(Business).order_by(Business.name).all()

    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<38} {'Name':<30} {'Active':<8} {'Members':<8} {'Transactions'}")
    click.echo("="*100)

    for business in businesses:
        member_count = db.session.query(BusinessUser).filter_by(business_id=business.id, is_active=True).count()
        tx_count = db.session.query(Transaction).filter_by(business_id=business.id).count()
        active_str = "Yes" if business.is_active else "No"

        click.echo(f"{business.id:<38} {business.name:<30} {active_str:<8} {member_count:<8} {tx_count}")

    click.echo("="*100 + "\n")


@businesses_group.command('create')
@click.option('--name', required=True, help='Business name')
@click.option('--owner-email', required=True, help='Email of an existing profile that becomes owner')
@with_appcontext
def create_business_cli(name, owner_email):
    """Create a business and make an existing profile its owner."""
    owner = db.session.query(Profile).filter_by(email=owner_email.strip().lower()).first()
    if not owner:
        click.echo(f"FAIL No profile with email {owner_email}. Create it with 'users create' first.")
        return

    try:
        business, _ = get_services().directory.create_business(owner, name)
    except JunkshopError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created business: {business.name} (ID: {business.id})")
    click.echo(f"     Owner: {owner.email}")


@click.group('users')
def users_group():
    """Profile bootstrap commands."""


@users_group.command('create')
@click.option('--business-id', help='Business ID (uses the default business if not specified)')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(business_id, email, name, password, role):
    """
    Create a profile and add it to a business.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    directory = get_services().directory

    if business_id:
        business = db.session.get(Business, business_id)
        if not business:
            click.echo(f"FAIL Business ID {business_id} not found")
            return
    else:
        business = directory.ensure_default_business()

    try:
        profile = create_profile(email=email, name=name, password=password)
    except JunkshopError as e:
        click.echo(f"FAIL {e.message}")
        return

    db.session.add(BusinessUser(
        business_id=business.id,
        profile_id=profile.id,
        role=role,
        is_active=True,
        joined_at=utcnow(),
    ))
    profile.current_business_id = business.id
    db.session.commit()

    click.echo(f"PASS Created profile: {profile.email} with role '{role}'")
    click.echo(f"     Business: {business.name} (ID: {business.id})")
    click.echo("SECURITY Password securely hashed with bcrypt")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)
    app.cli.add_command(users_group)
