# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shelter/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates the four roles and a default admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username staff1 --email staff1@shelter.local --password "Password123!" --role Staff
#   Create a user (prompts if options are omitted).
#
# Animals:
# - python -m flask animals add --name "Bantay" --species Dog --breed Aspin
#   Register an Available animal so adoption requests can be filed for it.
#
# Billing inspection:
# - python -m flask billing balance 12
#   Show total, amount paid and balance for an invoice.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Animal, AnimalStatus, Invoice, RoleName, User
from .services.auth_service import (
    create_default_roles,
    create_user,
    PasswordValidationError,
    UserCreationError,
)
from .services import billing_service
from .validation import ShelterError, money_str


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the shelter backend: roles and a default admin.

    Creates:
    - Roles: Admin, Staff, Veterinarian, Adopter
    - User: admin/admin@shelter.local with password "Password123!"

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing shelter system...")

    click.echo("\nLIST Creating roles...")
    roles = create_default_roles()
    click.echo(f"PASS Roles ready: {', '.join(r.name for r in roles)}")

    click.echo("\nUSERS Creating default admin...")
    if db.session.query(User).filter_by(username="admin").first():
        click.echo("SKIP User 'admin' already exists")
    else:
        # Default password meets the strength requirements
        create_user("admin", "admin@shelter.local", "Password123!", RoleName.ADMIN)
        click.echo("PASS Created user: admin (admin@shelter.local) with role 'Admin'")

    click.echo("\nDONE System initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(RoleName.ALL)), prompt=True, help='Role')
@click.option('--first-name', default=None, help='First name')
@click.option('--last-name', default=None, help='Last name')
@with_appcontext
def create_user_cli(username, email, password, role, first_name, last_name):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            role_name=role,
            first_name=first_name,
            last_name=last_name,
        )
        click.echo(f"PASS Created user: {username} ({email}) with role '{role}' (ID: {user.id})")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except UserCreationError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@click.option('--role', type=click.Choice(list(RoleName.ALL)), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()
    if role:
        users = [u for u in users if u.role_name == role]

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {user.role_name or 'none'}")

    click.echo("="*90 + "\n")


@click.group('animals')
def animals_group():
    """Animal registration commands."""


@animals_group.command('add')
@click.option('--name', required=True, help='Animal name')
@click.option('--species', required=True, help='Species (Dog, Cat, ...)')
@click.option('--breed', default=None, help='Breed')
@click.option('--status', type=click.Choice(list(AnimalStatus.ALL)), default=AnimalStatus.AVAILABLE, help='Initial status')
@with_appcontext
def add_animal(name, species, breed, status):
    """Register an animal."""
    animal = Animal(name=name, species=species, breed=breed, status=status)
    db.session.add(animal)
    db.session.commit()
    click.echo(f"PASS Added animal: {animal.name} ({animal.species}) ID: {animal.id}, status '{animal.status}'")


@click.group('billing')
def billing_group():
    """Billing ledger inspection commands."""


@billing_group.command('balance')
@click.argument('invoice_id', type=int)
@with_appcontext
def invoice_balance(invoice_id):
    """Show total, amount paid and balance for an invoice."""
    try:
        balance = billing_service.compute_balance(invoice_id)
    except ShelterError as e:
        click.echo(f"FAIL {e.message}")
        return

    invoice = db.session.get(Invoice, invoice_id)
    click.echo(f"Invoice {invoice.id} ({invoice.transaction_type}) status: {invoice.status}")
    click.echo(f"  Total:       {money_str(invoice.total_amount)}")
    click.echo(f"  Amount paid: {money_str(billing_service.get_amount_paid(invoice_id))}")
    click.echo(f"  Balance:     {money_str(balance)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(animals_group)
    app.cli.add_command(billing_group)
