# Overview: Flask CLI command groups for bootstrap, scheduled notifications, and maintenance.

# backend/repairshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init --email admin@example.com --password "secret1"
#   Idempotent bootstrap: creates tables, seeds the plan catalog and a super admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create-super-admin --email admin@example.com --password "secret1"
#   Create (or reset the password of) a platform operator account.
#
# Plans:
# - python -m flask plans seed
#   Insert the default plan catalog entries that are missing.
#
# Notifications (cron, 21:00 local):
# - python -m flask notify daily-summary
#   Send today's job count and income to every linked owner chat.
#
# Maintenance:
# - python -m flask maintenance normalize-statuses
#   Map legacy job status strings onto the canonical set.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import hash_password, register_user
from .services import maintenance_service, notification_service, plan_service
from repairshop.errors import ServiceError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


def _ensure_super_admin(email: str, password: str) -> None:
    email = email.strip().lower()
    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        existing.password_hash = hash_password(password)
        existing.is_super_admin = True
        existing.shop_id = None
        db.session.commit()
        click.echo(f"PASS Updated super admin: {email}")
        return
    register_user(email=email, password=password, is_super_admin=True, name="Super Admin")
    click.echo(f"PASS Created super admin: {email}")


@system_group.command('init')
@click.option('--email', prompt=True, help='Super admin email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Super admin password')
@with_appcontext
def init_system(email, password):
    """
    Initialize the platform: schema, default plan catalog, super admin.

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing repair shop platform...")

    db.create_all()
    click.echo("PASS Schema ready")

    added = plan_service.seed_default_plans()
    click.echo(f"PASS Seeded {added} subscription plan(s)")

    try:
        _ensure_super_admin(email, password)
    except ServiceError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo("DONE System initialized.")


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
    """User management commands."""


@users_group.command('create-super-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_super_admin_cli(email, password):
    """Create a super admin, or reset the password of an existing account."""
    try:
        _ensure_super_admin(email, password)
    except ServiceError as e:
        click.echo(f"FAIL {e}")


@click.group('plans')
def plans_group():
    """Subscription plan catalog commands."""


@plans_group.command('seed')
@with_appcontext
def seed_plans_cli():
    added = plan_service.seed_default_plans()
    click.echo(f"PASS Seeded {added} subscription plan(s)")


@click.group('notify')
def notify_group():
    """Scheduled notification commands."""


@notify_group.command('daily-summary')
@with_appcontext
def daily_summary_cli():
    """Send today's summary to linked owner chats (schedule at 21:00)."""
    sent = notification_service.send_daily_summaries()
    click.echo(f"Sent {sent} daily summary message(s).")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('normalize-statuses')
@with_appcontext
def normalize_statuses_cli():
    """Map legacy job statuses onto the canonical set and lock checked-out jobs."""
    changed, total = maintenance_service.normalize_job_statuses()
    click.echo(f"Normalized jobs: {changed}/{total}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(plans_group)
    app.cli.add_command(notify_group)
    app.cli.add_command(maintenance_group)
