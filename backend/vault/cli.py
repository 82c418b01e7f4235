# Overview: Flask CLI command groups for bootstrap, directory administration, and maintenance.

# backend/vault/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@example.com --admin-name "Admin"]
#   Create tables (dev) and optionally the first admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Encryption keys:
# - python -m flask keys generate
#   Print a new key for VAULT_ENCRYPTION_KEYS.
#
# Users:
# - python -m flask users list
# - python -m flask users create --email bob@example.com --name "Bob" --access-level manager [--group-id G]
# - python -m flask users set-level --as admin@example.com bob@example.com viewer
#   Goes through the same checks as the API (admins only, never on oneself).
#
# Directory:
# - python -m flask groups create --name "Bali Resorts"
# - python -m flask sites list
# - python -m flask sites create --name "Grand Archipelago Bali" [--group-id G]
# - python -m flask grants add bob@example.com SITE_ID
# - python -m flask grants remove bob@example.com SITE_ID
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
# - python -m flask maintenance events [--type PERMISSION_DENIED] [--limit 50]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import ACCESS_LEVELS, User
from .outcomes import NotRegistered, PermissionDenied
from .services import audit_service, directory_service, identity_service, user_service
from .services.directory_service import DirectoryError
from .services.secret_codec import generate_key
from .services.user_service import UserDraft
from .time_utils import to_utc_z


def _describe_failure(outcome) -> str:
    for attr in ("message", "reason"):
        value = getattr(outcome, attr, None)
        if value:
            return value
    return type(outcome).__name__


def _resolve_or_fail(email: str):
    user = identity_service.resolve(email)
    if isinstance(user, NotRegistered):
        raise click.ClickException(f"No registered user with email {email}")
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=None, help='Create this admin user if missing')
@click.option('--admin-name', default='Administrator', help='Name of the admin user')
@with_appcontext
def init_system(admin_email, admin_name):
    """
    Create all tables (idempotent) and optionally the first admin.

    Production deployments should run 'flask db upgrade' instead of relying
    on create_all.
    """
    click.echo("START Initializing vault...")
    db.create_all()
    click.echo("PASS Tables ready")

    if admin_email:
        existing = identity_service.resolve(admin_email)
        if isinstance(existing, NotRegistered):
            result = user_service.create_user(
                UserDraft(email=admin_email, name=admin_name, position="Administrator", access_level="admin")
            )
            if not isinstance(result, User):
                raise click.ClickException(_describe_failure(result))
            click.echo(f"PASS Created admin user: {result.email} (ID: {result.id})")
        else:
            click.echo(f"PASS Using existing user: {existing.email} ({existing.access_level})")

    click.echo("DONE Vault initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including every stored credential and its history!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('keys')
def keys_group():
    """Encryption key commands."""


@keys_group.command('generate')
def generate_key_cli():
    """
    Print a new encryption key.

    To rotate: put the new key FIRST in VAULT_ENCRYPTION_KEYS and keep the
    old keys after it; old rows stay readable.
    """
    click.echo(generate_key())


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their access level."""
    users = user_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<38} {'Email':<32} {'Name':<20} {'Level'}")
    click.echo("="*100)
    for user in users:
        click.echo(f"{user.id:<38} {user.email:<32} {user.name:<20} {user.access_level}")
    click.echo("="*100 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address (as verified by the identity provider)')
@click.option('--name', prompt=True, help='Display name')
@click.option('--position', default='', help='Job title')
@click.option('--group-id', default=None, help='Group ID')
@click.option('--access-level', type=click.Choice(ACCESS_LEVELS), default='viewer', help='Access level')
@with_appcontext
def create_user_cli(email, name, position, group_id, access_level):
    """Register a user."""
    result = user_service.create_user(
        UserDraft(email=email, name=name, position=position, group_id=group_id, access_level=access_level)
    )
    if not isinstance(result, User):
        raise click.ClickException(_describe_failure(result))
    click.echo(f"PASS Created user: {result.email} ({result.access_level}) ID: {result.id}")


@users_group.command('set-level')
@click.option('--as', 'actor_email', required=True, help='Email of the admin performing the change')
@click.argument('email')
@click.argument('access_level', type=click.Choice(ACCESS_LEVELS))
@with_appcontext
def set_level_cli(actor_email, email, access_level):
    """Change a user's access level on behalf of an admin."""
    actor = _resolve_or_fail(actor_email)
    target = _resolve_or_fail(email)

    result = user_service.update_user_access_level(actor, target.id, access_level)
    if isinstance(result, PermissionDenied):
        audit_service.log_security_event(
            user_id=actor.id,
            event_type="PERMISSION_DENIED",
            success=False,
            resource="cli:users set-level",
            action=result.operation,
            reason=result.reason,
        )
    if not isinstance(result, User):
        raise click.ClickException(_describe_failure(result))

    audit_service.log_security_event(
        user_id=actor.id,
        event_type="ACCESS_LEVEL_CHANGED",
        success=True,
        resource="cli:users set-level",
        action=f"{result.id} -> {access_level}",
    )
    click.echo(f"PASS {result.email} is now {result.access_level}")


@click.group('groups')
def groups_group():
    """Group management."""


@groups_group.command('create')
@click.option('--name', required=True, help='Group name')
@with_appcontext
def create_group_cli(name):
    try:
        group = directory_service.create_group(name)
    except DirectoryError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Created group: {group.name} (ID: {group.id})")


@click.group('sites')
def sites_group():
    """Site management."""


@sites_group.command('list')
@with_appcontext
def list_sites_cli():
    sites = directory_service.list_sites()
    if not sites:
        click.echo("No sites found.")
        return
    for site in sites:
        click.echo(f"{site.id:<38} {site.name:<40} {site.group_id or '-'}")


@sites_group.command('create')
@click.option('--name', required=True, help='Site name')
@click.option('--group-id', default=None, help='Group ID')
@with_appcontext
def create_site_cli(name, group_id):
    try:
        site = directory_service.create_site(name, group_id)
    except DirectoryError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Created site: {site.name} (ID: {site.id})")


@click.group('grants')
def grants_group():
    """Direct site grants."""


@grants_group.command('add')
@click.argument('email')
@click.argument('site_id')
@with_appcontext
def add_grant_cli(email, site_id):
    user = _resolve_or_fail(email)
    try:
        directory_service.grant_site(user.id, site_id)
    except DirectoryError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS {user.email} can now see site {site_id}")


@grants_group.command('remove')
@click.argument('email')
@click.argument('site_id')
@with_appcontext
def remove_grant_cli(email, site_id):
    user = _resolve_or_fail(email)
    if directory_service.revoke_site(user.id, site_id):
        click.echo(f"PASS Removed grant of site {site_id} from {user.email}")
    else:
        click.echo(f"WARN {user.email} had no direct grant for site {site_id}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance and cleanup commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', default=90, show_default=True, type=int, help='Days of events to keep')
@with_appcontext
def cleanup_security_events_cli(retention_days):
    deleted = audit_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} security events older than {retention_days} days")


@maintenance_group.command('events')
@click.option('--type', 'event_type', default=None, help='Filter by event type')
@click.option('--limit', default=50, show_default=True, type=int)
@with_appcontext
def list_events_cli(event_type, limit):
    events = audit_service.list_security_events(event_type=event_type, limit=limit)
    if not events:
        click.echo("No security events found.")
        return
    for event in events:
        status = "OK  " if event.success else "FAIL"
        click.echo(
            f"{to_utc_z(event.occurred_at)} {status} {event.event_type:<22} "
            f"user={event.user_id or '-'} {event.action or ''} {event.reason or ''}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(keys_group)
    app.cli.add_command(users_group)
    app.cli.add_command(groups_group)
    app.cli.add_command(sites_group)
    app.cli.add_command(grants_group)
    app.cli.add_command(maintenance_group)
