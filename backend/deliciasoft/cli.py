# Overview: Flask CLI command groups for bootstrap and inspection.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@deliciasoft.local --admin-password "Password123!"]
#   Idempotent bootstrap: tables, permissions, default roles (admin, employee), optional admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Ana" --email ana@deliciasoft.local --password "Password123!" --role employee
#
# Permissions:
# - python -m flask perms list [--role admin]

import click
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import Permission, Role, User
from .services import auth_service, permission_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-name', default='Administrator', help='Name for the admin user')
@click.option('--admin-email', default=None, help='Create this admin user if missing')
@click.option('--admin-password', default=None, help='Password for the admin user')
@with_appcontext
def init_system(admin_name, admin_email, admin_password):
    """
    Initialize DeliciaSoft: tables, permissions, default roles and an optional admin.

    SECURITY: Change default passwords immediately in production!
    """
    click.echo("START Initializing DeliciaSoft...")

    db.create_all()
    click.echo("PASS Tables ensured")

    created = permission_service.seed_permissions()
    click.echo(f"PASS Permissions: {created} created")

    roles = permission_service.seed_default_roles()
    click.echo(f"PASS Roles: {', '.join(sorted(roles))}")

    if admin_email:
        if not admin_password:
            raise click.UsageError("--admin-password is required with --admin-email")
        existing = db.session.query(User).filter_by(email=admin_email.strip().lower()).first()
        if existing:
            click.echo(f"PASS Admin user already exists: {existing.email}")
        else:
            try:
                user = auth_service.create_user(admin_name, admin_email, admin_password, role_id=roles["admin"].id)
            except AppError as e:
                raise click.ClickException(e.message)
            click.echo(f"PASS Created admin user: {user.email}")

    click.echo("DONE System initialized")


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

    click.echo("DONE Database reset. Run `flask system init` to seed roles and permissions.")


@click.group('users')
def users_group():
    """Staff user inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users")
        return
    for user in users:
        role = user.role.name if user.role else "-"
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<40} {role:<12} {status}")


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', 'role_name', default='employee', show_default=True)
@with_appcontext
def create_user_command(name, email, password, role_name):
    role = db.session.query(Role).filter_by(name=role_name).first()
    if role is None:
        raise click.ClickException(f"Role '{role_name}' not found; run `flask system init` first")
    try:
        user = auth_service.create_user(name, email, password, role_id=role.id)
    except AppError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.email} ({role.name})")


@click.group('perms')
def perms_group():
    """Permission inspection."""


@perms_group.command('list')
@click.option('--role', 'role_name', default=None, help='Only permissions granted to this role')
@with_appcontext
def list_permissions(role_name):
    query = db.session.query(Permission).order_by(Permission.category, Permission.code)
    granted = None
    if role_name:
        role = db.session.query(Role).filter_by(name=role_name).first()
        if role is None:
            raise click.ClickException(f"Role '{role_name}' not found")
        granted = permission_service.get_role_permissions(role.id)
    for perm in query.all():
        if granted is not None and perm.code not in granted:
            continue
        click.echo(f"{perm.category:<12} {perm.code:<22} {perm.name}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
