# Overview: Flask CLI command groups for bootstrap, account administration, catalog seeding and the email outbox.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to storefront (PowerShell: $env:FLASK_APP="storefront").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` once migrations exist).
#
# Users:
# - python -m flask users create-admin --email admin@shop.local --name "Shop Admin" --password "admin123"
# - python -m flask users deactivate --email someone@example.com
# - python -m flask users activate --email someone@example.com
# - python -m flask users revoke-sessions --email someone@example.com
#
# Catalog:
# - python -m flask catalog seed
#   Idempotently load the sample catalog (existing SKUs are skipped).
#
# Email outbox:
# - python -m flask email deliver [--batch-size 50] [--loop --interval 10]
# - python -m flask email dead-letters [--requeue]
#
# Maintenance:
# - python -m flask maintenance purge-rate-limits

import time

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ApiError
from .extensions import db
from .models import Product
from .seed_data import SAMPLE_PRODUCTS
from .services import auth_service, outbox_service, products_service, rate_limit_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('users')
def users_group():
    """Account administration."""


@users_group.command('create-admin')
@click.option('--email', prompt=True)
@click.option('--name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_admin(email, name, password):
    """Create an administrator account."""
    try:
        user = auth_service.create_admin(name=name, email=email, password=password)
    except ApiError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")


def _set_active(email: str, active: bool) -> None:
    try:
        user = auth_service.require_user_by_email(email)
    except ApiError as e:
        raise click.ClickException(e.message)
    auth_service.set_active(user, active)
    state = "activated" if active else "deactivated"
    click.echo(f"PASS User {user.email} {state}")


@users_group.command('deactivate')
@click.option('--email', required=True)
@with_appcontext
def deactivate_user(email):
    """Deactivate an account (soft delete)."""
    _set_active(email, False)


@users_group.command('activate')
@click.option('--email', required=True)
@with_appcontext
def activate_user(email):
    """Reactivate a deactivated account."""
    _set_active(email, True)


@users_group.command('revoke-sessions')
@click.option('--email', required=True)
@with_appcontext
def revoke_sessions(email):
    """Invalidate every outstanding token for an account."""
    try:
        user = auth_service.require_user_by_email(email)
    except ApiError as e:
        raise click.ClickException(e.message)
    version = auth_service.revoke_all_sessions(user)
    click.echo(f"PASS Sessions revoked for {user.email} (token version {version})")


@click.group('catalog')
def catalog_group():
    """Catalog data commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Load the sample catalog; products whose SKU already exists are skipped."""
    created = 0
    for entry in SAMPLE_PRODUCTS:
        data = dict(entry)
        images = data.pop("images", [])
        tags = data.pop("tags", [])
        if db.session.query(Product.id).filter_by(sku=data["sku"]).first():
            click.echo(f"WARN  {data['sku']} already exists, skipping...")
            continue
        product = products_service.create_product(patch=data, images=images, tags=tags)
        created += 1
        click.echo(f"PASS Created {product.sku}: {product.name}")
    click.echo(f"DONE {created} product(s) created")


@click.group('email')
def email_group():
    """Email outbox worker and inspection."""


@email_group.command('deliver')
@click.option('--batch-size', default=50, show_default=True, type=int)
@click.option('--loop', is_flag=True, help='Keep polling instead of exiting after one batch.')
@click.option('--interval', default=10, show_default=True, type=int, help='Seconds between polls.')
@with_appcontext
def deliver(batch_size, loop, interval):
    """Deliver due outbox messages."""
    while True:
        summary = outbox_service.deliver_pending(batch_size=batch_size)
        click.echo(f"sent={summary['sent']} failed={summary['failed']} dead={summary['dead']}")
        if not loop:
            break
        time.sleep(interval)


@email_group.command('dead-letters')
@click.option('--requeue', is_flag=True, help='Move every dead message back to PENDING.')
@with_appcontext
def dead_letters(requeue):
    """List (or requeue) messages that exhausted their attempts."""
    if requeue:
        count = outbox_service.requeue_dead_letters()
        click.echo(f"PASS Requeued {count} message(s)")
        return
    messages = outbox_service.list_dead_letters()
    if not messages:
        click.echo("No dead letters")
        return
    for m in messages:
        click.echo(f"{m.id}\t{m.kind}\t{m.recipient}\tattempts={m.attempts}\t{m.last_error or ''}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-rate-limits')
@with_appcontext
def purge_rate_limits():
    """Delete rate-limit hits older than the longest configured window."""
    window = max(
        int(current_app.config["AUTH_RATE_LIMIT_WINDOW_SECONDS"]),
        int(current_app.config["CONTACT_RATE_LIMIT_WINDOW_SECONDS"]),
    )
    removed = rate_limit_service.purge_expired(window)
    click.echo(f"PASS Removed {removed} expired rate-limit hit(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(email_group)
    app.cli.add_command(maintenance_group)
