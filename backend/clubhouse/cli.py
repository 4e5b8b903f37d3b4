# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/clubhouse/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create missing tables and the voucher / consumer number sequences (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Members:
# - python -m flask members create --membership-no M-1001 --name "A. Khan"
# - python -m flask members list [--all]
#
# Facilities:
# - python -m flask facilities create --type ROOM --name 101 --rate-member 5000 --rate-guest 8000
# - python -m flask facilities list [--type HALL] [--all]
#
# Maintenance (schedule these, e.g. every few minutes / nightly):
# - python -m flask maintenance cleanup-holds
#   Delete expired or released holds.
# - python -m flask maintenance sync-occupancy
#   Recompute every facility's is_booked flag for today.
#
# Bookings:
# - python -m flask bookings audit [--type ROOM] [--include-cancelled]
#   Check the amount and voucher invariants; exits non-zero on violations.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import facility_service, maintenance_service, member_service
from .services.audit_service import audit_bookings
from .services.document_service import ensure_sequences
from .services.facility_policies import VALID_FACILITY_TYPES
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables that do not exist yet and the document sequences."""
    click.echo("BUILD  Creating missing tables...")
    db.create_all()
    created = ensure_sequences()
    click.echo(f"PASS Database ready ({created} sequences created).")


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
    ensure_sequences()

    click.echo("PASS Database reset complete.")


# =============================================================================
# MEMBER COMMANDS
# =============================================================================

@click.group('members')
def members_group():
    """Member directory commands."""


@members_group.command('create')
@click.option('--membership-no', prompt=True, help='Membership number')
@click.option('--name', prompt=True, help='Member name')
@click.option('--email', default=None, help='Email address')
@click.option('--contact-no', default=None, help='Contact number')
@with_appcontext
def create_member_cli(membership_no, name, email, contact_no):
    """Create a member."""
    try:
        member = member_service.create_member(membership_no, name, email=email, contact_no=contact_no)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created member {member.membership_no} (ID: {member.id})")


@members_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Include inactive members')
@with_appcontext
def list_members_cli(show_all):
    """List members with their booking ledger totals."""
    members = member_service.list_members(include_inactive=show_all)
    if not members:
        click.echo("No members found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Membership':<14} {'Name':<28} {'Bookings':<9} {'Paid':<12} {'Due':<12} {'Active'}")
    click.echo("="*90)
    for m in members:
        active_str = "Yes" if m.is_active else "No"
        click.echo(
            f"{m.id:<5} {m.membership_no:<14} {m.name[:28]:<28} {m.total_bookings:<9} "
            f"{m.booking_amount_paid:<12} {m.booking_amount_due:<12} {active_str}"
        )
    click.echo("="*90 + "\n")


# =============================================================================
# FACILITY COMMANDS
# =============================================================================

@click.group('facilities')
def facilities_group():
    """Facility unit commands."""


@facilities_group.command('create')
@click.option('--type', 'facility_type', type=click.Choice(VALID_FACILITY_TYPES, case_sensitive=False), required=True)
@click.option('--name', required=True, help='Room number or hall / lawn name')
@click.option('--rate-member', type=int, default=0, show_default=True)
@click.option('--rate-guest', type=int, default=0, show_default=True)
@click.option('--rate-forces', type=int, default=None, help='Rooms only')
@click.option('--rate-corporate', type=int, default=None, help='Halls only')
@click.option('--min-guests', type=int, default=None)
@click.option('--capacity', type=int, default=None)
@with_appcontext
def create_facility_cli(facility_type, name, rate_member, rate_guest, rate_forces, rate_corporate, min_guests, capacity):
    """Create a bookable unit."""
    try:
        facility = facility_service.create_facility(
            facility_type,
            name,
            rate_member=rate_member,
            rate_guest=rate_guest,
            rate_forces=rate_forces,
            rate_corporate=rate_corporate,
            min_guests=min_guests,
            capacity=capacity,
        )
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created {facility.facility_type} '{facility.name}' (ID: {facility.id})")


@facilities_group.command('list')
@click.option('--type', 'facility_type', type=click.Choice(VALID_FACILITY_TYPES, case_sensitive=False), default=None)
@click.option('--all', 'show_all', is_flag=True, help='Include inactive units')
@with_appcontext
def list_facilities_cli(facility_type, show_all):
    """List facility units."""
    facilities = facility_service.list_facilities(facility_type, include_inactive=show_all)
    if not facilities:
        click.echo("No facilities found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Type':<12} {'Name':<24} {'Member':<10} {'Guest':<10} {'Booked':<8} {'Active'}")
    click.echo("="*80)
    for f in facilities:
        click.echo(
            f"{f.id:<5} {f.facility_type:<12} {f.name[:24]:<24} {f.rate_member:<10} {f.rate_guest:<10} "
            f"{'Yes' if f.is_booked else 'No':<8} {'Yes' if f.is_active else 'No'}"
        )
    click.echo("="*80 + "\n")


# =============================================================================
# MAINTENANCE COMMANDS
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-holds')
@with_appcontext
def cleanup_holds_cli():
    """Delete holds that expired or were released."""
    deleted = maintenance_service.cleanup_expired_holds()
    click.echo(f"Deleted {deleted} expired holds.")


@maintenance_group.command('sync-occupancy')
@with_appcontext
def sync_occupancy_cli():
    """Recompute occupancy flags from today's bookings."""
    changed = maintenance_service.sync_occupancy_flags()
    click.echo(f"Occupancy updated on {changed} facilities.")


# =============================================================================
# BOOKING COMMANDS
# =============================================================================

@click.group('bookings')
def bookings_group():
    """Booking inspection commands."""


@bookings_group.command('audit')
@click.option('--type', 'facility_type', type=click.Choice(VALID_FACILITY_TYPES, case_sensitive=False), default=None)
@click.option('--include-cancelled', is_flag=True, help='Also audit cancelled bookings')
@with_appcontext
def audit_bookings_cli(facility_type, include_cancelled):
    """Check every booking's amount and voucher invariants."""
    report = audit_bookings(facility_type, include_cancelled=include_cancelled)
    if not report:
        click.echo("PASS All bookings consistent.")
        return

    for booking_id, problems in report.items():
        for problem in problems:
            click.echo(f"FAIL booking {booking_id}: {problem}")
    click.echo(f"\n{len(report)} bookings with violations.")
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(members_group)
    app.cli.add_command(facilities_group)
    app.cli.add_command(maintenance_group)
    app.cli.add_command(bookings_group)
