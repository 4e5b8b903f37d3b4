"""initial booking schema

Revision ID: cb0001
Revises:
Create Date: 2026-03-02 00:00:00.000000

Creates the club booking schema:
- members: booking ledger totals and club account per member
- facilities: bookable units (rooms, halls, lawns, photoshoot studio)
- facility_holds / reservations / out_of_order_periods: schedule blocks
- bookings / booking_units / booking_slots: bookings, their units, and the
  occupied (unit, day, slot) cells guarded by a UNIQUE constraint
- payment_vouchers / document_sequences: voucher trail and numbering
- booking_ledger_events: append-only audit of booking mutations
- cancellation_requests: member cancellation workflow
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'cb0001'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # members
    # ============================================================================
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('membership_no', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('contact_no', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('booking_amount_paid', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('booking_amount_due', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('booking_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('dr_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_bookings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_booking_date', sa.Date(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name='pk_members'),
        sa.UniqueConstraint('membership_no', name='uq_members_membership_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('members', schema=None) as batch_op:
        batch_op.create_index('ix_members_active', ['is_active'], unique=False)

    # ============================================================================
    # facilities
    # ============================================================================
    op.create_table(
        'facilities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('facility_type', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('is_booked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('min_guests', sa.Integer(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('rate_member', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rate_guest', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rate_forces', sa.Integer(), nullable=True),
        sa.Column('rate_corporate', sa.Integer(), nullable=True),
        _created_at(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id', name='pk_facilities'),
        sa.UniqueConstraint('facility_type', 'name', name='uq_facilities_type_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('facilities', schema=None) as batch_op:
        batch_op.create_index('ix_facilities_facility_type', ['facility_type'], unique=False)
        batch_op.create_index('ix_facilities_type_active', ['facility_type', 'is_active'], unique=False)

    # ============================================================================
    # schedule blocks
    # ============================================================================
    op.create_table(
        'facility_holds',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('facility_id', sa.Integer(), nullable=False),
        sa.Column('hold_by', sa.String(length=32), nullable=False),
        sa.Column('from_date', sa.Date(), nullable=True),
        sa.Column('to_date', sa.Date(), nullable=True),
        sa.Column('time_slot', sa.String(length=16), nullable=True),
        sa.Column('on_hold', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('hold_expiry', sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id'],
                                name='fk_facility_holds_facility_id_facilities'),
        sa.PrimaryKeyConstraint('id', name='pk_facility_holds'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('facility_holds', schema=None) as batch_op:
        batch_op.create_index('ix_facility_holds_facility_id', ['facility_id'], unique=False)
        batch_op.create_index('ix_facility_holds_hold_by', ['hold_by'], unique=False)
        batch_op.create_index('ix_facility_holds_facility_expiry', ['facility_id', 'hold_expiry'], unique=False)

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('facility_id', sa.Integer(), nullable=False),
        sa.Column('reserved_from', sa.Date(), nullable=False),
        sa.Column('reserved_to', sa.Date(), nullable=False),
        sa.Column('time_slot', sa.String(length=16), nullable=True),
        sa.Column('reserved_by', sa.String(length=64), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id'],
                                name='fk_reservations_facility_id_facilities'),
        sa.PrimaryKeyConstraint('id', name='pk_reservations'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('reservations', schema=None) as batch_op:
        batch_op.create_index('ix_reservations_facility_id', ['facility_id'], unique=False)
        batch_op.create_index('ix_reservations_facility_range',
                              ['facility_id', 'reserved_from', 'reserved_to'], unique=False)

    op.create_table(
        'out_of_order_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('facility_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id'],
                                name='fk_out_of_order_periods_facility_id_facilities'),
        sa.PrimaryKeyConstraint('id', name='pk_out_of_order_periods'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('out_of_order_periods', schema=None) as batch_op:
        batch_op.create_index('ix_out_of_order_periods_facility_id', ['facility_id'], unique=False)
        batch_op.create_index('ix_out_of_order_facility_range',
                              ['facility_id', 'start_date', 'end_date'], unique=False)

    # ============================================================================
    # bookings
    # ============================================================================
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('facility_type', sa.String(length=16), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('event_time', sa.String(length=16), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=True),
        sa.Column('booking_details', sa.JSON(), nullable=True),
        sa.Column('number_of_adults', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('number_of_children', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('number_of_guests', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pricing_type', sa.String(length=16), nullable=False, server_default='member'),
        sa.Column('total_price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pending_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='UNPAID'),
        sa.Column('paid_by', sa.String(length=8), nullable=False, server_default='MEMBER'),
        sa.Column('guest_name', sa.String(length=255), nullable=True),
        sa.Column('guest_contact', sa.String(length=64), nullable=True),
        sa.Column('guest_cnic', sa.String(length=32), nullable=True),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('refund_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('refund_returned', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('updated_by', sa.String(length=64), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], name='fk_bookings_member_id_members'),
        sa.PrimaryKeyConstraint('id', name='pk_bookings'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.create_index('ix_bookings_facility_type', ['facility_type'], unique=False)
        batch_op.create_index('ix_bookings_member_id', ['member_id'], unique=False)
        batch_op.create_index('ix_bookings_payment_status', ['payment_status'], unique=False)
        batch_op.create_index('ix_bookings_created_at', ['created_at'], unique=False)
        batch_op.create_index('ix_bookings_type_start', ['facility_type', 'start_date'], unique=False)
        batch_op.create_index('ix_bookings_member_created', ['member_id', 'created_at'], unique=False)
        batch_op.create_index('ix_bookings_type_cancelled', ['facility_type', 'is_cancelled'], unique=False)

    op.create_table(
        'booking_units',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('facility_id', sa.Integer(), nullable=False),
        sa.Column('price_at_booking', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_booking_units_booking_id_bookings'),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id'], name='fk_booking_units_facility_id_facilities'),
        sa.PrimaryKeyConstraint('id', name='pk_booking_units'),
        sa.UniqueConstraint('booking_id', 'facility_id', name='uq_booking_units_booking_facility'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('booking_units', schema=None) as batch_op:
        batch_op.create_index('ix_booking_units_booking_id', ['booking_id'], unique=False)
        batch_op.create_index('ix_booking_units_facility_id', ['facility_id'], unique=False)

    # One row per occupied (unit, day, slot); the UNIQUE constraint rejects
    # the losing side of two concurrent bookings of the same cell
    op.create_table(
        'booking_slots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('facility_id', sa.Integer(), nullable=False),
        sa.Column('slot_date', sa.Date(), nullable=False),
        sa.Column('time_slot', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_booking_slots_booking_id_bookings'),
        sa.ForeignKeyConstraint(['facility_id'], ['facilities.id'], name='fk_booking_slots_facility_id_facilities'),
        sa.PrimaryKeyConstraint('id', name='pk_booking_slots'),
        sa.UniqueConstraint('facility_id', 'slot_date', 'time_slot', name='uq_booking_slots_facility_date_slot'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('booking_slots', schema=None) as batch_op:
        batch_op.create_index('ix_booking_slots_booking_id', ['booking_id'], unique=False)
        batch_op.create_index('ix_booking_slots_facility_id', ['facility_id'], unique=False)

    op.create_table(
        'cancellation_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('requested_by', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('admin_remarks', sa.Text(), nullable=True),
        sa.Column('resolved_by', sa.String(length=64), nullable=True),
        _created_at(),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'],
                                name='fk_cancellation_requests_booking_id_bookings'),
        sa.PrimaryKeyConstraint('id', name='pk_cancellation_requests'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cancellation_requests', schema=None) as batch_op:
        batch_op.create_index('ix_cancellation_requests_booking_id', ['booking_id'], unique=False)
        batch_op.create_index('ix_cancellation_requests_status', ['status'], unique=False)
        batch_op.create_index('ix_cancellation_requests_booking_status', ['booking_id', 'status'], unique=False)

    # ============================================================================
    # vouchers, numbering, ledger events
    # ============================================================================
    op.create_table(
        'payment_vouchers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('voucher_no', sa.String(length=32), nullable=False),
        sa.Column('consumer_number', sa.String(length=32), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('booking_type', sa.String(length=16), nullable=False),
        sa.Column('membership_no', sa.String(length=32), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_mode', sa.String(length=8), nullable=False, server_default='CASH'),
        sa.Column('voucher_type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('issued_by', sa.String(length=64), nullable=True),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('card_number', sa.String(length=32), nullable=True),
        sa.Column('check_number', sa.String(length=32), nullable=True),
        sa.Column('bank_name', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_payment_vouchers_booking_id_bookings'),
        sa.PrimaryKeyConstraint('id', name='pk_payment_vouchers'),
        sa.UniqueConstraint('voucher_no', name='uq_payment_vouchers_voucher_no'),
        sa.UniqueConstraint('consumer_number', name='uq_payment_vouchers_consumer_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payment_vouchers', schema=None) as batch_op:
        batch_op.create_index('ix_payment_vouchers_membership_no', ['membership_no'], unique=False)
        batch_op.create_index('ix_payment_vouchers_booking', ['booking_type', 'booking_id'], unique=False)
        batch_op.create_index('ix_payment_vouchers_status', ['status'], unique=False)

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id', name='pk_document_sequences'),
        sa.UniqueConstraint('document_type', name='uq_document_sequences_type'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'booking_ledger_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=True),
        sa.Column('voucher_id', sa.Integer(), nullable=True),
        sa.Column('paid_delta', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('owed_delta', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('account_delta', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('actor', sa.String(length=64), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'],
                                name='fk_booking_ledger_events_booking_id_bookings'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'],
                                name='fk_booking_ledger_events_member_id_members'),
        sa.ForeignKeyConstraint(['voucher_id'], ['payment_vouchers.id'],
                                name='fk_booking_ledger_events_voucher_id_payment_vouchers'),
        sa.PrimaryKeyConstraint('id', name='pk_booking_ledger_events'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('booking_ledger_events', schema=None) as batch_op:
        batch_op.create_index('ix_booking_ledger_events_event_type', ['event_type'], unique=False)
        batch_op.create_index('ix_booking_ledger_events_member_id', ['member_id'], unique=False)
        batch_op.create_index('ix_booking_ledger_events_booking', ['booking_id', 'occurred_at'], unique=False)

    op.bulk_insert(
        sa.table(
            'document_sequences',
            sa.column('document_type', sa.String),
            sa.column('next_number', sa.Integer),
        ),
        [
            {'document_type': 'PAYMENT_VOUCHER', 'next_number': 1},
            {'document_type': 'CONSUMER_NUMBER', 'next_number': 1},
        ],
    )


def downgrade():
    op.drop_table('booking_ledger_events')
    op.drop_table('document_sequences')
    op.drop_table('payment_vouchers')
    op.drop_table('cancellation_requests')
    op.drop_table('booking_slots')
    op.drop_table('booking_units')
    op.drop_table('bookings')
    op.drop_table('out_of_order_periods')
    op.drop_table('reservations')
    op.drop_table('facility_holds')
    op.drop_table('facilities')
    op.drop_table('members')
