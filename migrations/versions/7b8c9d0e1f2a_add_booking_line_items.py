"""add booking line items and totals

Existing bookings each get one line item priced from the catalog at
migration time.

Revision ID: 7b8c9d0e1f2a
Revises: 4f1a2b3c5d6e
Create Date: 2026-09-16 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7b8c9d0e1f2a'
down_revision = '4f1a2b3c5d6e'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.add_column(sa.Column('total_price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'))
        batch_op.add_column(sa.Column('total_duration', sa.Integer(), nullable=False, server_default='0'))

    op.create_table(
        'booking_services',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('price_at_booking', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('duration_at_booking', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('booking_services', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_booking_services_booking_id'), ['booking_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_booking_services_service_id'), ['service_id'], unique=False)

    # backfill: one line item per existing booking
    op.execute(
        """
        INSERT INTO booking_services (booking_id, service_id, price_at_booking, duration_at_booking, created_at)
        SELECT b.id, b.service_id, s.price, s.duration, b.created_at
        FROM bookings b
        JOIN services s ON s.id = b.service_id
        WHERE NOT EXISTS (SELECT 1 FROM booking_services bs WHERE bs.booking_id = b.id)
        """
    )
    op.execute(
        """
        UPDATE bookings
        SET total_price = (SELECT COALESCE(SUM(bs.price_at_booking), 0) FROM booking_services bs WHERE bs.booking_id = bookings.id),
            total_duration = (SELECT COALESCE(SUM(bs.duration_at_booking), 0) FROM booking_services bs WHERE bs.booking_id = bookings.id)
        """
    )


def downgrade():
    with op.batch_alter_table('booking_services', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_booking_services_service_id'))
        batch_op.drop_index(batch_op.f('ix_booking_services_booking_id'))

    op.drop_table('booking_services')

    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.drop_column('total_duration')
        batch_op.drop_column('total_price')
