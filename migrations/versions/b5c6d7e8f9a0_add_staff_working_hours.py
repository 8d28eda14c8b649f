"""add staff working hours

Revision ID: b5c6d7e8f9a0
Revises: a3b4c5d6e7f8
Create Date: 2026-10-20 09:45:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b5c6d7e8f9a0'
down_revision = 'a3b4c5d6e7f8'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'staff_working_hours',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.String(length=10), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('staff_id', 'day_of_week', name='uq_staff_working_hours_day')
    )
    with op.batch_alter_table('staff_working_hours', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_staff_working_hours_staff_id'), ['staff_id'], unique=False)


def downgrade():
    with op.batch_alter_table('staff_working_hours', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_staff_working_hours_staff_id'))

    op.drop_table('staff_working_hours')
