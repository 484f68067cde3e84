"""parking schema

Revision ID: 001
Revises: 
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'vehicles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_on', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_on', sa.DateTime(timezone=True), nullable=True),
        sa.Column('plate', sa.String(length=16), nullable=False),
        sa.Column('vehicle_type', sa.Enum('CAR', 'MOTORCYCLE', name='vehicletype'), nullable=False),
        sa.Column('cylinder_capacity', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vehicles_plate'), 'vehicles', ['plate'], unique=True)

    op.create_table(
        'parking_tickets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_on', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_on', sa.DateTime(timezone=True), nullable=True),
        sa.Column('vehicle_id', sa.Integer(), nullable=False),
        sa.Column('exited_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_parking_tickets_vehicle_id'), 'parking_tickets', ['vehicle_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_parking_tickets_vehicle_id'), table_name='parking_tickets')
    op.drop_table('parking_tickets')
    op.drop_index(op.f('ix_vehicles_plate'), table_name='vehicles')
    op.drop_table('vehicles')
