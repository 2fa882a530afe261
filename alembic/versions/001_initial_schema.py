"""Initial schema - contratos

Revision ID: 001
Revises:
Create Date: 2026-10-18

Clientes, planes, contratos, movimientos financieros y seguimientos.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_LIST = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    # clients
    op.create_table(
        'clients',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('plan_ids', JSON_LIST, nullable=True),
        sa.Column('registered_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    # plans
    op.create_table(
        'plans',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('duration_weeks', sa.Integer(), nullable=True),
        sa.Column('goals', sa.Text(), nullable=True),
        sa.Column('level', sa.String(20), server_default='principiante', nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('client_ids', JSON_LIST, nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # contracts
    op.create_table(
        'contracts',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('plan_id', sa.String(36), nullable=False),
        sa.Column('conditions', sa.Text(), nullable=True),
        sa.Column('duration_months', sa.Integer(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), server_default='vigente', nullable=False),
        sa.Column('previous_contract_id', sa.String(36), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('renewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id']),
        sa.ForeignKeyConstraint(['previous_contract_id'], ['contracts.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contracts_client_plan', 'contracts', ['client_id', 'plan_id'])
    op.create_index('ix_contracts_status_end_date', 'contracts', ['status', 'end_date'])
    # Como máximo un contrato vigente por par (cliente, plan)
    op.create_index(
        'uq_contracts_vigente_pair',
        'contracts',
        ['client_id', 'plan_id'],
        unique=True,
        postgresql_where=sa.text("status = 'vigente'"),
        sqlite_where=sa.text("status = 'vigente'"),
    )

    # financial_movements
    op.create_table(
        'financial_movements',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('client_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_financial_movements_client_id', 'financial_movements', ['client_id'])

    # tracking_records
    op.create_table(
        'tracking_records',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('contract_id', sa.String(36), nullable=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('body_fat', sa.Float(), nullable=True),
        sa.Column('measurements', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['contract_id'], ['contracts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tracking_records_client_id', 'tracking_records', ['client_id'])
    op.create_index('ix_tracking_records_contract_id', 'tracking_records', ['contract_id'])


def downgrade() -> None:
    op.drop_table('tracking_records')
    op.drop_table('financial_movements')
    op.drop_index('uq_contracts_vigente_pair', table_name='contracts')
    op.drop_table('contracts')
    op.drop_table('plans')
    op.drop_table('clients')
