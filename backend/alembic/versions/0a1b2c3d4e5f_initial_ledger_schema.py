"""initial ledger schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM('USER', 'ADMIN', name='user_role', create_type=False)
asset_type = postgresql.ENUM('STOCK', 'CRYPTO', name='asset_type', create_type=False)
transaction_type = postgresql.ENUM('BUY', 'SELL', name='transaction_type', create_type=False)
transfer_type = postgresql.ENUM('FIAT', 'CRYPTO', name='transfer_type', create_type=False)
transfer_status = postgresql.ENUM('PENDING', 'COMPLETED', 'REJECTED', name='transfer_status', create_type=False)
trade_status = postgresql.ENUM('ACTIVE', 'CLOSED_BY_USER', 'CLOSED_BY_ADMIN', name='trade_status', create_type=False)

ENUMS = (user_role, asset_type, transaction_type, transfer_type, transfer_status, trade_status)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False, server_default='USER'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False, server_default='0'),
        sa.UniqueConstraint('user_id', 'currency', name='uq_balance_user_currency'),
        sa.CheckConstraint('amount >= 0', name='ck_balance_amount_non_negative'),
    )
    op.create_index('ix_balances_user_id', 'balances', ['user_id'])

    op.create_table(
        'portfolio_positions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('asset_type', asset_type, nullable=False),
        sa.Column('quantity', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('average_buy_price', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'symbol', name='uq_position_user_symbol'),
        sa.CheckConstraint('quantity >= 0', name='ck_position_quantity_non_negative'),
    )
    op.create_index('ix_portfolio_positions_user_id', 'portfolio_positions', ['user_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('asset_type', asset_type, nullable=False),
        sa.Column('quantity', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('price', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])

    op.create_table(
        'transfers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', transfer_type, nullable=False),
        sa.Column('status', transfer_status, nullable=False, server_default='PENDING'),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=True),
        sa.Column('recipient', sa.String(length=255), nullable=True),
        sa.Column('iban', sa.String(length=64), nullable=True),
        sa.Column('purpose', sa.String(length=500), nullable=True),
        sa.Column('crypto_address', sa.String(length=255), nullable=True),
        sa.Column('crypto_currency', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_transfers_user_id', 'transfers', ['user_id'])

    op.create_table(
        'trades',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False),
        sa.Column('status', trade_status, nullable=False, server_default='ACTIVE'),
        sa.Column('profit', sa.Numeric(precision=20, scale=8), nullable=True),
        sa.Column('profit_percent', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('trading_pair', sa.String(length=20), nullable=True),
        sa.Column('admin_comment', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_trades_user_id', 'trades', ['user_id'])
    op.create_index(
        'uq_trade_user_active', 'trades', ['user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
        sqlite_where=sa.text("status = 'ACTIVE'"),
    )


def downgrade() -> None:
    op.drop_index('uq_trade_user_active', table_name='trades')
    op.drop_table('trades')
    op.drop_table('transfers')
    op.drop_table('transactions')
    op.drop_table('portfolio_positions')
    op.drop_table('balances')
    op.drop_table('users')
    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
