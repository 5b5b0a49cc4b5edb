"""Ledger, tax lots & holdings

Revision ID: 5a1c3e0d9b27
Revises:
Create Date: 2026-10-17 10:42:18.209514

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a1c3e0d9b27'
down_revision = None
branch_labels = None
depends_on = None


TRANSACTION_TYPES = (
    'BUY', 'SELL', 'DIVIDEND', 'INTEREST', 'FEE', 'TAX_WITHHOLDING',
    'REINVEST_DIVIDEND', 'TRANSFER_IN', 'TRANSFER_OUT', 'SPLIT', 'ADJUSTMENT',
    'FOREX', 'DEPOSIT', 'WITHDRAWAL', 'OTHER',
)


ENGINE_FIELDS_CONSTRAINT = (
    "type = 'SELL' "
    "OR (costbasisused IS NULL "
    "AND realizedgainloss IS NULL "
    "AND holdingperioddays IS NULL)"
)


def upgrade():
    op.create_table(
        'portfolio',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner', sa.String(), nullable=False, comment='Owning user identifier'),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('basecurrency', sa.String(length=3), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_portfolio')),
        sa.UniqueConstraint('owner', 'name', name=op.f('uq_portfolio_owner')),
        comment='Portfolios (scope for backfill & gains reporting)'
    )

    op.create_table(
        'account',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('portfolio_id', sa.Integer(), nullable=False, comment='FK portfolio.id'),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('institution', sa.String(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.ForeignKeyConstraint(
            ['portfolio_id'], ['portfolio.id'],
            name=op.f('fk_account_portfolio_id_portfolio'),
            onupdate='CASCADE', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_account')),
        comment='Financial Institution (e.g. Brokerage) Account'
    )

    op.create_table(
        'holding',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False, comment='FK account.id'),
        sa.Column('symbol', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=18, scale=8), nullable=False),
        sa.Column('costbasis', sa.Numeric(precision=18, scale=2), nullable=True,
                  comment='Weighted-average cost basis'),
        sa.Column('avgcostperunit', sa.Numeric(precision=18, scale=8), nullable=True),
        sa.ForeignKeyConstraint(
            ['account_id'], ['account.id'],
            name=op.f('fk_holding_account_id_account'),
            onupdate='CASCADE', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_holding')),
        sa.UniqueConstraint('account_id', 'symbol', name=op.f('uq_holding_account_id')),
        comment='Holdings (derived positions)'
    )

    op.create_table(
        'transaction',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False, comment='FK account.id'),
        sa.Column('holding_id', sa.Integer(), nullable=True,
                  comment="FK holding.id; NULL for cash events that don't touch a holding"),
        sa.Column('type', sa.Enum(*TRANSACTION_TYPES, name='transaction_type'),
                  nullable=False, comment='One of {}'.format(TRANSACTION_TYPES)),
        sa.Column('symbol', sa.String(), nullable=True),
        sa.Column('quantity', sa.Numeric(precision=18, scale=8), nullable=True,
                  comment='Units bought/sold (for splits: the split ratio)'),
        sa.Column('price', sa.Numeric(precision=18, scale=8), nullable=True,
                  comment='Per-unit trade price'),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False,
                  comment='Signed change in cash'),
        sa.Column('fees', sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False, comment='ISO 4217'),
        sa.Column('date', sa.Date(), nullable=False, comment='Economic (trade) date'),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('costbasisused', sa.Numeric(precision=18, scale=2), nullable=True,
                  comment='SELL only: cost basis of the lots consumed'),
        sa.Column('realizedgainloss', sa.Numeric(precision=18, scale=2), nullable=True,
                  comment='SELL only: proceeds less cost basis consumed'),
        sa.Column('holdingperioddays', sa.Integer(), nullable=True,
                  comment='SELL only: quantity-weighted average days held of lots consumed'),
        sa.CheckConstraint('price >= 0', name=op.f('ck_transaction_price_not_negative')),
        sa.CheckConstraint(
            ENGINE_FIELDS_CONSTRAINT, name=op.f('ck_transaction_engine_fields_sell_only')
        ),
        sa.ForeignKeyConstraint(
            ['account_id'], ['account.id'],
            name=op.f('fk_transaction_account_id_account'),
            onupdate='CASCADE', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['holding_id'], ['holding.id'],
            name=op.f('fk_transaction_holding_id_holding'),
            onupdate='CASCADE', ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_transaction')),
        comment='Ledger of Portfolio Transactions'
    )

    op.create_table(
        'taxlot',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('holding_id', sa.Integer(), nullable=False, comment='FK holding.id'),
        sa.Column('transaction_id', sa.Integer(), nullable=False,
                  comment='Opening (BUY/REINVEST_DIVIDEND) transaction - FK transaction.id'),
        sa.Column('quantity', sa.Numeric(precision=18, scale=8), nullable=False,
                  comment='Units originally acquired'),
        sa.Column('remaining', sa.Numeric(precision=18, scale=8), nullable=False,
                  comment='Units not yet consumed by SELLs'),
        sa.Column('costbasis', sa.Numeric(precision=18, scale=2), nullable=False,
                  comment='quantity * price + fees'),
        sa.Column('costperunit', sa.Numeric(precision=18, scale=8), nullable=False),
        sa.Column('acquired', sa.Date(), nullable=False,
                  comment='Opening transaction date; FIFO sort key'),
        sa.CheckConstraint('quantity > 0', name=op.f('ck_taxlot_quantity_positive')),
        sa.CheckConstraint('remaining >= 0', name=op.f('ck_taxlot_remaining_not_negative')),
        sa.CheckConstraint(
            'remaining <= quantity', name=op.f('ck_taxlot_remaining_within_quantity')
        ),
        sa.ForeignKeyConstraint(
            ['holding_id'], ['holding.id'],
            name=op.f('fk_taxlot_holding_id_holding'),
            onupdate='CASCADE', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['transaction_id'], ['transaction.id'],
            name=op.f('fk_taxlot_transaction_id_transaction'),
            onupdate='CASCADE', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_taxlot')),
        sa.UniqueConstraint('transaction_id', name=op.f('uq_taxlot_transaction_id')),
        comment='Tax Lots'
    )

    op.create_table(
        'lotconsumption',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('taxlot_id', sa.Integer(), nullable=False, comment='FK taxlot.id'),
        sa.Column('transaction_id', sa.Integer(), nullable=False,
                  comment='Realizing (SELL) transaction - FK transaction.id'),
        sa.Column('quantity', sa.Numeric(precision=18, scale=8), nullable=False),
        sa.Column('costbasis', sa.Numeric(precision=18, scale=8), nullable=False),
        sa.Column('daysheld', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name=op.f('ck_lotconsumption_quantity_positive')),
        sa.ForeignKeyConstraint(
            ['taxlot_id'], ['taxlot.id'],
            name=op.f('fk_lotconsumption_taxlot_id_taxlot'),
            onupdate='CASCADE', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['transaction_id'], ['transaction.id'],
            name=op.f('fk_lotconsumption_transaction_id_transaction'),
            onupdate='CASCADE', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_lotconsumption')),
        sa.UniqueConstraint(
            'taxlot_id', 'transaction_id', name=op.f('uq_lotconsumption_taxlot_id')
        ),
        comment='Tax Lot Consumption by Sales'
    )

    # FIFO lot lookup per holding
    op.create_index(
        'ix_taxlot_holding_id_acquired', 'taxlot', ['holding_id', 'acquired', 'id']
    )
    op.create_index(
        'ix_transaction_holding_id_date', 'transaction', ['holding_id', 'date', 'id']
    )


def downgrade():
    op.drop_index('ix_transaction_holding_id_date', table_name='transaction')
    op.drop_index('ix_taxlot_holding_id_acquired', table_name='taxlot')
    op.drop_table('lotconsumption')
    op.drop_table('taxlot')
    op.drop_table('transaction')
    sa.Enum(name='transaction_type').drop(op.get_bind(), checkfirst=True)
    op.drop_table('holding')
    op.drop_table('account')
    op.drop_table('portfolio')
