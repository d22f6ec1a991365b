"""create_crm_accounts

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # init_db puede haber creado la tabla antes de la primera migracion
    if not inspector.has_table('crm_accounts'):
        op.create_table('crm_accounts',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=False, server_default=''),
        sa.Column('refresh_token', sa.Text(), nullable=False, server_default=''),
        sa.Column('last_pulled_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_pulled_dates', sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_crm_accounts_id'), 'crm_accounts', ['id'], unique=False)
        op.create_index(op.f('ix_crm_accounts_is_active'), 'crm_accounts', ['is_active'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('crm_accounts'):
        op.drop_index(op.f('ix_crm_accounts_is_active'), table_name='crm_accounts')
        op.drop_index(op.f('ix_crm_accounts_id'), table_name='crm_accounts')
        op.drop_table('crm_accounts')
