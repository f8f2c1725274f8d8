"""create participant and room tables

Revision ID: 3c9d1e7a5b20
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9d1e7a5b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'participant' not in existing_tables:
        op.create_table(
            'participant',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('token_hash', sa.String(length=128), nullable=False),
            sa.Column('created_at', sa.Float(), nullable=False),
        )

    if 'room' not in existing_tables:
        op.create_table(
            'room',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('code', sa.String(length=12), nullable=False),
            sa.Column('host_id', sa.String(length=36), sa.ForeignKey('participant.id'), nullable=False),
            sa.Column('guest_id', sa.String(length=36), sa.ForeignKey('participant.id'), nullable=True),
            sa.Column('board', sa.Text(), nullable=False),
            sa.Column('turn', sa.String(length=1), nullable=False, server_default='X'),
            sa.Column('outcome', sa.String(length=8), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='waiting'),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.Column('updated_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_room_code', 'room', ['code'], unique=True)


def downgrade():
    op.drop_index('ix_room_code', table_name='room')
    op.drop_table('room')
    op.drop_table('participant')
