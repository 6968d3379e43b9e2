"""create user and message tables

Revision ID: 5c7a1e90b2d4
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c7a1e90b2d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'message' not in existing_tables:
        op.create_table(
            'message',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('sender_id', sa.String(length=64), nullable=False),
            sa.Column('receiver_id', sa.String(length=64), nullable=False),
            sa.Column('content', sa.Text(), nullable=False),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_message_sender_id', 'message', ['sender_id'])
        op.create_index('ix_message_receiver_id', 'message', ['receiver_id'])
        op.create_index('ix_message_timestamp', 'message', ['timestamp'])


def downgrade():
    op.drop_index('ix_message_timestamp', table_name='message')
    op.drop_index('ix_message_receiver_id', table_name='message')
    op.drop_index('ix_message_sender_id', table_name='message')
    op.drop_table('message')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
