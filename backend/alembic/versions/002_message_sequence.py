"""Message sequence — insert-ordered tiebreaker for equal created_at.

Revision ID: 002_message_sequence
Revises: 001_initial
Create Date: 2026-10-19

messages.seq (identity) becomes the primary key; the public UUID id keeps a
unique constraint. Existing rows are numbered by the identity fill, which
follows physical order; only rows sharing a created_at depend on it.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_message_sequence"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.drop_constraint("messages_pkey", "messages", type_="primary")
    op.add_column(
        "messages",
        sa.Column("seq", sa.BigInteger, sa.Identity(always=False), nullable=False),
    )
    op.create_primary_key("pk_messages", "messages", ["seq"])
    op.create_unique_constraint("uq_messages_id", "messages", ["id"])

    op.drop_index("ix_messages_conversation_created", table_name="messages")
    op.create_index(
        "ix_messages_conversation_created", "messages",
        ["conversation_id", "created_at", "seq"],
    )


def downgrade() -> None:
    op.drop_index("ix_messages_conversation_created", table_name="messages")
    op.create_index(
        "ix_messages_conversation_created", "messages",
        ["conversation_id", "created_at"],
    )

    op.drop_constraint("uq_messages_id", "messages", type_="unique")
    op.drop_constraint("pk_messages", "messages", type_="primary")
    op.drop_column("messages", "seq")
    op.create_primary_key("messages_pkey", "messages", ["id"])
