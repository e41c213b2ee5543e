"""004: create tip_reminders_sent table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE tip_reminders_sent (
            id                      BIGSERIAL       PRIMARY KEY,
            broadcaster_user_id     VARCHAR(64)     NOT NULL,
            day_marker              INTEGER         NOT NULL,
            pending_amount_cents    BIGINT          NOT NULL DEFAULT 0,
            sent_at                 TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_tip_reminders_marker UNIQUE (broadcaster_user_id, day_marker),
            CONSTRAINT ck_tip_reminders_marker CHECK (day_marker IN (1, 7, 30, 45, 50, 59))
        );
    """)
    op.execute(
        "COMMENT ON TABLE tip_reminders_sent IS "
        "'Append-only; one row per (broadcaster, day marker)';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS tip_reminders_sent CASCADE;")
