"""003: create support_pool_reallocations table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE support_pool_reallocations (
            id                  BIGSERIAL       PRIMARY KEY,
            tip_id              VARCHAR(64)     NOT NULL REFERENCES tips (id),
            broadcaster_user_id VARCHAR(64),
            broadcaster_email   VARCHAR(255),
            broadcaster_name    VARCHAR(255)    NOT NULL,
            amount_cents        BIGINT          NOT NULL,
            original_tip_date   TIMESTAMPTZ     NOT NULL,
            reallocated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reallocations_tip UNIQUE (tip_id),
            CONSTRAINT ck_reallocations_amount_gt_0 CHECK (amount_cents > 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_reallocations_time ON support_pool_reallocations (reallocated_at DESC);"
    )
    op.execute(
        "COMMENT ON TABLE support_pool_reallocations IS "
        "'Append-only record of tips moved to the support pool';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS support_pool_reallocations CASCADE;")
