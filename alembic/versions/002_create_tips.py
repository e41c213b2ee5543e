"""002: create tips table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE tips (
            id                          VARCHAR(64)     PRIMARY KEY,
            tipper_user_id              VARCHAR(64)     NOT NULL,
            tipper_name                 VARCHAR(255)    NOT NULL,
            broadcaster_user_id         VARCHAR(64),
            broadcaster_email           VARCHAR(255),
            broadcaster_name            VARCHAR(255)    NOT NULL,
            broadcast_slot_id           VARCHAR(64)     NOT NULL,
            show_name                   VARCHAR(255)    NOT NULL,
            tip_amount_cents            BIGINT          NOT NULL,
            platform_fee_cents          BIGINT          NOT NULL,
            total_charged_cents         BIGINT          NOT NULL,
            payment_status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            payout_status               VARCHAR(30)     NOT NULL DEFAULT 'pending',
            stripe_session_id           VARCHAR(255)    NOT NULL,
            stripe_payment_intent_id    VARCHAR(255),
            stripe_transfer_id          VARCHAR(255),
            transferred_at              TIMESTAMPTZ,
            reallocated_at              TIMESTAMPTZ,
            last_payout_error           TEXT,
            payout_attempt              INTEGER         NOT NULL DEFAULT 0,
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_tips_stripe_session UNIQUE (stripe_session_id),
            CONSTRAINT ck_tips_amount_gt_0 CHECK (tip_amount_cents > 0),
            CONSTRAINT ck_tips_fee_gte_0 CHECK (platform_fee_cents >= 0),
            CONSTRAINT ck_tips_total CHECK (
                total_charged_cents = tip_amount_cents + platform_fee_cents
            ),
            CONSTRAINT ck_tips_broadcaster_ref CHECK (
                broadcaster_user_id IS NOT NULL OR broadcaster_email IS NOT NULL
            ),
            CONSTRAINT ck_tips_payment_status CHECK (
                payment_status IN ('pending', 'succeeded', 'failed')
            ),
            CONSTRAINT ck_tips_payout_status CHECK (
                payout_status IN (
                    'pending', 'pending_dj_account', 'transferred',
                    'reallocated_to_pool', 'failed'
                )
            ),
            CONSTRAINT ck_tips_transfer_linkage CHECK (
                payout_status <> 'transferred'
                OR (stripe_transfer_id IS NOT NULL AND transferred_at IS NOT NULL)
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_tips_payout_status ON tips (payout_status, created_at);"
    )
    op.execute("""
        CREATE INDEX idx_tips_broadcaster
        ON tips (broadcaster_user_id, payout_status)
        WHERE broadcaster_user_id IS NOT NULL;
    """)
    op.execute("""
        CREATE INDEX idx_tips_unresolved_email
        ON tips (LOWER(broadcaster_email), payout_status)
        WHERE broadcaster_user_id IS NULL;
    """)
    op.execute(
        "CREATE INDEX idx_tips_tipper_slot ON tips (tipper_user_id, broadcast_slot_id);"
    )
    op.execute("""
        CREATE TRIGGER trg_tips_updated_at
            BEFORE UPDATE ON tips
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE tips IS "
        "'Tip ledger: never deleted, statuses only move forward; amounts in cents';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS tips CASCADE;")
