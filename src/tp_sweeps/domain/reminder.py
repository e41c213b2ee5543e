"""Reminder cadence and email content for unclaimed tips.

A broadcaster whose oldest unclaimed tip is `days` old gets the reminder for
marker m when m <= days < m + 1. Each (broadcaster, marker) is sent at most once.
"""

import html
from dataclasses import dataclass

from src.tp_common.cents import cents_to_display

REMINDER_DAY_MARKERS: tuple[int, ...] = (1, 7, 30, 45, 50, 59)

PRODUCT_NAME = "Channel"


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


def select_marker(days_since_oldest: int) -> int | None:
    for marker in REMINDER_DAY_MARKERS:
        if marker <= days_since_oldest < marker + 1:
            return marker
    return None


def reminder_subject(pending_cents: int, days_remaining: int) -> str:
    amount = cents_to_display(pending_cents)
    if days_remaining <= 1:
        return f"Final notice: {amount} expires tomorrow"
    if days_remaining <= 7:
        return f"{amount} expires in {days_remaining} days"
    return f"You have {amount} in pending support on {PRODUCT_NAME}"


def build_reminder_email(
    broadcaster_name: str,
    pending_cents: int,
    tip_count: int,
    days_remaining: int,
    onboarding_url: str,
) -> EmailTemplate:
    amount = cents_to_display(pending_cents)
    tips_label = "tip" if tip_count == 1 else "tips"
    day_label = "day" if days_remaining == 1 else "days"
    name = broadcaster_name or "there"
    text = (
        f"Hi {name},\n\n"
        f"Listeners sent you {tip_count} {tips_label} totalling {amount} on {PRODUCT_NAME}.\n"
        f"Connect a payout account within {days_remaining} {day_label} to receive it; "
        f"after that the money goes to the {PRODUCT_NAME} support pool.\n\n"
        f"Set up payouts: {onboarding_url}\n"
    )
    body = (
        f"<p>Hi {html.escape(name)},</p>"
        f"<p>Listeners sent you {tip_count} {tips_label} totalling "
        f"<strong>{amount}</strong> on {PRODUCT_NAME}.</p>"
        f"<p>Connect a payout account within {days_remaining} {day_label} to receive it; "
        f"after that the money goes to the {PRODUCT_NAME} support pool.</p>"
        f'<p><a href="{html.escape(onboarding_url, quote=True)}">Set up payouts</a></p>'
    )
    return EmailTemplate(
        subject=reminder_subject(pending_cents, days_remaining),
        html=body,
        text=text,
    )
