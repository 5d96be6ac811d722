"""Builders for common marketplace events, plus per-type push presentation.

Each builder returns a NotificationRequest with the priority and channel set
used for that event; pass it to ``NotificationService.send``.

Example:
    request = offer_received("seller-1", offer_id="o-9", business_id="b-2",
                             buyer_id="u-7", amount=2_500_000, business_title="Café Nord")
    result = await service.send(request)
"""

from __future__ import annotations

from typing import Any

from notification_service.features.notifications.enums import Channel, NotificationType, Priority
from notification_service.features.notifications.schemas import NotificationRequest

DEFAULT_URL = "/dashboard/notifications"

VERIFICATION_CAPABILITIES: dict[str, list[str]] = {
    "email": ["Skapa annonser", "Kontakta säljare"],
    "phone": ["Lägga bud", "Mobilverifiering"],
    "bankid": ["Sälja företag", "Höga transaktioner"],
    "enhanced": ["Internationella affärer", "Premium funktioner"],
}


def format_sek(amount: int | float) -> str:
    """Swedish digit grouping, e.g. 2500000 -> '2 500 000'."""
    if isinstance(amount, float) and not amount.is_integer():
        return f"{amount:,.2f}".replace(",", " ").replace(".", ",")
    return f"{int(amount):,}".replace(",", " ")


# ============================================================================
# Push presentation
# ============================================================================


def notification_url(notification_type: NotificationType, data: dict[str, Any]) -> str:
    """Click-through path for a notification."""
    if notification_type == NotificationType.NEW_INQUIRY and data.get("inquiryId"):
        return f"/dashboard/inquiries/{data['inquiryId']}"
    if notification_type in (NotificationType.OFFER_RECEIVED, NotificationType.OFFER_ACCEPTED) and data.get("offerId"):
        return f"/dashboard/offers/{data['offerId']}"
    return DEFAULT_URL


def push_actions(notification_type: NotificationType) -> list[dict[str, str]]:
    if notification_type == NotificationType.OFFER_RECEIVED:
        return [
            {"action": "view", "title": "Visa bud"},
            {"action": "respond", "title": "Svara"},
        ]
    if notification_type == NotificationType.NEW_INQUIRY:
        return [
            {"action": "view", "title": "Visa förfrågan"},
            {"action": "reply", "title": "Svara"},
        ]
    return [{"action": "view", "title": "Visa"}]


# ============================================================================
# Event builders
# ============================================================================


def new_inquiry(
    seller_id: str,
    *,
    inquiry_id: str,
    business_id: str,
    buyer_id: str,
    buyer_name: str,
    business_title: str,
) -> NotificationRequest:
    return NotificationRequest(
        user_id=seller_id,
        type=NotificationType.NEW_INQUIRY,
        title="Ny förfrågan om ditt företag",
        message=f'{buyer_name} har skickat en förfrågan om "{business_title}"',
        data={"inquiryId": inquiry_id, "businessId": business_id, "buyerId": buyer_id},
        priority=Priority.HIGH,
        channels=[Channel.IN_APP, Channel.EMAIL, Channel.PUSH],
    )


def offer_received(
    seller_id: str,
    *,
    offer_id: str,
    business_id: str,
    buyer_id: str,
    amount: int | float,
    business_title: str,
) -> NotificationRequest:
    return NotificationRequest(
        user_id=seller_id,
        type=NotificationType.OFFER_RECEIVED,
        title="Nytt bud på ditt företag!",
        message=f'Du har fått ett bud på {format_sek(amount)} SEK för "{business_title}"',
        data={"offerId": offer_id, "businessId": business_id, "buyerId": buyer_id, "amount": amount},
        priority=Priority.URGENT,
        channels=[Channel.IN_APP, Channel.EMAIL, Channel.PUSH, Channel.SMS],
    )


def offer_accepted(
    buyer_id: str,
    *,
    offer_id: str,
    business_id: str,
    seller_id: str,
    business_title: str,
) -> NotificationRequest:
    return NotificationRequest(
        user_id=buyer_id,
        type=NotificationType.OFFER_ACCEPTED,
        title="Ditt bud har accepterats!",
        message=f'Grattis! Ditt bud på "{business_title}" har accepterats av säljaren.',
        data={
            "offerId": offer_id,
            "businessId": business_id,
            "sellerId": seller_id,
            "nextSteps": "due_diligence",
        },
        priority=Priority.URGENT,
        channels=[Channel.IN_APP, Channel.EMAIL, Channel.PUSH],
    )


def payment_received(
    user_id: str,
    *,
    payment_id: str,
    transaction_id: str,
    amount: int | float,
    description: str,
) -> NotificationRequest:
    return NotificationRequest(
        user_id=user_id,
        type=NotificationType.PAYMENT_RECEIVED,
        title="Betalning mottagen",
        message=f'Betalning på {format_sek(amount)} SEK har mottagits för "{description}"',
        data={"paymentId": payment_id, "transactionId": transaction_id, "amount": amount},
        priority=Priority.MEDIUM,
        channels=[Channel.IN_APP, Channel.EMAIL],
    )


def verification_approved(user_id: str, verification_type: str) -> NotificationRequest:
    return NotificationRequest(
        user_id=user_id,
        type=NotificationType.VERIFICATION_APPROVED,
        title="Verifiering godkänd",
        message=(
            f"Din {verification_type}-verifiering har godkänts. "
            "Du kan nu använda fler funktioner på plattformen."
        ),
        data={
            "verificationType": verification_type,
            "newCapabilities": VERIFICATION_CAPABILITIES.get(verification_type, []),
        },
        priority=Priority.MEDIUM,
        channels=[Channel.IN_APP, Channel.EMAIL],
    )
