"""Rendering of found orders into a single chat reply."""

from __future__ import annotations

from datetime import datetime

from order_lookup.results.status import status_display
from order_lookup.types import CanonicalOrder, LineItem, ShippingAddress

MAX_LISTED_ITEMS = 5


def format_money(amount: float | None, currency: str | None) -> str:
    if amount is None:
        return "N/A"
    if currency:
        return f"{amount:.2f} {currency}"
    return f"${amount:.2f}"


def format_date(value: datetime | None) -> str:
    return value.strftime("%b %d, %Y") if value is not None else "N/A"


def order_label(order: CanonicalOrder) -> str:
    return order.display_name or order.order_number or order.order_id


def format_line_items(items: list[LineItem], currency: str | None = None) -> str:
    if not items:
        return "No items listed"
    lines = []
    for item in items[:MAX_LISTED_ITEMS]:
        price = f" - {format_money(item.price, currency)}" if item.price is not None else ""
        lines.append(f"• {item.quantity}x {item.title}{price}")
    if len(items) > MAX_LISTED_ITEMS:
        lines.append(f"• ... and {len(items) - MAX_LISTED_ITEMS} more items")
    return "\n".join(lines)


def format_shipping_address(address: ShippingAddress | None) -> str:
    if address is None:
        return "No shipping address available"
    parts: list[str] = []
    name = f"{address.first_name or ''} {address.last_name or ''}".strip()
    if name:
        parts.append(name)
    parts.extend(line for line in (address.address1, address.address2) if line)
    city_state = ", ".join(part for part in (address.city, address.province) if part)
    if city_state:
        parts.append(city_state)
    parts.extend(part for part in (address.zip, address.country) if part)
    return "\n".join(parts)


def format_single_order(order: CanonicalOrder) -> str:
    display = status_display(order.status)
    sections = [
        "📦 **Order Found!**",
        "\n".join(
            [
                f"**{display.emoji} Order {order_label(order)}**",
                f"**Status: {display.label}**",
            ]
        ),
        "\n".join(
            [
                f"👤 **Customer:** {order.customer_name or 'N/A'}",
                f"📧 **Email:** {order.customer_email or 'N/A'}",
                f"💰 **Total:** {format_money(order.total, order.currency)}",
                f"📅 **Ordered:** {format_date(order.created_at)}",
            ]
        ),
        f"📋 **Items:**\n{format_line_items(order.line_items, order.currency)}",
    ]

    if order.tracking_number:
        tracking = ["🚚 **Shipping Information:**", f"**Tracking Number:** {order.tracking_number}"]
        if order.tracking_carrier:
            tracking.append(f"**Carrier:** {order.tracking_carrier}")
        if order.tracking_url:
            tracking.append(f"**Track Package:** [{order.tracking_number}]({order.tracking_url})")
        sections.append("\n".join(tracking))

    if order.shipping_address is not None:
        sections.append(
            f"📍 **Shipping Address:**\n{format_shipping_address(order.shipping_address)}"
        )

    sections.append(f"{display.emoji} {display.guidance}")
    sections.append(
        "Need help with this order? I can:\n"
        "- 📱 Provide detailed tracking updates\n"
        "- 📧 Resend confirmation emails\n"
        "- 🔄 Help with returns or exchanges\n"
        "- 📞 Connect you with our shipping team\n\n"
        "What would you like to know?"
    )
    return "\n\n".join(sections)


def format_multiple_orders(orders: list[CanonicalOrder], query_text: str) -> str:
    entries = []
    for index, order in enumerate(orders, start=1):
        display = status_display(order.status)
        lines = [
            f"{index}. **{display.emoji} Order {order_label(order)}**",
            f"   {display.label} | {format_money(order.total, order.currency)}",
            f"   📅 {format_date(order.created_at)}",
        ]
        if order.tracking_number:
            lines.append(f"   📦 Tracking: {order.tracking_number}")
        entries.append("\n".join(lines))

    return (
        f'📦 **Found {len(orders)} Orders matching "{query_text}":**\n\n'
        + "\n\n".join(entries)
        + "\n\nPlease let me know which order you'd like detailed information about, "
        "or I can help you with:\n"
        "- 🔍 Get detailed status for a specific order\n"
        "- 📱 Track a specific package\n"
        "- 📧 Resend order confirmations\n"
        "- 🔄 Process returns or exchanges\n\n"
        "Which order interests you, or what would you like me to help with?"
    )


def format_orders(orders: list[CanonicalOrder], query_text: str) -> str:
    """Render one card for a single match or a numbered list for several."""

    if not orders:
        raise ValueError("format_orders requires at least one order")
    if len(orders) == 1:
        return format_single_order(orders[0])
    return format_multiple_orders(orders, query_text)
