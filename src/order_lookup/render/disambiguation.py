"""Targeted follow-up questions for lookups that matched no order.

`select_follow_up` picks a `FollowUpKind` from the query's classification and
confidence; `build_follow_up` renders it. Rendering never raises: any failure
falls back to the generic list of accepted identifiers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from order_lookup.types import LookupQuery, QueryType

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.8

EXAMPLE_ORDER_NUMBERS = "#176484, #12345, or ORD-2024-001"


class FollowUpKind(str, Enum):
    EMAIL_REQUIRED = "email_required"
    COMPOUND_NOT_FOUND = "compound_not_found"
    ORDER_NUMBER_LIKELY = "order_number_likely"
    ORDER_NUMBER_PARTIAL = "order_number_partial"
    EMAIL_LIKELY = "email_likely"
    EMAIL_UNCERTAIN = "email_uncertain"
    TRACKING_NUMBER = "tracking_number"
    PARTIAL_FRAGMENT = "partial_fragment"
    VAGUE = "vague"


def select_follow_up(query: LookupQuery, *, email_required: bool = False) -> FollowUpKind:
    if email_required:
        return FollowUpKind.EMAIL_REQUIRED
    if query.is_compound and query.order_number and query.email:
        return FollowUpKind.COMPOUND_NOT_FOUND

    classification = query.classification
    high = classification.confidence > HIGH_CONFIDENCE
    if classification.type is QueryType.ORDER_NUMBER:
        return FollowUpKind.ORDER_NUMBER_LIKELY if high else FollowUpKind.ORDER_NUMBER_PARTIAL
    if classification.type is QueryType.EMAIL:
        return FollowUpKind.EMAIL_LIKELY if high else FollowUpKind.EMAIL_UNCERTAIN
    if classification.type is QueryType.TRACKING_NUMBER:
        return FollowUpKind.TRACKING_NUMBER
    if classification.type is QueryType.PARTIAL_FRAGMENT:
        return FollowUpKind.PARTIAL_FRAGMENT
    return FollowUpKind.VAGUE


def _email_required(query: LookupQuery) -> str:
    number = query.order_number or query.text
    return (
        f"I found that you're looking for order **{number}**.\n\n"
        "Our order system requires both the order number and the email address used "
        "at checkout to locate an order, for security.\n\n"
        "Could you please provide the email address you used when placing this order? "
        "Once I have that, I can get you the complete order status and tracking "
        "information!\n\n"
        f"Just reply with your email address, and I'll track down order {number} for you."
    )


def _compound_not_found(query: LookupQuery) -> str:
    return (
        f"I couldn't find order **{query.order_number}** for the email address "
        f"{query.email}.\n\n"
        "Could you double-check both details?\n"
        "- Is the order number exactly as it appears in your confirmation email?\n"
        "- Is this the email address you used when placing the order?\n\n"
        "If you used a different email (work, personal, or a family member's), "
        "send me the order number with that address instead."
    )


def _order_number_likely(query: LookupQuery) -> str:
    number = query.order_number or query.text
    return (
        f"I can see you're looking for order {number}. I searched our system but "
        "couldn't locate this specific order.\n\n"
        "To help me find it, could you also provide the email address you used when "
        "placing the order? Order lookups need both details to verify the order "
        "for security.\n\n"
        "Alternatively, if you have your order confirmation email handy, that would "
        "give me all the details I need to track it down for you!"
    )


def _order_number_partial(query: LookupQuery) -> str:
    number = query.order_number or query.text
    return (
        f"I see you're looking for order {number}. This looks like it might be a "
        "partial order number or reference.\n\n"
        "Could you help me by providing:\n"
        "- The complete order number from your confirmation email?\n"
        "- Or the email address you used when ordering?\n\n"
        f"Order numbers usually look like {EXAMPLE_ORDER_NUMBERS}. If you check your "
        'email for "Order Confirmation" that should have the full details I need to '
        "track your order!"
    )


def _email_likely(query: LookupQuery) -> str:
    email = query.email or query.text
    return (
        f"I searched for orders using the email {email} but didn't find any matches.\n\n"
        "A few things to double-check:\n"
        "- Is this the exact email address you used when placing the order?\n"
        "- Did you perhaps use a different email (work, personal, or family "
        "member's email)?\n"
        "- When approximately did you place the order?\n\n"
        "Would you like to try a different email address, or do you happen to have "
        "an order number from your confirmation email?"
    )


def _email_uncertain(query: LookupQuery) -> str:
    return (
        f"I see you provided {query.text} - this looks like it might be an email "
        "address, but I want to make sure I have it right.\n\n"
        "Could you:\n"
        "- Confirm the complete email address (sometimes autocorrect changes them)\n"
        "- Or share an order number if you have it handy\n"
        "- Check your email for order confirmations and let me know what you find\n\n"
        "I'm here to help you track down your order!"
    )


def _tracking_number(query: LookupQuery) -> str:
    return (
        f"I searched for tracking number {query.text} but couldn't locate it in our "
        "system.\n\n"
        "First, let's verify the tracking number:\n"
        "- Is this the complete tracking number? They're usually 10-20 characters long\n"
        "- Double-check for any missing letters or numbers\n\n"
        "Alternatively, I can look up your order using:\n"
        "- Your order number (like #12345 or ORD-2024-001)\n"
        "- The email address you used when ordering\n\n"
        "What would be easiest for you to provide?"
    )


def _partial_fragment(query: LookupQuery) -> str:
    return (
        f'I see you\'re looking for information about "{query.text}".\n\n'
        "To help me find your order, could you provide a bit more detail? For example:\n"
        "- Is this part of an order number?\n"
        "- Part of your name or email address?\n"
        "- Something else from your order?\n\n"
        "The most helpful information would be your complete email address or the "
        "full order number from your confirmation email.\n\n"
        "What additional details can you share?"
    )


def _vague(query: LookupQuery) -> str:
    del query
    return (
        "I'd love to help you track your order!\n\n"
        "To find your order quickly, I'll need one of these:\n"
        "- Email address you used when ordering\n"
        f"- Order number (like {EXAMPLE_ORDER_NUMBERS})\n"
        "- Tracking number from your shipping notification\n\n"
        "The fastest way is usually your order confirmation email - it has all the "
        "details I need!\n\n"
        "What information do you have available?"
    )


_RENDERERS: dict[FollowUpKind, Callable[[LookupQuery], str]] = {
    FollowUpKind.EMAIL_REQUIRED: _email_required,
    FollowUpKind.COMPOUND_NOT_FOUND: _compound_not_found,
    FollowUpKind.ORDER_NUMBER_LIKELY: _order_number_likely,
    FollowUpKind.ORDER_NUMBER_PARTIAL: _order_number_partial,
    FollowUpKind.EMAIL_LIKELY: _email_likely,
    FollowUpKind.EMAIL_UNCERTAIN: _email_uncertain,
    FollowUpKind.TRACKING_NUMBER: _tracking_number,
    FollowUpKind.PARTIAL_FRAGMENT: _partial_fragment,
    FollowUpKind.VAGUE: _vague,
}


def build_follow_up(query: LookupQuery, *, email_required: bool = False) -> str:
    try:
        kind = select_follow_up(query, email_required=email_required)
        return _RENDERERS[kind](query)
    except Exception:
        logger.exception("Failed to build follow-up for query %r", query.text)
        return generic_fallback_reply()


def _identifier_offer() -> str:
    return (
        "To track your order, you can provide:\n"
        "📧 **Email address** used for the order\n"
        "🔢 **Order number** from your confirmation email\n"
        "📦 **Tracking number** from your shipping notification\n\n"
        "How else can I help you today?"
    )


def error_reply(message: str) -> str:
    return f"I apologize, but {message}\n\n{_identifier_offer()}"


def invalid_input_reply() -> str:
    return error_reply(
        "I need something to look up. Please provide an order number, email address, "
        "or tracking number to track your order."
    )


def backend_trouble_reply() -> str:
    return error_reply(
        "I had trouble looking that up in our order system just now. "
        "Please try again in a moment."
    )


def generic_fallback_reply() -> str:
    return error_reply(
        "I encountered an issue looking up your order. "
        "Let me connect you with our support team for assistance."
    )
