"""The `track_order` tool handed to the conversational agent runtime."""

from __future__ import annotations

from pydantic import BaseModel, Field

from order_lookup.agent.pipeline import OrderLookupPipeline
from order_lookup.agent.registry import ToolRegistry, ToolSpec

TRACK_ORDER_TOOL = "track_order"

TRACK_ORDER_DESCRIPTION = """
Track order status, shipping information, and delivery updates.
Looks up orders by order number, order ID, email address, or tracking number
and returns a reply ready to show the customer.

IMPORTANT: some stores can only look up an order when given BOTH the order
number and the email address used at checkout. If the customer gives only an
order number, the tool will ask for their email; once you have it, call the
tool again with both values.

Input format:
- Order number and email together: "ORDER_NUMBER|EMAIL" (e.g. "176484|john@example.com")
- Single value: an order number, order ID, email address, or tracking number
  (e.g. "176484", "ORD-2024-001", "jane@example.com" or "1Z999AA10123456784")

Pass only the identifier, never the customer's whole sentence.

Use this tool when customers ask things like "Where is my order?",
"Has my package shipped?" or "I haven't received my package".
""".strip()


class TrackOrderInput(BaseModel):
    query: str = Field(
        default="",
        description='Order number, email, tracking number, or "ORDER_NUMBER|EMAIL".',
    )


def register_order_tools(
    registry: ToolRegistry,
    pipeline: OrderLookupPipeline,
    *,
    tenant_id: str,
) -> None:
    """Register `track_order` bound to one tenant.

    The runtime passes a single string and surfaces the returned string as
    is, so the tool is registered with `return_direct`.
    """

    def _track_order(input_data: TrackOrderInput) -> str:
        return pipeline.lookup_order(tenant_id, input_data.query)

    registry.register(
        ToolSpec(
            name=TRACK_ORDER_TOOL,
            description=TRACK_ORDER_DESCRIPTION,
            args_schema=TrackOrderInput,
            handler=_track_order,
            return_direct=True,
        )
    )
