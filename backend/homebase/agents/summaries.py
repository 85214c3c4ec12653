"""
Template-based reply text for the HomeBase AI turn engine.

Deterministic (no LLM) helpers:
  - Cost formatting shared by tool payloads and replies: "$150-$250"
  - The fallback synthesizer, used when the model's closing reply is empty
    or too short to be useful.

Fallback formats:
  Service request:
    I've created your service request: AC blowing warm air, likely a
    refrigerant leak. Severity: moderate. Estimated cost: $150-$250.
    Matched providers: Cool Air Co, Polar HVAC.
    Is there anything else you'd like to add, like access notes or
    preferred times?

  Property lookup:
    I found your home at 12 Oak St, Austin, TX 78701 (3 bd / 2 ba,
    1,850 sqft). What service do you need help with?

The synthesizer only reads the result it is given. It never calls out.
"""

from homebase.models.chat import ToolResult, UIResultType, UserRole

HOMEOWNER_GENERIC_REPLY = (
    "I'm here to help with your home. Tell me what's going on, like what you're "
    "noticing, where it is, and when it started, and I'll help you get it fixed."
)

PROVIDER_GENERIC_REPLY = (
    "I'm here to help you run your business. I can pull up client details, "
    "check your schedule, or help prioritize your open jobs. What would you like to do?"
)

MAX_PROVIDER_NAMES = 3


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def fmt_dollars(value: int | float) -> str:
    """Format a value as whole US dollars with thousands separator."""
    return f"${float(value):,.0f}"


def format_cost_range(min_val: int | float | None, max_val: int | float | None) -> str:
    """Format a cost range as '$150-$250'."""
    if min_val is not None and max_val is not None:
        if round(float(min_val)) == round(float(max_val)):
            return fmt_dollars(min_val)
        return f"{fmt_dollars(min_val)}-{fmt_dollars(max_val)}"
    if min_val is not None:
        return f"from {fmt_dollars(min_val)}"
    if max_val is not None:
        return f"up to {fmt_dollars(max_val)}"
    return "price to be confirmed"


def _fmt_home_facts(home: dict) -> str:
    parts = []
    beds = home.get("beds")
    baths = home.get("baths")
    sqft = home.get("sqft")
    if beds is not None and baths is not None:
        parts.append(f"{_fmt_number(beds)} bd / {_fmt_number(baths)} ba")
    if sqft:
        parts.append(f"{float(sqft):,.0f} sqft")
    return ", ".join(parts)


def _fmt_number(value: int | float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"


# ---------------------------------------------------------------------------
# Fallback synthesizer
# ---------------------------------------------------------------------------


def _service_request_reply(data: dict) -> str:
    summary = (data.get("summary") or "your issue").strip().rstrip(".")
    lines = [f"I've created your service request: {summary}."]

    details = []
    if data.get("severity"):
        details.append(f"Severity: {data['severity']}.")
    if data.get("cost_range"):
        details.append(f"Estimated cost: {data['cost_range']}.")
    if details:
        lines.append(" ".join(details))

    names = [p.get("name") for p in data.get("providers") or [] if p.get("name")]
    if names:
        lines.append(f"Matched providers: {', '.join(names[:MAX_PROVIDER_NAMES])}.")
    else:
        lines.append("We're finding trusted providers near you and will follow up shortly.")

    lines.append(
        "Is there anything else you'd like to add, like access notes or preferred times?"
    )
    return "\n".join(lines)


def _property_reply(data: dict) -> str:
    address = data.get("address_std") or "your home"
    facts = _fmt_home_facts(data.get("home") or {})
    found = f"I found your home at {address}"
    if facts:
        found += f" ({facts})"
    return f"{found}. What service do you need help with?"


def generic_reply(role: str | UserRole) -> str:
    """Role-specific greeting prompt used when there is nothing else to say."""
    if role == UserRole.PROVIDER:
        return PROVIDER_GENERIC_REPLY
    return HOMEOWNER_GENERIC_REPLY


def synthesize_reply(last_result: ToolResult | None, role: str | UserRole) -> str:
    """
    Build a reply from the last tool result of the turn.

    Priority:
      1. service_request UI result → confirmation with summary, severity,
         cost range and matched provider names
      2. property UI result → acknowledgement + what service is needed
      3. anything else (no results, failed result, model-only payload) →
         role-specific generic prompt
    """
    ui = last_result.ui if last_result is not None else None
    if ui is not None and ui.type == UIResultType.SERVICE_REQUEST.value:
        return _service_request_reply(ui.data)
    if ui is not None and ui.type == UIResultType.PROPERTY.value:
        return _property_reply(ui.data)
    return generic_reply(role)
