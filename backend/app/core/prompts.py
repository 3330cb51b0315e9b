"""Prompt Construction — pure helpers shared by every reply generator.

Invariants:
    - Same SYSTEM_PROMPT for all providers (consistent persona across fallback)
    - The new user message is sent exactly once: the persisted copy at the
      tail of history is dropped before rendering
    - normalize_turns output starts with a user turn and strictly alternates

Design Decisions:
    - Pure functions, no SDK imports: providers translate these neutral
      (role, content) pairs into their own request shapes
"""

from collections.abc import Sequence

from app.core.domain_types import MessageRecord, SenderRole

SYSTEM_PROMPT = """You are a helpful and friendly customer support agent for "TechStyle Electronics", an online e-commerce store specializing in consumer electronics and accessories.

## Your Role
- Provide accurate, helpful, and concise answers to customer questions
- Be polite, professional, and empathetic
- If you don't know something, admit it and offer to connect them with a human agent
- Keep responses clear and to the point

## Store Information

### Shipping Policy
- Standard Shipping: 5-7 business days, FREE on orders over $50
- Express Shipping: 2-3 business days, $9.99
- Overnight Shipping: Next business day, $24.99
- We ship to all 50 US states
- International shipping available to select countries (additional fees apply)
- Orders placed before 2 PM EST ship same day

### Return & Refund Policy
- 30-day return window from delivery date
- Items must be unused and in original packaging
- Electronics with defects can be returned within 90 days
- Refunds are processed within 5-7 business days after we receive the return
- Free return shipping for defective items
- Exchanges are free and prioritized

### Support Hours
- Live Chat: Monday-Friday, 9 AM - 8 PM EST
- Email Support: 24/7 (responses within 24 hours)
- Phone Support: Monday-Friday, 10 AM - 6 PM EST at 1-800-TECH-STY

### Popular Categories
- Smartphones & Tablets
- Laptops & Computers
- Audio & Headphones
- Smart Home Devices
- Cameras & Accessories
- Gaming & Entertainment

## Guidelines
- Answer questions about orders, shipping, returns, and products
- For order-specific questions, ask for the order number
- Never make up product information or prices
- If asked about something outside your knowledge, politely redirect"""

FALLBACK_MESSAGE = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Please try again in a moment, or contact our support team if the issue persists."
)

_ROLE_LABELS = {
    SenderRole.USER: "Customer",
    SenderRole.ASSISTANT: "Support Agent",
}


def throttle_message(retry_after_seconds: int | None, default: int = 60) -> str:
    """User-facing reply for a request rejected by the rate limiter."""
    wait = retry_after_seconds or default
    return (
        f"You're sending messages too quickly. "
        f"Please wait {wait} seconds before trying again."
    )


def prior_turns(
    history: Sequence[MessageRecord], message: str,
) -> list[MessageRecord]:
    """History without the trailing persisted copy of the current message."""
    turns = list(history)
    if (
        turns
        and turns[-1].role is SenderRole.USER
        and turns[-1].content == message
    ):
        turns.pop()
    return turns


def render_transcript(history: Sequence[MessageRecord]) -> str:
    """Render history as labelled lines for single-prompt providers."""
    if not history:
        return "(No previous messages)"
    return "\n".join(
        f"{_ROLE_LABELS[m.role]}: {m.content}" for m in history
    )


def build_single_prompt(history: Sequence[MessageRecord], message: str) -> str:
    """Full prompt body (without system instruction) for Gemini-style calls."""
    transcript = render_transcript(prior_turns(history, message))
    return (
        f"## Recent Conversation\n{transcript}\n\n"
        f"## Current Customer Message\n{message}\n\n"
        "Please provide a helpful response:"
    )


def build_chat_turns(
    history: Sequence[MessageRecord], message: str,
) -> list[dict[str, str]]:
    """Role-tagged turns ending with the current user message."""
    turns = [
        {"role": m.role.value, "content": m.content}
        for m in prior_turns(history, message)
    ]
    turns.append({"role": SenderRole.USER.value, "content": message})
    return turns


def normalize_turns(turns: list[dict[str, str]]) -> list[dict[str, str]]:
    """Merge same-role neighbours and drop leading assistant turns.

    Needed for providers that reject non-alternating conversations, e.g. a
    user message left without a reply by an earlier failed request.
    """
    merged: list[dict[str, str]] = []
    for turn in turns:
        if not merged and turn["role"] != SenderRole.USER.value:
            continue
        if merged and merged[-1]["role"] == turn["role"]:
            merged[-1] = {
                "role": turn["role"],
                "content": f"{merged[-1]['content']}\n\n{turn['content']}",
            }
        else:
            merged.append(dict(turn))
    return merged
