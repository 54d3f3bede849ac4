"""
Case-Memory Reply Synthesis
===========================

Turns a stored case-memory summary into a short suggestion for a new
customer with a similar problem.
"""

import re
from typing import Optional

_ROLE_TAG = re.compile(r"\b(?:Agent|User/Bot|User|Support Bot)\s*:\s*", re.IGNORECASE)
_PIPE = re.compile(r"\|\s*")
_SPACES = re.compile(r"\s{2,}")
_SUMMARY_MARKER = re.compile(r"Resolution Summary\s*:\s*(.+)", re.IGNORECASE | re.DOTALL)
_SENTENCE_BREAK = re.compile(r"(?<=[.?!])\s+")

_REFUND = re.compile(r"refund", re.IGNORECASE)
_REPLACEMENT = re.compile(r"replace|replacement", re.IGNORECASE)


def clean_transcript(text: Optional[str]) -> str:
    """Strip role tags and pipe separators, then collapse whitespace."""
    cleaned = _ROLE_TAG.sub("", str(text or ""))
    cleaned = _PIPE.sub(" ", cleaned)
    cleaned = _SPACES.sub(" ", cleaned)
    return cleaned.strip()


def pick_resolution_summary(text: str) -> str:
    """Prefer the text after "Resolution Summary:", else the first two sentences."""
    match = _SUMMARY_MARKER.search(text or "")
    if match and match.group(1).strip():
        return match.group(1).strip()
    return " ".join(_SENTENCE_BREAK.split(text or "")[:2]).strip()


def infer_action(summary: str) -> str:
    if _REFUND.search(summary):
        return "issue a refund"
    if _REPLACEMENT.search(summary):
        return "send a replacement"
    return "resolve this for you"


def _item_phrase(product_name: Optional[str], missing_qty: Optional[int]) -> str:
    if missing_qty and product_name:
        plural = "s" if int(missing_qty) > 1 else ""
        return f"{missing_qty} {product_name}{plural}"
    if product_name:
        return f"the {product_name}"
    return "the missing item"


def build_memory_reply(
    raw_summary: str,
    order_id: Optional[str] = None,
    product_name: Optional[str] = None,
    missing_qty: Optional[int] = None
) -> str:
    """
    Compose a reply suggesting the action that resolved a similar case.

    Example:
        build_memory_reply("Resolution Summary: Agent: refund issued", "ORD-1", "mug")
        -> "I've handled a similar case before: refund issued. For your case
            for order ORD-1, I can issue a refund for the mug right away or
            connect you with a specialist. Would you like me to proceed?"
    """
    cleaned = clean_transcript(raw_summary)
    summary = pick_resolution_summary(cleaned) or cleaned
    summary = summary.rstrip(".")

    order_part = f" for order {order_id}" if order_id else ""
    return (
        f"I've handled a similar case before: {summary}. "
        f"For your case{order_part}, I can {infer_action(summary)} for "
        f"{_item_phrase(product_name, missing_qty)} right away or connect you "
        f"with a specialist. Would you like me to proceed?"
    )
