"""
Prompt assembly: renders retrieved services into a context block and builds
the message list sent to the completion provider.
"""

from typing import Dict, List, Optional, Sequence

from . import config
from .schema import CatalogRecord, ConversationTurn, ServiceDetails

CONTEXT_HEADER = "Here is information about relevant salon services:"


def system_preamble(salon_name: Optional[str] = None) -> str:
    salon_name = salon_name or config.SALON_NAME
    return (
        f"You are a helpful assistant for {salon_name}. Answer questions about salon services, "
        "pricing, and general hair care advice based on the provided information. If you don't know "
        "the answer, suggest that the user contact the salon directly. Be friendly, professional, and concise."
    )


def render_details(details: ServiceDetails) -> List[str]:
    """Labeled lines for the details that are present."""
    lines = []
    if details.treatment_options:
        lines.append("Treatment options: " + ", ".join(details.treatment_options))
    if details.optional_addons:
        addons = [f"{a.name} (${a.price})" if a.price else a.name for a in details.optional_addons]
        lines.append("Optional add-ons: " + ", ".join(addons))
    if details.not_for:
        lines.append("Not suitable for: " + ", ".join(details.not_for))
    if details.unit:
        lines.append(f"Priced per {details.unit}")
    return lines


def render_service(record: CatalogRecord) -> str:
    lines = [
        f"Service: {record.name}",
        f"Category: {record.category}",
        f"Price: {record.price}",
        f"Description: {record.description}",
    ]
    lines.extend(render_details(record.details))
    return "\n".join(lines)


def build_context_block(records: Sequence[CatalogRecord]) -> str:
    """One paragraph per record; empty string when nothing was retrieved."""
    if not records:
        return ""
    paragraphs = [render_service(r) for r in records]
    return CONTEXT_HEADER + "\n\n" + "\n\n".join(paragraphs)


def build_system_prompt(records: Sequence[CatalogRecord], salon_name: Optional[str] = None) -> str:
    preamble = system_preamble(salon_name)
    context = build_context_block(records)
    if not context:
        return preamble
    return f"{preamble}\n\n{context}"


def build_messages(records: Sequence[CatalogRecord], history: Sequence[ConversationTurn],
                   salon_name: Optional[str] = None) -> List[Dict[str, str]]:
    """System turn first, then the stored transcript in chronological order."""
    messages = [{"role": "system", "content": build_system_prompt(records, salon_name)}]
    messages.extend(turn.to_message() for turn in history)
    return messages
