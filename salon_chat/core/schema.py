"""
Domain records shared by the stores, the orchestrator and the API layer.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

ROLES = ("user", "assistant")


@dataclass
class AddOn:
    name: str
    price: Optional[str] = None


@dataclass
class ServiceDetails:
    """Well-known optional details of a service. Unknown payload fields are ignored."""

    treatment_options: List[str] = field(default_factory=list)
    optional_addons: List[AddOn] = field(default_factory=list)
    not_for: List[str] = field(default_factory=list)
    unit: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ServiceDetails":
        """Build details from a dict, a JSON string or None."""
        if isinstance(payload, str):
            try:
                payload = json.loads(payload) if payload.strip() else {}
            except json.JSONDecodeError:
                return cls()
        if not isinstance(payload, dict):
            return cls()

        addons = []
        for item in _as_list(payload.get("optional_addons")):
            if isinstance(item, dict) and item.get("name"):
                price = item.get("price")
                addons.append(AddOn(name=str(item["name"]), price=None if price is None else str(price)))
            elif isinstance(item, str) and item.strip():
                addons.append(AddOn(name=item.strip()))

        unit = payload.get("unit")
        return cls(
            treatment_options=[str(o) for o in _as_list(payload.get("treatment_options")) if o],
            optional_addons=addons,
            not_for=[str(o) for o in _as_list(payload.get("not_for")) if o],
            unit=str(unit) if unit else None,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serializable form holding only the fields that are present."""
        payload: Dict[str, Any] = {}
        if self.treatment_options:
            payload["treatment_options"] = list(self.treatment_options)
        if self.optional_addons:
            payload["optional_addons"] = [
                {"name": a.name, "price": a.price} if a.price is not None else {"name": a.name}
                for a in self.optional_addons
            ]
        if self.not_for:
            payload["not_for"] = list(self.not_for)
        if self.unit:
            payload["unit"] = self.unit
        return payload

    def is_empty(self) -> bool:
        return not self.to_payload()


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


@dataclass
class CatalogRecord:
    id: str
    name: str
    category: str
    price: str
    description: str
    details: ServiceDetails = field(default_factory=ServiceDetails)


@dataclass(frozen=True)
class ConversationTurn:
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"role must be one of: {list(ROLES)}")

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class Session:
    id: str
    turns: List[ConversationTurn] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
