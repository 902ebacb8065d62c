"""
Request and response models for the chat HTTP surface.
Field names are camelCase on the wire to match the chat widget.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessageRequest(CamelModel):
    # Blank/missing messages are rejected by the orchestrator with a 400
    message: Optional[str] = None
    session_id: Optional[str] = None
    model: Optional[str] = None


class ChatMessageResponse(CamelModel):
    session_id: str
    message: str
    is_new_session: bool
    model: str
    sources: List[str] = []


class ChatTurnResponse(CamelModel):
    role: str
    content: str
    timestamp: datetime


class ChatHistoryResponse(CamelModel):
    session_id: str
    messages: List[ChatTurnResponse]
    created_at: datetime
    updated_at: datetime


class ChatClearResponse(CamelModel):
    session_id: str
    status: str = "cleared"


class ModelListResponse(CamelModel):
    models: List[str]
    default: str


class ModelResponse(CamelModel):
    model: str


class ModelSetRequest(CamelModel):
    # Blank values are rejected by the settings store
    model: Optional[str] = None


class HealthResponse(CamelModel):
    status: str
    version: str
    timestamp: datetime


class VersionResponse(CamelModel):
    name: str
    version: str


class ValidationFieldError(BaseModel):
    field: str
    message: str
    value: Any = None


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = None
    details: Optional[Dict[str, Any]] = None
    errors: Optional[List[ValidationFieldError]] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)
