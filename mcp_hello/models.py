# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP capability data model.

Internal attribute names are snake_case; the wire format is MCP camelCase
(``inputSchema``, ``mimeType``, ``isError``) via pydantic aliases.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WireModel(BaseModel):
    """Base model serialised with MCP field names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# DEFINITIONS
# =============================================================================

class ToolDefinition(WireModel):
    """MCP Tool Definition"""
    name: str
    description: str
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )


class ResourceDefinition(WireModel):
    """MCP Resource Definition"""
    uri: str
    mime_type: str = Field(alias="mimeType")
    name: str
    description: str


class PromptArgument(WireModel):
    """Single declared prompt argument"""
    name: str
    description: str
    required: bool = False


class PromptDefinition(WireModel):
    """MCP Prompt Definition"""
    name: str
    description: str
    arguments: List[PromptArgument] = Field(default_factory=list)


# =============================================================================
# RESULTS
# =============================================================================

class ContentItem(WireModel):
    """One item of tool output"""
    type: Literal["text", "image", "resource"] = "text"
    text: Optional[str] = None
    data: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class ToolResult(WireModel):
    """Response from a tool call"""
    content: List[ContentItem] = Field(min_length=1)
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResult":
        return cls(content=[ContentItem(type="text", text=text)], is_error=is_error)


class ResourceContents(WireModel):
    """Contents of one resource; exactly one of text or blob (base64)"""
    uri: str
    mime_type: str = Field(alias="mimeType")
    text: Optional[str] = None
    blob: Optional[str] = None

    @model_validator(mode="after")
    def _text_or_blob(self) -> "ResourceContents":
        if (self.text is None) == (self.blob is None):
            raise ValueError("resource contents need exactly one of 'text' or 'blob'")
        return self


class ResourceResult(WireModel):
    """Response from a resource read"""
    contents: List[ResourceContents] = Field(min_length=1)


class TextContent(WireModel):
    type: Literal["text"] = "text"
    text: str


class PromptMessage(WireModel):
    role: Literal["user", "assistant"]
    content: TextContent


class PromptResult(WireModel):
    """Response from a prompt get"""
    description: Optional[str] = None
    messages: List[PromptMessage] = Field(min_length=1)


# =============================================================================
# REQUEST CONTEXT
# =============================================================================

@dataclass(frozen=True)
class RequestContext:
    """Per-invocation correlation data; carries no state across calls."""
    capability_kind: str
    request_id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None

    def as_log_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "request_id": self.request_id,
            "capability_kind": self.capability_kind,
        }
        if self.session_id:
            fields["session_id"] = self.session_id
        return fields
