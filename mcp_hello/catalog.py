# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Hello World capability catalog
Tools (say_hello, get_time), resources (users, config, welcome) and
prompts (greeting, introduction).
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict

from mcp_hello.models import (
    PromptArgument,
    PromptDefinition,
    PromptMessage,
    PromptResult,
    ResourceContents,
    ResourceDefinition,
    ResourceResult,
    TextContent,
    ToolDefinition,
    ToolResult,
)
from mcp_hello.registry import CapabilityRegistry
from mcp_hello.validators import validate_choice, validate_string


SERVER_DISPLAY_NAME = "Hello World MCP Server"

SAMPLE_USERS = [
    {"id": 1, "name": "Alice", "email": "alice@example.com"},
    {"id": 2, "name": "Bob", "email": "bob@example.com"},
]

SAMPLE_CONFIG = {
    "serverName": SERVER_DISPLAY_NAME,
    "version": "1.0.0",
    "features": ["tools", "resources", "prompts"],
}

WELCOME_MESSAGE = """Welcome to the MCP Hello World Server!

This is a minimal example demonstrating:
- Tools (say_hello, get_time)
- Resources (users, config, welcome)
- Prompts (greeting, introduction)

Try using the MCP Inspector to explore all features!"""

USERS_URI = "data://users"
CONFIG_URI = "data://config"
WELCOME_URI = "text://welcome"

GREETING_STYLES = ("formal", "casual", "friendly")
AUDIENCE_TYPES = ("developer", "user", "manager")


# =============================================================================
# TOOLS
# =============================================================================

SAY_HELLO = ToolDefinition(
    name="say_hello",
    description="Says hello to a person with an optional custom message",
    input_schema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "The name of the person to greet"},
            "message": {"type": "string", "description": "Optional custom message"},
        },
        "required": ["name"],
    },
)

GET_TIME = ToolDefinition(
    name="get_time",
    description="Returns the current server time",
    input_schema={"type": "object", "properties": {}},
)


def validate_say_hello(arguments: Dict[str, Any]) -> None:
    validate_string(arguments.get("name"), "name", required=True, min_length=1, max_length=100)
    validate_string(arguments.get("message"), "message", required=False, max_length=500)


def say_hello(arguments: Dict[str, Any]) -> ToolResult:
    name = arguments.get("name")
    message = arguments.get("message")
    if message:
        greeting = f"{message}, {name}!"
    else:
        greeting = f"Hello, {name}! Welcome to the MCP Hello World Server."
    return ToolResult.text(greeting)


def get_time(arguments: Dict[str, Any]) -> ToolResult:
    now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return ToolResult.text(f"Current server time: {now}")


# =============================================================================
# RESOURCES
# =============================================================================

RESOURCES = [
    ResourceDefinition(
        uri=USERS_URI,
        mime_type="application/json",
        name="User List",
        description="A list of sample users",
    ),
    ResourceDefinition(
        uri=CONFIG_URI,
        mime_type="application/json",
        name="Server Configuration",
        description="Server configuration and metadata",
    ),
    ResourceDefinition(
        uri=WELCOME_URI,
        mime_type="text/plain",
        name="Welcome Message",
        description="A simple welcome message",
    ),
]

_RESOURCE_BODIES = {
    USERS_URI: lambda: json.dumps(SAMPLE_USERS, indent=2),
    CONFIG_URI: lambda: json.dumps(SAMPLE_CONFIG, indent=2),
    WELCOME_URI: lambda: WELCOME_MESSAGE,
}


def read_static_resource(uri: str) -> ResourceResult:
    definition = next(r for r in RESOURCES if r.uri == uri)
    return ResourceResult(contents=[
        ResourceContents(uri=uri, mime_type=definition.mime_type, text=_RESOURCE_BODIES[uri]())
    ])


# =============================================================================
# PROMPTS
# =============================================================================

GREETING = PromptDefinition(
    name="greeting",
    description="Generate a personalized greeting message",
    arguments=[
        PromptArgument(name="name", description="The name of the person to greet", required=True),
        PromptArgument(name="style", description="Greeting style (formal, casual, friendly)", required=False),
    ],
)

INTRODUCTION = PromptDefinition(
    name="introduction",
    description="Generate an introduction to MCP concepts",
    arguments=[
        PromptArgument(name="audience", description="Target audience (developer, user, manager)", required=False),
    ],
)

_GREETING_TEMPLATES = {
    "formal": "Generate a formal greeting for {name}. Use professional language and proper etiquette.",
    "casual": "Generate a casual, relaxed greeting for {name}. Keep it informal and approachable.",
    "friendly": "Generate a friendly and warm greeting for {name}. Make it welcoming and positive.",
}

_INTRODUCTION_TEMPLATES = {
    "developer": (
        "Explain Model Context Protocol (MCP) for developers. Include technical details, "
        "implementation concepts, and practical examples."
    ),
    "user": (
        "Explain Model Context Protocol (MCP) in simple terms for end users. Focus on benefits "
        "and what it means for their AI experience."
    ),
    "manager": (
        "Explain Model Context Protocol (MCP) for technical managers. Focus on business value, "
        "integration benefits, and strategic advantages."
    ),
}


def validate_greeting(arguments: Dict[str, Any]) -> None:
    validate_string(arguments.get("name"), "name", required=True, min_length=1, max_length=100)
    validate_choice(arguments.get("style"), "style", GREETING_STYLES)


def validate_introduction(arguments: Dict[str, Any]) -> None:
    validate_choice(arguments.get("audience"), "audience", AUDIENCE_TYPES)


def _user_prompt(text: str, description: str) -> PromptResult:
    return PromptResult(
        description=description,
        messages=[PromptMessage(role="user", content=TextContent(text=text))],
    )


def greeting_prompt(arguments: Dict[str, Any]) -> PromptResult:
    name = arguments.get("name") or "there"
    style = arguments.get("style") or "friendly"
    if style not in _GREETING_TEMPLATES:
        style = "friendly"
    return _user_prompt(
        _GREETING_TEMPLATES[style].format(name=name),
        f"{style.capitalize()} greeting for {name}",
    )


def introduction_prompt(arguments: Dict[str, Any]) -> PromptResult:
    audience = arguments.get("audience") or "developer"
    if audience not in _INTRODUCTION_TEMPLATES:
        audience = "developer"
    return _user_prompt(
        _INTRODUCTION_TEMPLATES[audience],
        f"Introduction to MCP for {audience}s",
    )


# =============================================================================
# REGISTRY
# =============================================================================

def build_registry(validate_arguments: bool = True) -> CapabilityRegistry:
    """Create a registry holding the full Hello World catalog."""
    registry = CapabilityRegistry(validate_arguments=validate_arguments)

    registry.register_tool(SAY_HELLO, say_hello, validator=validate_say_hello)
    registry.register_tool(GET_TIME, get_time)

    for resource in RESOURCES:
        registry.register_resource(resource, read_static_resource)

    registry.register_prompt(GREETING, greeting_prompt, validator=validate_greeting)
    registry.register_prompt(INTRODUCTION, introduction_prompt, validator=validate_introduction)

    return registry
