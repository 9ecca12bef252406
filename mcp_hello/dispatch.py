# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dispatch Facade
The single call surface every transport binds to.

Request params are decoded once into one of three closed variants
(ListRequest, InvokeRequest, ReadRequest). Anything that does not match is
rejected with BadRequest before it reaches the registry.
"""

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from mcp_hello.core.errors import BadRequest
from mcp_hello.registry import CapabilityRegistry


class ListRequest(BaseModel):
    """tools/list, resources/list, prompts/list"""
    model_config = ConfigDict(extra="allow", frozen=True)
    cursor: Optional[StrictStr] = None


class InvokeRequest(BaseModel):
    """tools/call, prompts/get"""
    model_config = ConfigDict(extra="allow", frozen=True)
    name: StrictStr
    arguments: Optional[Dict[str, Any]] = None


class ReadRequest(BaseModel):
    """resources/read"""
    model_config = ConfigDict(extra="allow", frozen=True)
    uri: StrictStr


RequestT = TypeVar("RequestT", bound=BaseModel)


def decode_request(variant: Type[RequestT], params: Any) -> RequestT:
    """
    Decode raw JSON-RPC params into a request variant.

    Raises:
        BadRequest: params is not an object or a field is missing / mistyped
    """
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise BadRequest("Request params must be an object", field="params")
    try:
        return variant.model_validate(params)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        first = fields[0] if fields else "params"
        raise BadRequest(
            f"Invalid request field '{first}': {e.errors()[0]['msg']}",
            field=first,
            details={"fields": fields},
        )


class Dispatcher:
    """Six capability operations shared by all transports."""

    def __init__(self, registry: CapabilityRegistry):
        self.registry = registry

    async def list_tools(self, params: Any = None) -> Dict[str, Any]:
        decode_request(ListRequest, params)
        return {"tools": [tool.to_wire() for tool in self.registry.list_tools()]}

    async def call_tool(self, params: Any) -> Dict[str, Any]:
        request = decode_request(InvokeRequest, params)
        result = await self.registry.invoke_tool(request.name, request.arguments)
        return result.to_wire()

    async def list_resources(self, params: Any = None) -> Dict[str, Any]:
        decode_request(ListRequest, params)
        return {"resources": [resource.to_wire() for resource in self.registry.list_resources()]}

    async def read_resource(self, params: Any) -> Dict[str, Any]:
        request = decode_request(ReadRequest, params)
        result = await self.registry.read_resource(request.uri)
        return result.to_wire()

    async def list_prompts(self, params: Any = None) -> Dict[str, Any]:
        decode_request(ListRequest, params)
        return {"prompts": [prompt.to_wire() for prompt in self.registry.list_prompts()]}

    async def get_prompt(self, params: Any) -> Dict[str, Any]:
        request = decode_request(InvokeRequest, params)
        result = await self.registry.get_prompt(request.name, request.arguments)
        return result.to_wire()
