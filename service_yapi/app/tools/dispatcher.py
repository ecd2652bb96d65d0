"""
Tool dispatcher mapping MCP tool calls onto the YApi client.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

from mcp import types
from pydantic import BaseModel, ValidationError as PydanticValidationError

from shared.errors import ValidationError, YApiAccessError
from shared.logging import clear_context, get_logger, set_request_id
from shared.metrics import MetricsCollector

from service_yapi.app.adapters import YApiClient
from service_yapi.app.domain import (
    CategoryInterfacesParams,
    CreateApiParams,
    CreateCategoryParams,
    ImportDataParams,
    InterfaceIdParams,
    ProjectIdParams,
    SearchApiParams,
    UpdateApiParams,
)
from .definitions import TOOL_DEFINITIONS

P = TypeVar("P", bound=BaseModel)
Handler = Callable[[Dict[str, Any]], Awaitable[str]]


def render(data: Any) -> str:
    """Serialize a result for a text content block."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def parse_arguments(tool: str, model: Type[P], arguments: Dict[str, Any]) -> P:
    """Validate tool arguments, raising ValidationError with readable messages."""
    try:
        return model.model_validate(arguments)
    except PydanticValidationError as exc:
        problems = []
        for error in exc.errors(include_url=False):
            location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
            problems.append(f"{location}: {error.get('msg', 'invalid value')}")
        raise ValidationError(
            f"Invalid arguments for {tool}: {'; '.join(problems)}",
            details={"tool": tool, "errors": problems},
        ) from exc


class ToolDispatcher:
    """Routes protocol tool names to client operations and formats results."""

    def __init__(self, client: YApiClient, metrics: Optional[MetricsCollector] = None):
        self.client = client
        self.metrics = metrics or client.metrics
        self.logger = get_logger("yapi.tools")
        self._handlers: Dict[str, Handler] = {
            "yapi_get_projects": self._get_projects,
            "yapi_get_categories": self._get_categories,
            "yapi_get_interface": self._get_interface,
            "yapi_search_interfaces": self._search_interfaces,
            "yapi_create_interface": self._create_interface,
            "yapi_update_interface": self._update_interface,
            "yapi_delete_interface": self._delete_interface,
            "yapi_create_category": self._create_category,
            "yapi_get_interface_menu": self._get_interface_menu,
            "yapi_list_category_interfaces": self._list_category_interfaces,
            "yapi_import_data": self._import_data,
            "yapi_clear_cache": self._clear_cache,
        }

    def list_tools(self) -> List[types.Tool]:
        return list(TOOL_DEFINITIONS)

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> List[types.TextContent]:
        """Execute a tool and return its text content; failures propagate."""
        handler = self._handlers.get(name)
        if handler is None:
            self.metrics.increment_counter("tool_calls_total", tool="unknown", status="error")
            raise ValidationError(f"Unknown tool: {name}", details={"tool": name})

        set_request_id()
        try:
            self.logger.info("Tool call received", tool=name)
            try:
                text = await handler(arguments or {})
            except YApiAccessError as exc:
                self.metrics.increment_counter("tool_calls_total", tool=name, status="error")
                self.logger.error("Tool execution error", tool=name, code=exc.code, error=exc.message)
                raise
            except Exception:
                self.metrics.increment_counter("tool_calls_total", tool=name, status="error")
                self.logger.exception("Unexpected tool execution error", tool=name)
                raise

            self.metrics.increment_counter("tool_calls_total", tool=name, status="success")
            return [types.TextContent(type="text", text=text)]
        finally:
            clear_context()

    # Handlers

    async def _get_projects(self, arguments: Dict[str, Any]) -> str:
        return render(await self.client.get_projects())

    async def _get_categories(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_get_categories", ProjectIdParams, arguments)
        return render(await self.client.get_categories(args.project_id))

    async def _get_interface(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_get_interface", InterfaceIdParams, arguments)
        return render(await self.client.get_interface(args.interface_id))

    async def _search_interfaces(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_search_interfaces", SearchApiParams, arguments)
        return render(await self.client.search_interfaces(args))

    async def _create_interface(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_create_interface", CreateApiParams, arguments)
        result = await self.client.create_interface(args)
        return f"Interface created successfully: {render(result)}"

    async def _update_interface(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_update_interface", UpdateApiParams, arguments)
        result = await self.client.update_interface(args)
        return f"Interface updated successfully: {render(result)}"

    async def _delete_interface(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_delete_interface", InterfaceIdParams, arguments)
        await self.client.delete_interface(args.interface_id)
        return f"Interface {args.interface_id} deleted successfully"

    async def _create_category(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_create_category", CreateCategoryParams, arguments)
        result = await self.client.create_category(args)
        return f"Category created successfully: {render(result)}"

    async def _get_interface_menu(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_get_interface_menu", ProjectIdParams, arguments)
        return render(await self.client.get_interface_menu(args.project_id))

    async def _list_category_interfaces(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_list_category_interfaces", CategoryInterfacesParams, arguments)
        result = await self.client.list_category_interfaces(args.catid, args.page, args.limit)
        return render(result)

    async def _import_data(self, arguments: Dict[str, Any]) -> str:
        args = parse_arguments("yapi_import_data", ImportDataParams, arguments)
        result = await self.client.import_data(args)
        return f"Data imported successfully: {render(result)}"

    async def _clear_cache(self, arguments: Dict[str, Any]) -> str:
        self.client.clear_cache()
        return "Cache cleared successfully"
