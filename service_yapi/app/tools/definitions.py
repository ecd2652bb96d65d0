"""
MCP tool declarations for the YApi service.
"""

from typing import Any, Dict, List, Sequence

from mcp import types

HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def _object(properties: Dict[str, Any], required: Sequence[str] = ()) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(required)
    return schema


def _interface_properties() -> Dict[str, Any]:
    return {
        "title": {"type": "string", "description": "Interface title/name"},
        "path": {"type": "string", "description": "API path/endpoint"},
        "method": {"type": "string", "enum": HTTP_METHODS, "description": "HTTP method"},
        "project_id": {"type": "number", "description": "Project ID"},
        "catid": {"type": "number", "description": "Category ID"},
        "desc": {"type": "string", "description": "Interface description"},
        "req_body_type": {"type": "string", "description": "Request body type"},
        "req_body_other": {"type": "string", "description": "Request body content (JSON schema or example)"},
        "res_body": {"type": "string", "description": "Response body content (JSON schema or example)"},
        "res_body_type": {"type": "string", "description": "Response body type"},
        "status": {"type": "string", "description": "Interface status"},
    }


PAGE = {"type": "number", "description": "Page number (default: 1)", "minimum": 1}


TOOL_DEFINITIONS: List[types.Tool] = [
    types.Tool(
        name="yapi_get_projects",
        description="Get list of available YApi projects",
        inputSchema=_object({}),
    ),
    types.Tool(
        name="yapi_get_categories",
        description="Get categories for a specific project",
        inputSchema=_object(
            {"project_id": {"type": "number", "description": "Project ID to get categories for"}},
            ["project_id"],
        ),
    ),
    types.Tool(
        name="yapi_get_interface",
        description="Get detailed information about a specific API interface",
        inputSchema=_object(
            {"interface_id": {"type": "number", "description": "Interface ID to retrieve"}},
            ["interface_id"],
        ),
    ),
    types.Tool(
        name="yapi_search_interfaces",
        description="Search for API interfaces with various filters",
        inputSchema=_object({
            "project_id": {"type": "number", "description": "Project ID to search in"},
            "catid": {"type": "number", "description": "Category ID to filter by"},
            "q": {"type": "string", "description": "Search query string"},
            "page": PAGE,
            "limit": {
                "type": "number",
                "description": "Number of results per page (default: 20, max: 100)",
                "minimum": 1,
                "maximum": 100,
            },
        }),
    ),
    types.Tool(
        name="yapi_create_interface",
        description="Create a new API interface",
        inputSchema=_object(
            _interface_properties(),
            ["title", "path", "method", "project_id", "catid"],
        ),
    ),
    types.Tool(
        name="yapi_update_interface",
        description="Update an existing API interface",
        inputSchema=_object(
            {"id": {"type": "number", "description": "Interface ID to update"}, **_interface_properties()},
            ["id", "title", "path", "method", "project_id", "catid"],
        ),
    ),
    types.Tool(
        name="yapi_delete_interface",
        description="Delete an API interface by ID",
        inputSchema=_object(
            {"interface_id": {"type": "number", "description": "Interface ID to delete"}},
            ["interface_id"],
        ),
    ),
    types.Tool(
        name="yapi_create_category",
        description="Create a new API category",
        inputSchema=_object(
            {
                "name": {"type": "string", "description": "Category name"},
                "project_id": {"type": "number", "description": "Project ID"},
                "desc": {"type": "string", "description": "Category description"},
            },
            ["name", "project_id"],
        ),
    ),
    types.Tool(
        name="yapi_get_interface_menu",
        description="Get interface menu list with category structure",
        inputSchema=_object(
            {"project_id": {"type": "number", "description": "Project ID"}},
            ["project_id"],
        ),
    ),
    types.Tool(
        name="yapi_list_category_interfaces",
        description="Get interfaces within a specific category",
        inputSchema=_object(
            {
                "catid": {"type": "number", "description": "Category ID"},
                "page": PAGE,
                "limit": {
                    "type": "number",
                    "description": "Number of results per page (default: 20)",
                    "minimum": 1,
                    "maximum": 100,
                },
            },
            ["catid"],
        ),
    ),
    types.Tool(
        name="yapi_import_data",
        description="Import interface data from external sources",
        inputSchema=_object(
            {
                "type": {
                    "type": "string",
                    "enum": ["swagger", "postman", "har", "json"],
                    "description": "Import data type",
                },
                "project_id": {"type": "number", "description": "Target project ID"},
                "catid": {"type": "number", "description": "Target category ID"},
                "sync_mode": {
                    "type": "string",
                    "enum": ["normal", "good", "merge"],
                    "description": "Sync mode: normal (normal), good (intelligent merge), merge (completely overwrite)",
                },
                "data_source": {"type": "string", "description": "Import data source (JSON string or URL)"},
            },
            ["type", "project_id", "catid", "data_source"],
        ),
    ),
    types.Tool(
        name="yapi_clear_cache",
        description="Clear the internal cache to force fresh data retrieval",
        inputSchema=_object({}),
    ),
]
