"""
Domain models for the YApi service.
"""

from .models import (
    CategoryInterfacesParams,
    CreateApiParams,
    CreateCategoryParams,
    HttpMethod,
    ImportDataParams,
    ImportType,
    InterfaceIdParams,
    ProjectIdParams,
    SearchApiParams,
    SyncMode,
    UpdateApiParams,
    YApiEnvelope,
)

__all__ = [
    "CategoryInterfacesParams",
    "CreateApiParams",
    "CreateCategoryParams",
    "HttpMethod",
    "ImportDataParams",
    "ImportType",
    "InterfaceIdParams",
    "ProjectIdParams",
    "SearchApiParams",
    "SyncMode",
    "UpdateApiParams",
    "YApiEnvelope",
]
