"""
Data models for the YApi service.

Tool arguments are validated with these models before they reach the
client; ``to_payload`` drops unset fields so the remote platform only sees
what the caller supplied.
"""

from typing import Any, Dict, Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class HttpMethod(str, Enum):
    """HTTP methods an interface can declare."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ImportType(str, Enum):
    """Formats accepted by the import endpoint."""
    SWAGGER = "swagger"
    POSTMAN = "postman"
    HAR = "har"
    JSON = "json"


class SyncMode(str, Enum):
    """How imported interfaces are merged with existing ones."""
    NORMAL = "normal"
    GOOD = "good"
    MERGE = "merge"


class YApiEnvelope(BaseModel):
    """Response wrapper used by every YApi endpoint."""

    model_config = ConfigDict(extra="allow")

    errcode: int
    errmsg: str = ""
    data: Any = None


class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ProjectIdParams(_Params):
    project_id: int


class InterfaceIdParams(_Params):
    interface_id: int


class SearchApiParams(_Params):
    """Filter set for interface search."""

    project_id: Optional[int] = None
    catid: Optional[int] = None
    q: Optional[str] = None
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=100)


class CreateApiParams(_Params):
    """Fields for creating an interface."""

    title: str
    path: str
    method: HttpMethod
    project_id: int
    catid: int
    desc: Optional[str] = None
    req_body_type: Optional[str] = None
    req_body_other: Optional[str] = None
    res_body: Optional[str] = None
    res_body_type: Optional[str] = None
    status: Optional[str] = None


class UpdateApiParams(CreateApiParams):
    """Fields for updating an interface."""

    id: int


class CreateCategoryParams(_Params):
    name: str
    project_id: int
    desc: Optional[str] = None


class CategoryInterfacesParams(_Params):
    catid: int
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class ImportDataParams(_Params):
    """External data to import into a project category."""

    type: ImportType
    project_id: int
    catid: int
    sync_mode: SyncMode = Field(default=SyncMode.NORMAL, validate_default=True)
    data_source: str

    @property
    def is_url(self) -> bool:
        return self.data_source.startswith(("http://", "https://"))
