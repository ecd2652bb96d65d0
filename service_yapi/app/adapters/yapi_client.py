"""
YApi platform client.

Single point of access to the remote platform: authentication, transport,
envelope validation and read caching all happen here.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from shared.config import YApiSettings
from shared.errors import (
    AuthenticationError,
    RemoteApiError,
    TransportError,
    ValidationError,
    YApiAccessError,
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector, get_metrics_collector

from service_yapi.app.auth import AuthStrategy, CredentialAuth, NoAuth, TokenAuth, select_auth
from service_yapi.app.caching import ExpiringCache
from service_yapi.app.domain import (
    CreateApiParams,
    CreateCategoryParams,
    ImportDataParams,
    SearchApiParams,
    UpdateApiParams,
    YApiEnvelope,
)

P = TypeVar("P", bound=BaseModel)

LOGIN_ENDPOINT = "/api/user/login"

# Cache namespaces
PROJECTS = "projects"
CATEGORIES = "categories"
INTERFACE = "interface"
INTERFACE_MENU = "interface_menu"


def cache_key(namespace: str, identifier: Optional[Any] = None) -> str:
    """Build the cache key for ``namespace`` and an optional entity id."""
    if identifier is None:
        return namespace
    return f"{namespace}_{identifier}"


def _as_list(data: Any) -> List[Any]:
    """Normalize project-list payloads, which come as a list or as ``{"list": [...]}``."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("list"), list):
        return data["list"]
    return [data]


class YApiClient:
    """Authenticated, cached client for a YApi instance."""

    def __init__(
        self,
        settings: YApiSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsCollector] = None,
        cache: Optional[ExpiringCache] = None,
        eager_login: bool = True,
    ) -> None:
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/")
        self.timeout = settings.request_timeout
        self.logger = get_logger("yapi.client")
        self.metrics = metrics or get_metrics_collector("yapi")
        self.cache: ExpiringCache = cache if cache is not None else ExpiringCache(settings.cache_ttl)
        self.auth: AuthStrategy = select_auth(settings)

        self._login_lock = asyncio.Lock()
        self._warmup_task: Optional[asyncio.Task] = None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
            event_hooks={"request": [self._log_request], "response": [self._log_response]},
        )

        if isinstance(self.auth, TokenAuth):
            self.logger.info("Using project token authentication", base_url=self.base_url)
        elif isinstance(self.auth, CredentialAuth):
            self.logger.info(
                "Using username/password authentication",
                base_url=self.base_url,
                username=self.auth.username,
            )
            if eager_login:
                self._schedule_warmup()
        else:
            self.logger.warning("No YApi authentication configured; every request will fail")

    async def __aenter__(self) -> "YApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._warmup_task is not None and not self._warmup_task.done():
            self._warmup_task.cancel()
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _schedule_warmup(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Built outside an event loop; the caller awaits warmup() itself.
            return
        self._warmup_task = loop.create_task(self.warmup())

    async def warmup(self) -> None:
        """Eagerly log in so the first request does not pay the cost."""
        if not isinstance(self.auth, CredentialAuth):
            return
        try:
            await self._ensure_authenticated(self.auth)
        except YApiAccessError as exc:
            self.logger.warning("Eager login failed; will retry on first request", error=exc.message)

    @property
    def is_authenticated(self) -> bool:
        if isinstance(self.auth, TokenAuth):
            return True
        if isinstance(self.auth, CredentialAuth):
            return self.auth.authenticated
        return False

    async def _ensure_authenticated(self, auth: CredentialAuth) -> None:
        async with self._login_lock:
            if not auth.authenticated:
                await self._login(auth)

    async def _reauthenticate(self, auth: CredentialAuth) -> None:
        async with self._login_lock:
            auth.authenticated = False
            auth.session_cookie = None
            self._client.headers.pop("Cookie", None)
            await self._login(auth)

    async def _login(self, auth: CredentialAuth) -> None:
        """Log in with username/password and attach the session cookie."""
        self.logger.info("Attempting to login with username/password", username=auth.username)
        response = await self._issue(
            "POST",
            LOGIN_ENDPOINT,
            body={"email": auth.username, "password": auth.password},
        )

        if response.status_code != 200:
            self.metrics.increment_counter("yapi_logins_total", status="rejected")
            raise AuthenticationError(
                f"Login failed: HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        envelope = self._parse_envelope(LOGIN_ENDPOINT, response)
        if envelope.errcode != 0:
            self.metrics.increment_counter("yapi_logins_total", status="rejected")
            raise AuthenticationError(
                f"Login failed: {envelope.errmsg}",
                details={"errcode": envelope.errcode},
            )

        session_cookie = "; ".join(f"{name}={value}" for name, value in response.cookies.items())
        # The explicit header is the only carrier of the session.
        self._client.cookies.clear()
        auth.authenticated = True
        auth.session_cookie = session_cookie or None
        if session_cookie:
            self._client.headers["Cookie"] = session_cookie

        self.metrics.increment_counter("yapi_logins_total", status="success")
        self.logger.info("Login successful", username=auth.username)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _log_request(self, request: httpx.Request) -> None:
        params = {key: value for key, value in request.url.params.items() if key != "token"}
        self.logger.debug("HTTP request", method=request.method, path=request.url.path, params=params)

    async def _log_response(self, response: httpx.Response) -> None:
        self.logger.debug("HTTP response", status=response.status_code, path=response.request.url.path)

    async def _issue(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one HTTP request, mapping transport failures to TransportError."""
        try:
            with self.metrics.time_operation("yapi_request_duration_seconds", endpoint=endpoint):
                if method == "GET":
                    response = await self._client.get(endpoint, params=params)
                else:
                    response = await self._client.post(endpoint, json=body)
        except httpx.TimeoutException as exc:
            self.metrics.increment_counter("yapi_requests_total", endpoint=endpoint, outcome="timeout")
            self.logger.error("Request timed out", endpoint=endpoint, timeout=self.timeout)
            raise TransportError(f"timed out after {self.timeout}s", details={"endpoint": endpoint}) from exc
        except httpx.HTTPError as exc:
            self.metrics.increment_counter("yapi_requests_total", endpoint=endpoint, outcome="transport_error")
            self.logger.error("Request failed", endpoint=endpoint, error=str(exc))
            raise TransportError(str(exc) or type(exc).__name__, details={"endpoint": endpoint}) from exc

        self.metrics.increment_counter("yapi_requests_total", endpoint=endpoint, outcome=str(response.status_code))
        return response

    def _parse_envelope(self, endpoint: str, response: httpx.Response) -> YApiEnvelope:
        if not response.is_success:
            self.logger.error("Unexpected HTTP status", endpoint=endpoint, status_code=response.status_code)
            raise TransportError(
                f"HTTP {response.status_code}",
                details={"endpoint": endpoint, "status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            self.logger.error("Malformed response body", endpoint=endpoint)
            raise TransportError("malformed response body", details={"endpoint": endpoint}) from exc

        try:
            return YApiEnvelope.model_validate(payload)
        except PydanticValidationError as exc:
            self.logger.error("Response is not a YApi envelope", endpoint=endpoint)
            raise TransportError("unexpected response shape", details={"endpoint": endpoint}) from exc

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> YApiEnvelope:
        """Authenticated request with at most one re-login on HTTP 401."""
        auth = self.auth
        if isinstance(auth, NoAuth):
            raise AuthenticationError(
                "No authentication configured: set a project token or username and password"
            )

        if isinstance(auth, CredentialAuth):
            await self._ensure_authenticated(auth)

        query = {**auth.query_params(), **(params or {})} if method == "GET" else None
        payload = {**auth.body_fields(), **(body or {})} if method == "POST" else None

        response = await self._issue(method, endpoint, params=query, body=payload)
        if response.status_code == 401:
            if not isinstance(auth, CredentialAuth):
                self.logger.error("Project token rejected", endpoint=endpoint)
                raise AuthenticationError(
                    "Authentication failed: project token was rejected (HTTP 401)",
                    details={"endpoint": endpoint},
                )

            self.logger.warning("Session expired, logging in again", endpoint=endpoint)
            await self._reauthenticate(auth)
            response = await self._issue(method, endpoint, params=query, body=payload)
            if response.status_code == 401:
                raise AuthenticationError(
                    "Authentication failed: still unauthorized after re-login",
                    details={"endpoint": endpoint},
                )

        return self._parse_envelope(endpoint, response)

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> YApiEnvelope:
        return await self._send("GET", endpoint, params=params)

    async def _post(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> YApiEnvelope:
        return await self._send("POST", endpoint, body=body)

    def _unwrap(self, envelope: YApiEnvelope, failure: str) -> Any:
        if envelope.errcode != 0:
            self.logger.error(failure, errcode=envelope.errcode, errmsg=envelope.errmsg)
            raise RemoteApiError(f"{failure}: {envelope.errmsg}", envelope.errcode)
        return envelope.data

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    def _cache_lookup(self, namespace: str, identifier: Optional[Any] = None) -> Any:
        value = self.cache.get(cache_key(namespace, identifier))
        self.metrics.increment_counter(
            "yapi_cache_lookups_total",
            namespace=namespace,
            result="miss" if value is None else "hit",
        )
        return value

    def _invalidate(self, *keys: str) -> None:
        for key in keys:
            self.cache.delete(key)
        self.logger.debug("Invalidated cache keys", keys=list(keys))

    def _invalidate_project(self, project_id: Any) -> None:
        self._invalidate(cache_key(CATEGORIES, project_id), cache_key(INTERFACE_MENU, project_id))

    @staticmethod
    def _coerce(model: Type[P], params: Union[P, Dict[str, Any]]) -> P:
        if isinstance(params, model):
            return params
        try:
            return model.model_validate(params)
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid parameters for {model.__name__}: {exc.error_count()} error(s)",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def get_projects(self) -> Any:
        """List projects visible to the configured identity."""
        cached = self._cache_lookup(PROJECTS)
        if cached is not None:
            self.logger.debug("Returning cached projects")
            return cached

        self.logger.info("Fetching projects from YApi")
        if isinstance(self.auth, CredentialAuth):
            projects = await self._list_projects_for_user()
        else:
            envelope = await self._get("/api/project/list")
            projects = self._unwrap(envelope, "Failed to get projects")

        if projects is not None:
            self.cache.set(cache_key(PROJECTS), projects)
        return projects

    async def _list_projects_for_user(self) -> List[Any]:
        """Try each project-listing strategy in order; the last one's failure propagates."""
        fallbacks = (("group_fan_out", self._projects_from_groups),)
        for name, strategy in fallbacks:
            try:
                return await strategy()
            except YApiAccessError as exc:
                self.logger.warning("Project listing strategy failed", strategy=name, error=exc.message)
        return await self._project_from_direct_get()

    async def _projects_from_groups(self) -> List[Any]:
        """Collect projects group by group; fails only when no group could be read."""
        envelope = await self._get("/api/group/list")
        groups = self._unwrap(envelope, "Failed to get groups") or []

        projects: List[Any] = []
        failures: List[YApiAccessError] = []
        for group in groups:
            group_id = group.get("_id") if isinstance(group, dict) else group
            try:
                envelope = await self._get(
                    "/api/project/list",
                    {"group_id": group_id, "page": 1, "limit": 1000},
                )
                data = self._unwrap(envelope, f"Failed to get projects for group {group_id}")
            except YApiAccessError as exc:
                self.logger.warning(
                    "Skipping group whose projects could not be fetched",
                    group_id=group_id,
                    error=exc.message,
                )
                failures.append(exc)
                continue
            projects.extend(_as_list(data))

        if groups and len(failures) == len(groups):
            self.logger.warning("No group's projects could be fetched", groups=len(groups))
            raise failures[-1]

        self.logger.info("Collected projects from groups", groups=len(groups), projects=len(projects))
        return projects

    async def _project_from_direct_get(self) -> List[Any]:
        envelope = await self._get("/api/project/get")
        return _as_list(self._unwrap(envelope, "Failed to get projects"))

    # ------------------------------------------------------------------
    # Categories and interfaces (reads)
    # ------------------------------------------------------------------

    async def get_categories(self, project_id: int) -> Any:
        cached = self._cache_lookup(CATEGORIES, project_id)
        if cached is not None:
            self.logger.debug("Returning cached categories", project_id=project_id)
            return cached

        self.logger.info("Fetching categories", project_id=project_id)
        envelope = await self._get("/api/interface/getCatMenu", {"project_id": project_id})
        categories = self._unwrap(envelope, "Failed to get categories")

        if categories is not None:
            self.cache.set(cache_key(CATEGORIES, project_id), categories)
        return categories

    async def get_interface(self, interface_id: int) -> Any:
        cached = self._cache_lookup(INTERFACE, interface_id)
        if cached is not None:
            self.logger.debug("Returning cached interface", interface_id=interface_id)
            return cached

        self.logger.info("Fetching interface", interface_id=interface_id)
        envelope = await self._get("/api/interface/get", {"id": interface_id})
        interface = self._unwrap(envelope, "Failed to get interface")

        if interface is not None:
            self.cache.set(cache_key(INTERFACE, interface_id), interface)
        return interface

    async def get_interface_menu(self, project_id: int) -> Any:
        """Categories of a project with their interfaces nested inside."""
        cached = self._cache_lookup(INTERFACE_MENU, project_id)
        if cached is not None:
            self.logger.debug("Returning cached interface menu", project_id=project_id)
            return cached

        self.logger.info("Fetching interface menu", project_id=project_id)
        envelope = await self._get("/api/interface/list_menu", {"project_id": project_id})
        menu = self._unwrap(envelope, "Failed to get interface menu")

        if menu is not None:
            self.cache.set(cache_key(INTERFACE_MENU, project_id), menu)
        return menu

    async def search_interfaces(self, params: Union[SearchApiParams, Dict[str, Any]]) -> Any:
        search = self._coerce(SearchApiParams, params)
        filters = search.to_payload()
        self.logger.info("Searching interfaces", filters=filters)
        envelope = await self._get("/api/interface/list", filters)
        return self._unwrap(envelope, "Failed to search interfaces")

    async def list_category_interfaces(self, catid: int, page: int = 1, limit: int = 20) -> Any:
        self.logger.info("Listing category interfaces", catid=catid, page=page, limit=limit)
        envelope = await self._get("/api/interface/list_cat", {"catid": catid, "page": page, "limit": limit})
        return self._unwrap(envelope, "Failed to list category interfaces")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_interface(self, params: Union[CreateApiParams, Dict[str, Any]]) -> Any:
        create = self._coerce(CreateApiParams, params)
        self.logger.info("Creating interface", title=create.title, project_id=create.project_id)
        envelope = await self._post("/api/interface/add", create.to_payload())
        result = self._unwrap(envelope, "Failed to create interface")

        self._invalidate_project(create.project_id)
        return result

    async def update_interface(self, params: Union[UpdateApiParams, Dict[str, Any]]) -> Any:
        update = self._coerce(UpdateApiParams, params)
        self.logger.info("Updating interface", interface_id=update.id)
        envelope = await self._post("/api/interface/up", update.to_payload())
        result = self._unwrap(envelope, "Failed to update interface")

        self._invalidate(cache_key(INTERFACE, update.id))
        self._invalidate_project(update.project_id)
        return result

    async def delete_interface(self, interface_id: int) -> bool:
        cached = self.cache.get(cache_key(INTERFACE, interface_id))
        self.logger.info("Deleting interface", interface_id=interface_id)
        envelope = await self._post("/api/interface/del", {"id": interface_id})
        self._unwrap(envelope, "Failed to delete interface")

        self._invalidate(cache_key(INTERFACE, interface_id))
        if isinstance(cached, dict) and cached.get("project_id") is not None:
            self._invalidate_project(cached["project_id"])
        return True

    async def create_category(self, params: Union[CreateCategoryParams, Dict[str, Any]]) -> Any:
        category = self._coerce(CreateCategoryParams, params)
        self.logger.info("Creating category", name=category.name, project_id=category.project_id)
        envelope = await self._post("/api/interface/add_cat", category.to_payload())
        result = self._unwrap(envelope, "Failed to create category")

        self._invalidate_project(category.project_id)
        return result

    async def import_data(self, params: Union[ImportDataParams, Dict[str, Any]]) -> Any:
        """Import swagger/postman/har/json data into a project category."""
        data = self._coerce(ImportDataParams, params)
        body: Dict[str, Any] = {
            "type": data.type,
            "project_id": data.project_id,
            "catid": data.catid,
            "merge": data.sync_mode,
        }
        if data.is_url:
            body["url"] = data.data_source
        else:
            body["json"] = data.data_source

        self.logger.info(
            "Importing data",
            type=data.type,
            project_id=data.project_id,
            catid=data.catid,
            sync_mode=data.sync_mode,
        )
        envelope = await self._post("/api/open/import_data", body)
        result = self._unwrap(envelope, "Failed to import data")

        self._invalidate_project(data.project_id)
        return result

    def clear_cache(self) -> None:
        self.cache.clear()
        self.logger.info("Cache cleared")
