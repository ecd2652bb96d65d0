"""
Mock YApi server providing login, project, category and interface endpoints.
"""

import itertools
import secrets
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.logging import get_logger

SESSION_COOKIE = "_yapi_token"
UID_COOKIE = "_yapi_uid"


class MockYApiServer:
    """Mock YApi server implementation.

    Token requests are checked against ``project_token``; cookie requests
    against the sessions issued by ``/api/user/login``. ``expire_sessions``
    drops every session so the next cookie request gets HTTP 401.
    """

    def __init__(self, port: int = 3000, project_token: str = "mock-project-token"):
        self.port = port
        self.project_token = project_token
        self.logger = get_logger("mock.yapi")
        self.app = FastAPI(title="Mock YApi", version="1.0.0")

        self.users = {
            "admin@yapi.test": {"uid": 11, "username": "admin", "password": "yapi123"},
            "dev@yapi.test": {"uid": 12, "username": "dev", "password": "dev123"},
        }
        self.sessions: Dict[str, int] = {}
        self.login_count = 0

        self.groups = [
            {"_id": 1, "group_name": "Platform", "type": "public"},
            {"_id": 2, "group_name": "Payments", "type": "public"},
        ]
        self.projects = {
            101: {"_id": 101, "name": "Petstore", "group_id": 1, "basepath": "/pet", "desc": "Pet store API"},
            102: {"_id": 102, "name": "Accounts", "group_id": 1, "basepath": "/account", "desc": ""},
            201: {"_id": 201, "name": "Billing", "group_id": 2, "basepath": "/billing", "desc": ""},
        }
        self.categories = {
            1001: {"_id": 1001, "name": "pets", "project_id": 101, "desc": "Pet operations"},
            1002: {"_id": 1002, "name": "store", "project_id": 101, "desc": "Store operations"},
            2001: {"_id": 2001, "name": "invoices", "project_id": 201, "desc": ""},
        }
        self.interfaces = {
            5001: {
                "_id": 5001, "title": "List pets", "path": "/pets", "method": "GET",
                "project_id": 101, "catid": 1001, "status": "done",
            },
            5002: {
                "_id": 5002, "title": "Create pet", "path": "/pets", "method": "POST",
                "project_id": 101, "catid": 1001, "status": "undone",
            },
            5003: {
                "_id": 5003, "title": "Place order", "path": "/store/order", "method": "POST",
                "project_id": 101, "catid": 1002, "status": "done",
            },
        }
        self._ids = itertools.count(6000)

        self._setup_routes()

    def expire_sessions(self) -> None:
        """Invalidate every issued session cookie."""
        self.sessions.clear()

    @staticmethod
    def _envelope(data: Any = None, errcode: int = 0, errmsg: str = "成功！") -> Dict[str, Any]:
        return {"errcode": errcode, "errmsg": errmsg, "data": data}

    def _reject(self, request: Request, token: Optional[str]) -> Optional[JSONResponse]:
        """Return an error response when the request is not authorized."""
        if token is not None:
            if token == self.project_token:
                return None
            return JSONResponse(self._envelope(errcode=40011, errmsg="Token is invalid"))

        session = request.cookies.get(SESSION_COOKIE)
        if session is None:
            return JSONResponse(self._envelope(errcode=40011, errmsg="Please log in"))
        if session not in self.sessions:
            return JSONResponse(self._envelope(errcode=40011, errmsg="Session expired"), status_code=401)
        return None

    @staticmethod
    def _page(items: List[Dict[str, Any]], page: int, limit: int) -> Dict[str, Any]:
        start = (page - 1) * limit
        return {"count": len(items), "total": max(1, -(-len(items) // limit)), "list": items[start:start + limit]}

    def _setup_routes(self):
        """Set up mock YApi routes."""

        @self.app.get("/")
        async def root():
            return {"service": "mock-yapi", "message": "Mock YApi server", "version": "1.0.0"}

        @self.app.post("/api/user/login")
        async def login(request: Request):
            body = await request.json()
            user = self.users.get(body.get("email"))
            if user is None or user["password"] != body.get("password"):
                return self._envelope(errcode=405, errmsg="Invalid email or password")

            self.login_count += 1
            session = secrets.token_hex(16)
            self.sessions[session] = user["uid"]
            response = JSONResponse(self._envelope({"uid": user["uid"], "username": user["username"]}))
            response.set_cookie(SESSION_COOKIE, session, path="/")
            response.set_cookie(UID_COOKIE, str(user["uid"]), path="/")
            self.logger.info("Mock login", email=body.get("email"))
            return response

        @self.app.get("/api/group/list")
        async def group_list(request: Request):
            rejected = self._reject(request, request.query_params.get("token"))
            if rejected is not None:
                return rejected
            return self._envelope(self.groups)

        @self.app.get("/api/project/list")
        async def project_list(request: Request):
            rejected = self._reject(request, request.query_params.get("token"))
            if rejected is not None:
                return rejected
            group_id = request.query_params.get("group_id")
            projects = [
                project for project in self.projects.values()
                if group_id is None or str(project["group_id"]) == group_id
            ]
            return self._envelope({"list": projects})

        @self.app.get("/api/project/get")
        async def project_get(request: Request):
            rejected = self._reject(request, request.query_params.get("token"))
            if rejected is not None:
                return rejected
            project_id = int(request.query_params.get("id", 101))
            project = self.projects.get(project_id)
            if project is None:
                return self._envelope(errcode=400, errmsg="Project not found")
            return self._envelope(project)

        @self.app.get("/api/interface/getCatMenu")
        async def cat_menu(request: Request):
            rejected = self._reject(request, request.query_params.get("token"))
            if rejected is not None:
                return rejected
            project_id = int(request.query_params["project_id"])
            return self._envelope([c for c in self.categories.values() if c["project_id"] == project_id])

        @self.app.get("/api/interface/get")
        async def interface_get(request: Request):
            rejected = self._reject(request, request.query_params.get("token"))
            if rejected is not None:
                return rejected
            interface = self.interfaces.get(int(request.query_params["id"]))
            if interface is None:
                return self._envelope(errcode=490, errmsg="Interface not found")
            return self._envelope(interface)

        @self.app.get("/api/interface/list_menu")
        async def list_menu(request: Request):
            rejected = self._reject(request, request.query_params.get("token"))
            if rejected is not None:
                return rejected
            project_id = int(request.query_params["project_id"])
            menu = []
            for category in self.categories.values():
                if category["project_id"] != project_id:
                    continue
                members = [i for i in self.interfaces.values() if i["catid"] == category["_id"]]
                menu.append({**category, "list": members})
            return self._envelope(menu)

        @self.app.get("/api/interface/list")
        async def interface_list(request: Request):
            params = request.query_params
            rejected = self._reject(request, params.get("token"))
            if rejected is not None:
                return rejected
            items = list(self.interfaces.values())
            if "project_id" in params:
                items = [i for i in items if i["project_id"] == int(params["project_id"])]
            if "catid" in params:
                items = [i for i in items if i["catid"] == int(params["catid"])]
            if "q" in params:
                query = params["q"].lower()
                items = [i for i in items if query in i["title"].lower() or query in i["path"].lower()]
            return self._envelope(self._page(items, int(params.get("page", 1)), int(params.get("limit", 20))))

        @self.app.get("/api/interface/list_cat")
        async def list_cat(request: Request):
            params = request.query_params
            rejected = self._reject(request, params.get("token"))
            if rejected is not None:
                return rejected
            catid = int(params["catid"])
            items = [i for i in self.interfaces.values() if i["catid"] == catid]
            return self._envelope(self._page(items, int(params.get("page", 1)), int(params.get("limit", 20))))

        @self.app.post("/api/interface/add")
        async def interface_add(request: Request):
            body = await request.json()
            rejected = self._reject(request, body.pop("token", None))
            if rejected is not None:
                return rejected
            if body.get("catid") not in self.categories:
                return self._envelope(errcode=400, errmsg="Category not found")
            interface_id = next(self._ids)
            self.interfaces[interface_id] = {"_id": interface_id, **body}
            return self._envelope(self.interfaces[interface_id])

        @self.app.post("/api/interface/up")
        async def interface_up(request: Request):
            body = await request.json()
            rejected = self._reject(request, body.pop("token", None))
            if rejected is not None:
                return rejected
            interface_id = body.pop("id", None)
            if interface_id not in self.interfaces:
                return self._envelope(errcode=490, errmsg="Interface not found")
            self.interfaces[interface_id].update(body)
            return self._envelope({"n": 1, "nModified": 1, "ok": 1})

        @self.app.post("/api/interface/del")
        async def interface_del(request: Request):
            body = await request.json()
            rejected = self._reject(request, body.pop("token", None))
            if rejected is not None:
                return rejected
            if self.interfaces.pop(body.get("id"), None) is None:
                return self._envelope(errcode=490, errmsg="Interface not found")
            return self._envelope({"n": 1, "ok": 1})

        @self.app.post("/api/interface/add_cat")
        async def add_cat(request: Request):
            body = await request.json()
            rejected = self._reject(request, body.pop("token", None))
            if rejected is not None:
                return rejected
            if body.get("project_id") not in self.projects:
                return self._envelope(errcode=400, errmsg="Project not found")
            category_id = next(self._ids)
            self.categories[category_id] = {"_id": category_id, "desc": "", **body}
            return self._envelope(self.categories[category_id])

        @self.app.post("/api/open/import_data")
        async def import_data(request: Request):
            body = await request.json()
            rejected = self._reject(request, body.pop("token", None))
            if rejected is not None:
                return rejected
            if body.get("type") not in ("swagger", "postman", "har", "json"):
                return self._envelope(errcode=400, errmsg="Unsupported import type")
            if "url" not in body and "json" not in body:
                return self._envelope(errcode=400, errmsg="Missing import data")
            return self._envelope({"message": "import success", "merge": body.get("merge")})


def create_app():
    """Create mock YApi application."""
    server = MockYApiServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=3000)
