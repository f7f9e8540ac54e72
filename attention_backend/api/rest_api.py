"""
REST API Server

Provides HTTP endpoints for tracking control, configuration, status queries
and session-data export.

Design:
- Server.py decides *which* routes exist (wiring) by calling `register_route(...)`.
- RestAPI is a thin transport layer that binds registered routes into aiohttp.
- /health is kept as a built-in liveness endpoint.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable, Awaitable
from enum import Enum
import json
import inspect

from aiohttp import web

from attention_backend.api.serialization import json_safe
from attention_backend.services.detector.base import DetectorError
from attention_backend.services.logger_service import get_logger


class HttpMethod(Enum):
    """HTTP methods."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


# Route handler takes a dict request envelope or named fields and returns a payload
RouteHandler = Callable[..., Awaitable[Any]] | Callable[..., Any]


class RestAPI:
    """
    REST API server for tracking control and data endpoints.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8080,
        health_info: Optional[Dict[str, Any]] = None,
    ):
        self._host = host
        self._port = port
        self._health_info = health_info or {}
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._routes: Dict[str, Dict[HttpMethod, RouteHandler]] = {}
        self._is_running: bool = False
        self._logger = get_logger()

    async def start(self) -> None:
        """Start the REST API server."""
        self._app = self.build_app()

        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        self._is_running = True

    async def stop(self) -> None:
        """Stop the REST API server."""
        self._is_running = False
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        self._app = None

    def is_running(self) -> bool:
        """Check if server is running."""
        return self._is_running

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all registered routes."""
        app = web.Application(middlewares=[self._cors_middleware])
        self._setup_app(app)
        return app

    def register_route(
        self,
        path: str,
        method: HttpMethod,
        handler: RouteHandler,
    ) -> None:
        """
        Register a route handler.

        Args:
            path: URL path (e.g., "/status"); may contain aiohttp placeholders
                such as "/tracking/data/{session_id}".
            method: HttpMethod enum (e.g., HttpMethod.GET)
            handler: function taking no argument, the request dict, or named
                fields read from path placeholders and the JSON body
        """
        if not path.startswith("/"):
            path = "/" + path

        if path not in self._routes:
            self._routes[path] = {}

        if method in self._routes[path]:
            raise ValueError(f"Route already registered: {method.value} {path}")

        self._routes[path][method] = handler

    # --- Internal Methods ---

    def _setup_app(self, app: web.Application) -> None:
        """Bind built-in routes and all registered routes into aiohttp."""
        # Built-in liveness endpoint (does not depend on controller wiring)
        app.router.add_get("/health", self._health_handler)

        # Bind registered routes from server wiring
        for path, methods in self._routes.items():
            for method, handler in methods.items():
                aiohttp_handler = self._make_aiohttp_handler(handler)
                app.router.add_route(method.value, path, aiohttp_handler)

    @web.middleware
    async def _cors_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        if request.method == "OPTIONS":
            response: web.StreamResponse = web.Response(status=204)
        else:
            response = await handler(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, PATCH, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    def _make_aiohttp_handler(self, handler):

        async def _wrapped(request: web.Request) -> web.Response:
            try:
                req = await self._request_to_dict(request)

                sig = inspect.signature(handler)
                params = sig.parameters

                if len(params) == 0:
                    call_result = handler()

                elif len(params) == 1 and "request" in params:
                    # One param named "request": pass full request dict
                    call_result = handler(req)

                else:
                    # Named params: map from path placeholders, then JSON body
                    payload = req.get("json") or {}
                    if not isinstance(payload, dict):
                        raise ValueError("Expected JSON object body")
                    available = {**payload, **req["match_info"]}

                    # Only pass expected parameters
                    kwargs = {
                        name: available[name]
                        for name in params.keys()
                        if name in available
                    }

                    missing = [
                        name for name, p in params.items()
                        if name not in kwargs and p.default is inspect.Parameter.empty
                    ]
                    if missing:
                        raise ValueError(f"Missing required fields: {missing}")

                    call_result = handler(**kwargs)

                if inspect.isawaitable(call_result):
                    call_result = await call_result

                call_result = json_safe(call_result)

                if call_result is None:
                    call_result = {"status": "ok"}

                return self._create_response(call_result, status=200)

            except web.HTTPException:
                raise

            except ValueError as e:
                return self._create_error_response("Invalid request", str(e), status=400)

            except FileNotFoundError as e:
                return self._create_error_response("Data not found", str(e), status=404)

            except DetectorError as e:
                self._logger.system(
                    "rest_detector_error",
                    {"path": request.path, "error": str(e), "status": e.status},
                    level="ERROR",
                )
                return self._create_error_response(
                    "Failed to analyze image", e.details or str(e), status=502
                )

            except Exception as e:
                self._logger.system(
                    "rest_handler_error",
                    {"path": request.path, "error": str(e), "error_type": type(e).__name__},
                    level="ERROR",
                )
                return self._create_error_response("Internal server error", str(e), status=500)

        return _wrapped

    async def _request_to_dict(self, request: web.Request) -> Dict[str, Any]:
        """
        Convert aiohttp Request into a simple dict envelope.
        Includes:
          - method, path, match_info
          - query params
          - headers
          - json body (if present), otherwise raw text (if any)
        """
        body_json: Any = None
        body_text: Optional[str] = None

        if request.can_read_body:
            body_text = await request.text()
            if body_text:
                try:
                    body_json = json.loads(body_text)
                except json.JSONDecodeError:
                    body_json = None
            else:
                body_text = None

        return {
            "method": request.method,
            "path": request.path,
            "match_info": dict(request.match_info),
            "query": dict(request.rel_url.query),
            "headers": dict(request.headers),
            "json": body_json,
            "text": body_text,
        }

    def _create_response(
        self,
        data: Any,
        status: int = 200,
    ) -> web.Response:
        """Create an HTTP JSON response."""
        # Ensure it's JSON-serializable (basic)
        try:
            json.dumps(data)
        except TypeError:
            data = {"error": "Response not JSON serializable"}
            status = 500

        return web.json_response(data, status=status)

    def _create_error_response(
        self,
        error: str,
        details: str,
        status: int = 400,
    ) -> web.Response:
        """Create an error response."""
        return self._create_response({"error": error, "details": details}, status=status)

    # --- Built-in Handlers ---

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Health check endpoint handler."""
        return web.json_response({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **json_safe(self._health_info),
        })
