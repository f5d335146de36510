"""
JSON Echo Mock Server

FastAPI-based HTTP mock server that serves the canned responses of a
json-echo configuration.

Features:
- Route matching with path parameters (literal routes win over parameters)
- Record lookup by id inside collection responses
- Configured response headers and content types
- CORS for any origin
- Static file serving
- Admin API for listing routes and reloading the configuration
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import quote, urlencode

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..core.config import DEFAULT_CONFIG_FILE, ConfigLoader, Configuration
from ..core.errors import JsonEchoError, MissingResultsFieldError
from ..core.filesystem import FileSystemManager
from ..core.routing import HTTP_METHODS
from ..core.store import Model, RouteStore, StoreHandle


# Status codes whose responses must not carry a body
BODILESS_STATUSES = {204, 304}

MOCK_METHODS = sorted(HTTP_METHODS)


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Server options
    log_level: str = "info"

    # CORS (any origin, method and header)
    cors_enabled: bool = True

    # Fallback behavior
    fallback_status: int = 404

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"


def _raw_path(request: Request) -> str:
    """Request path before percent-decoding, so %2F stays inside a segment."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return quote(request.url.path)


class MockServer:
    """
    FastAPI-based mock server for a json-echo configuration.

    Example:
        loader = ConfigLoader(FileSystemManager())
        configuration = asyncio.run(loader.load('json-echo.json'))

        server = MockServer(loader, configuration)
        server.start()
    """

    def __init__(
        self,
        loader: ConfigLoader,
        configuration: Configuration,
        config_file: Union[str, Path] = DEFAULT_CONFIG_FILE,
        config: Optional[MockConfig] = None
    ):
        """
        Initialize mock server.

        Args:
            loader: ConfigLoader used for admin reloads
            configuration: Already loaded configuration to serve
            config_file: Configuration file path, relative to the loader's root
            config: Optional MockConfig for server behavior
        """
        self.loader = loader
        self.configuration = configuration
        self.config_file = config_file
        self.config = config or MockConfig()

        self.logger = logging.getLogger("json_echo.mock")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.handle = StoreHandle()
        self.handle.swap(RouteStore.from_configuration(configuration), configuration)
        self.logger.info(f"Serving {len(self.store)} route(s)")

        self.app = self._create_app()

    @classmethod
    async def create(
        cls,
        loader: ConfigLoader,
        config_file: Union[str, Path] = DEFAULT_CONFIG_FILE,
        config: Optional[MockConfig] = None
    ) -> 'MockServer':
        """Load `config_file` and build a server for it."""
        configuration = await loader.load(config_file)
        return cls(loader, configuration, config_file=config_file, config=config)

    @property
    def store(self) -> RouteStore:
        return self.handle.current

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="JSON Echo Mock Server",
            description="Mock HTTP server serving configured responses",
            version=__version__
        )

        if self.config.cors_enabled:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["*"],
                allow_headers=["*"],
                allow_credentials=False,
            )

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/routes")
            async def list_routes():
                """List all served routes."""
                models = self.store.get_models()
                return JSONResponse(content={
                    'total': len(models),
                    'routes': [model.to_dict() for model in models]
                })

            @app.get(f"{self.config.admin_prefix}/config")
            async def get_config():
                """Get current server configuration."""
                configuration = self.handle.configuration or self.configuration
                return JSONResponse(content={
                    'config_file': str(self.loader.file_system.resolve(self.config_file)),
                    'hostname': configuration.hostname,
                    'port': configuration.port,
                    'static_folder': configuration.static_folder,
                    'static_route': configuration.static_route,
                    'total_routes': len(self.store)
                })

            @app.post(f"{self.config.admin_prefix}/reload")
            async def reload_config():
                """Reload the configuration file and swap in the new routes."""
                try:
                    store = await self.handle.reload(self.loader, self.config_file)
                except JsonEchoError as e:
                    self.logger.error(f"Reload failed, keeping previous routes: {e}")
                    return JSONResponse(
                        content={'status': 'failed', 'error': str(e)},
                        status_code=500
                    )

                return JSONResponse(content={'status': 'reloaded', 'total_routes': len(store)})

        # Static files
        if self.configuration.static_folder:
            static_dir = self.loader.file_system.resolve(self.configuration.static_folder)
            self.logger.info(
                f"Serving static files from: {static_dir}, on route {self.configuration.static_route}"
            )
            app.mount(
                self.configuration.static_route,
                StaticFiles(directory=str(static_dir), check_dir=False),
                name="static"
            )

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=MOCK_METHODS)
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            return self._handle_request(request.method, _raw_path(request))

        return app

    def _handle_request(self, method: str, path: str) -> Response:
        """
        Match the request against the current store and build the response.

        Args:
            method: HTTP method
            path: Request path

        Returns:
            FastAPI Response with mocked data
        """
        # One snapshot per request; a concurrent reload can't change it
        store = self.store

        self.logger.debug(f"Incoming: {method} {path}")

        found = store.find_matching(method, path)
        if found is None and method.upper() == "HEAD":
            found = store.find_matching("GET", path)

        if found is None:
            self.logger.warning(f"No route defined for {method} {path}")
            return JSONResponse(
                content={'error': 'No route defined'},
                status_code=self.config.fallback_status
            )

        model, params = found
        if not params:
            return self._create_response(model, model.data)

        # Prefer the parameter named after the id field, else the last one
        param_name = model.id_field if model.id_field in params else list(params)[-1]

        try:
            record = store.resolve_record(model, param_name, params[param_name])
        except MissingResultsFieldError as e:
            self.logger.error(str(e))
            return JSONResponse(content={'error': str(e)}, status_code=500)

        if record is None:
            self.logger.info(f"No record with {param_name}={params[param_name]} in {model.identifier}")
            return JSONResponse(
                content={'error': 'Record not found', 'route': model.identifier},
                status_code=self.config.fallback_status
            )

        return self._create_response(model, record)

    def _create_response(self, model: Model, data: Any) -> Response:
        """
        Create FastAPI Response for a model.

        The configured Content-Type decides how `data` is rendered:
        form-encoded objects, raw strings for text/html and text/plain, JSON
        otherwise.
        """
        headers = dict(model.headers)
        status = model.status

        if status in BODILESS_STATUSES or status < 200:
            return Response(status_code=status, headers=headers)

        content_type = next(
            (v for k, v in headers.items() if k.lower() == 'content-type'), ''
        ).lower()

        if content_type.startswith('application/x-www-form-urlencoded'):
            content = urlencode(data, doseq=True) if isinstance(data, dict) else ''
            return Response(content=content, status_code=status, headers=headers)

        if content_type.startswith(('text/html', 'text/plain')):
            content = data if isinstance(data, str) else json.dumps(data)
            return Response(content=content, status_code=status, headers=headers)

        return JSONResponse(content=data, status_code=status, headers=headers)

    def start(self, host: Optional[str] = None, port: Optional[int] = None, access_log: bool = True):
        """
        Start the mock server.

        Args:
            host: Host to bind to (overrides configuration)
            port: Port to bind to (overrides configuration)
            access_log: Enable access logging
        """
        actual_host = host or self.configuration.hostname
        actual_port = port or self.configuration.port

        print(f"🚀 JSON Echo Mock Server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Routes loaded: {len(self.store)}")

        for model in self.store.get_models():
            print(f"   {model.identifier}")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/routes")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


async def create_mock_server(
    config_file: Union[str, Path] = DEFAULT_CONFIG_FILE,
    root: Optional[Union[str, Path]] = None,
    admin_enabled: bool = True,
    cors_enabled: bool = True,
    log_level: str = "info"
) -> MockServer:
    """
    Convenience function to load a configuration and build a mock server.

    Args:
        config_file: Configuration file, relative to `root` unless absolute
        root: Project root (discovered from the working directory when None)
        admin_enabled: Enable the admin API
        cors_enabled: Enable permissive CORS
        log_level: Logging level for the server

    Returns:
        Configured MockServer instance

    Example:
        server = asyncio.run(create_mock_server('json-echo.json'))
        server.start()
    """
    config = MockConfig(
        log_level=log_level,
        cors_enabled=cors_enabled,
        admin_enabled=admin_enabled
    )
    loader = ConfigLoader(FileSystemManager(root))
    return await MockServer.create(loader, config_file, config=config)
