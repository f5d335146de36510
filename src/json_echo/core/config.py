"""
JSON Echo Configuration

Loads, validates and saves json-echo configuration documents.

A configuration looks like:

    {
      "port": 3001,
      "hostname": "localhost",
      "routes": {
        "/api/users/:id": {
          "id_field": "id",
          "response": {"status": 200, "body": [{"id": 1, "name": "A"}]}
        },
        "[POST] /api/users": {
          "response": "responses/created-user.json"
        }
      }
    }

A string `response` is a reference to a JSON file (relative to the project
root) whose contents become the response body. References are resolved once,
at load time; a single bad reference fails the whole load.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import (
    DuplicateRouteError,
    ExternalResponseError,
    FileSystemError,
    InvalidRouteError,
    MalformedConfigError,
)
from .filesystem import FileSystemManager
from .routing import RouteKeyError, normalize_route_key, route_identifier


logger = logging.getLogger("json_echo.config")


DEFAULT_CONFIG_FILE = "json-echo.json"
DEFAULT_PORT = 3001
DEFAULT_HOSTNAME = "localhost"
DEFAULT_STATIC_ROUTE = "/static"
DEFAULT_STATUS = 200
DEFAULT_ID_FIELD = "id"

ROUTE_FIELDS = ("method", "description", "headers", "id_field", "results_field", "response")


@dataclass(frozen=True)
class InlineResponse:
    """A response given directly in the configuration."""

    body: Any
    status: int = DEFAULT_STATUS

    def to_dict(self) -> Dict[str, Any]:
        return {'status': self.status, 'body': self.body}


@dataclass(frozen=True)
class FileResponse:
    """A response whose body lives in a separate JSON file."""

    path: str

    def resolved(self, body: Any) -> InlineResponse:
        return InlineResponse(body=body, status=DEFAULT_STATUS)


RouteResponse = Union[InlineResponse, FileResponse]


@dataclass(frozen=True)
class RouteDefinition:
    """One entry of the `routes` mapping."""

    response: RouteResponse
    method: Optional[str] = None
    description: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    id_field: str = DEFAULT_ID_FIELD
    results_field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the document form written by ConfigLoader.save()."""
        data: Dict[str, Any] = {}
        if self.method is not None:
            data['method'] = self.method
        if self.description is not None:
            data['description'] = self.description
        if self.headers:
            data['headers'] = dict(self.headers)
        data['id_field'] = self.id_field
        if self.results_field is not None:
            data['results_field'] = self.results_field

        if isinstance(self.response, InlineResponse):
            data['response'] = self.response.to_dict()
        elif isinstance(self.response, FileResponse):
            data['response'] = self.response.path
        else:
            raise TypeError(f"Unexpected response type '{type(self.response).__name__}'")

        return data


@dataclass(frozen=True)
class Configuration:
    """A validated configuration document."""

    port: int = DEFAULT_PORT
    hostname: str = DEFAULT_HOSTNAME
    static_folder: Optional[str] = None
    static_route: str = DEFAULT_STATIC_ROUTE
    routes: Dict[str, RouteDefinition] = field(default_factory=dict)

    @property
    def is_resolved(self) -> bool:
        """True when no route still points at an external response file."""
        return all(isinstance(r.response, InlineResponse) for r in self.routes.values())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'port': self.port,
            'hostname': self.hostname,
        }
        if self.static_folder is not None:
            data['static_folder'] = self.static_folder
        data['static_route'] = self.static_route
        data['routes'] = {key: route.to_dict() for key, route in self.routes.items()}
        return data

    @classmethod
    def from_dict(cls, data: Any, source: Union[str, Path] = "<memory>") -> 'Configuration':
        """
        Validate a parsed document.

        File references are kept as FileResponse values; use
        ConfigLoader.load() to resolve them.

        Raises:
            MalformedConfigError, InvalidRouteError, DuplicateRouteError
        """
        if not isinstance(data, dict):
            raise MalformedConfigError(
                source, f"expected a JSON object, got {type(data).__name__}"
            )

        port = data.get('port')
        if port is None:
            port = DEFAULT_PORT
        elif isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
            raise MalformedConfigError(source, "'port' should be an int in the range of [1, 65535]")

        hostname = data.get('hostname')
        if hostname is None:
            hostname = DEFAULT_HOSTNAME
        elif not isinstance(hostname, str) or not hostname.strip():
            raise MalformedConfigError(source, "'hostname' should be a non-empty string")

        static_folder = data.get('static_folder')
        if static_folder is not None and not isinstance(static_folder, str):
            raise MalformedConfigError(source, "'static_folder' should be a string")

        static_route = data.get('static_route')
        if static_route is None:
            static_route = DEFAULT_STATIC_ROUTE
        elif not isinstance(static_route, str):
            raise MalformedConfigError(source, "'static_route' should be a string")

        raw_routes = data.get('routes')
        if raw_routes is None:
            raw_routes = {}
        elif not isinstance(raw_routes, dict):
            raise MalformedConfigError(source, "'routes' should be an object")

        duplicates = getattr(raw_routes, 'duplicates', ())
        if duplicates:
            raise DuplicateRouteError(duplicates[0])

        routes: Dict[str, RouteDefinition] = {}
        for key, entry in raw_routes.items():
            identifier, route = parse_route(key, entry)
            if identifier in routes:
                raise DuplicateRouteError(identifier)
            routes[identifier] = route

        return cls(
            port=port,
            hostname=hostname,
            static_folder=static_folder,
            static_route=static_route,
            routes=routes,
        )


def parse_route(key: str, entry: Any) -> Tuple[str, RouteDefinition]:
    """
    Validate one route entry.

    Returns:
        (canonical route identifier, RouteDefinition)

    Raises:
        InvalidRouteError: If the entry is malformed
    """
    if not isinstance(entry, dict):
        raise InvalidRouteError(
            key, f"route should be an object, got {type(entry).__name__}"
        )

    method = entry.get('method')
    try:
        method, pattern = normalize_route_key(key, method)
    except RouteKeyError as e:
        raise InvalidRouteError(key, str(e)) from e

    unknown = [name for name in entry if name not in ROUTE_FIELDS]
    if unknown:
        logger.warning(f"Route '{key}' has unknown field(s) {', '.join(unknown)}; ignoring")

    description = entry.get('description')
    if description is not None and not isinstance(description, str):
        raise InvalidRouteError(key, "'description' should be a string")

    headers = entry.get('headers')
    if headers is None:
        headers = {}
    elif not isinstance(headers, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
    ):
        raise InvalidRouteError(key, "'headers' should map strings to strings")

    id_field = entry.get('id_field')
    if id_field is None:
        id_field = DEFAULT_ID_FIELD
    elif not isinstance(id_field, str) or not id_field:
        raise InvalidRouteError(key, "'id_field' should be a non-empty string")

    results_field = entry.get('results_field')
    if results_field is not None and (not isinstance(results_field, str) or not results_field):
        raise InvalidRouteError(key, "'results_field' should be a non-empty string")

    if 'response' not in entry:
        raise InvalidRouteError(key, "'response' is a required field")

    route = RouteDefinition(
        response=parse_response(key, entry['response']),
        method=method,
        description=description,
        headers=dict(headers),
        id_field=id_field,
        results_field=results_field,
    )
    return route_identifier(method, pattern), route


def parse_response(key: str, value: Any) -> RouteResponse:
    """Turn a `response` value into an InlineResponse or a FileResponse."""
    if isinstance(value, str):
        if not value.strip():
            raise InvalidRouteError(key, "'response' file reference should be a non-empty path")
        return FileResponse(path=value)

    if isinstance(value, dict):
        if 'body' not in value:
            raise InvalidRouteError(key, "'response.body' is a required field")

        status = value.get('status')
        if status is None:
            status = DEFAULT_STATUS
        elif isinstance(status, bool) or not isinstance(status, int) or not 100 <= status <= 599:
            raise InvalidRouteError(
                key, "'response.status' should be an HTTP status code in [100, 599]"
            )

        return InlineResponse(body=value['body'], status=status)

    raise InvalidRouteError(
        key,
        f"'response' should be an object or a file path, got {type(value).__name__}",
    )


class _JSONObject(dict):
    """A parsed JSON object that remembers keys which appeared more than once."""

    duplicates: Tuple[str, ...] = ()


def _object_pairs(pairs: List[Tuple[str, Any]]) -> dict:
    obj = dict(pairs)
    if len(obj) == len(pairs):
        return obj

    seen = set()
    duplicates = []
    for key, _ in pairs:
        if key in seen and key not in duplicates:
            duplicates.append(key)
        seen.add(key)

    obj = _JSONObject(pairs)
    obj.duplicates = tuple(duplicates)
    return obj


def parse_json(content: bytes, source: Union[str, Path]) -> Any:
    """
    Parse JSON bytes.

    Raises:
        MalformedConfigError: If the content isn't UTF-8 encoded JSON
    """
    try:
        return json.loads(content, object_pairs_hook=_object_pairs)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedConfigError(source, e) from e


def default_configuration() -> Configuration:
    """Configuration written by `json-echo init`."""
    return Configuration(
        routes={
            "[GET] /api/health": RouteDefinition(
                description="Health check",
                response=InlineResponse(body={"status": "ok"}),
            ),
        },
    )


class ConfigLoader:
    """
    Reads and writes configuration files through a FileSystemManager.

    Example:
        loader = ConfigLoader(FileSystemManager())
        config = await loader.load('json-echo.json')
        print(config.port, len(config.routes))
    """

    def __init__(self, file_system: Optional[FileSystemManager] = None):
        self.file_system = file_system or FileSystemManager()

    @property
    def root(self) -> Path:
        return self.file_system.root

    def loads(self, content: bytes, source: Union[str, Path] = "<memory>") -> Configuration:
        """Parse and validate a document without resolving file references."""
        return Configuration.from_dict(parse_json(content, source), source)

    async def load(self, path: Union[str, Path] = DEFAULT_CONFIG_FILE) -> Configuration:
        """
        Load, validate and fully resolve a configuration file.

        Raises:
            FileSystemError: If the configuration file itself can't be read
            ConfigError: On any validation failure or unresolvable response file
        """
        content = await self.file_system.load_file(path)
        config = self.loads(content, self.file_system.resolve(path))

        routes: Dict[str, RouteDefinition] = {}
        for key, route in config.routes.items():
            routes[key] = await self._resolve_route(key, route)

        logger.info(f"Loaded {len(routes)} route(s) from {self.file_system.resolve(path)}")
        return replace(config, routes=routes)

    async def save(self, path: Union[str, Path], config: Configuration) -> None:
        """Write `config` as pretty-printed JSON."""
        await self.file_system.save_file(path, self.dumps(config))
        logger.info(f"Saved configuration to {self.file_system.resolve(path)}")

    @staticmethod
    def dumps(config: Configuration) -> bytes:
        return (json.dumps(config.to_dict(), indent=2, ensure_ascii=False) + "\n").encode('utf-8')

    async def _resolve_route(self, key: str, route: RouteDefinition) -> RouteDefinition:
        response = route.response

        if isinstance(response, InlineResponse):
            return route

        if isinstance(response, FileResponse):
            try:
                content = await self.file_system.load_file(response.path)
                body = parse_json(content, self.file_system.resolve(response.path))
            except (FileSystemError, MalformedConfigError) as e:
                raise ExternalResponseError(key, response.path, e) from e

            logger.debug(f"Resolved response for {key} from {response.path}")
            return replace(route, response=response.resolved(body))

        raise TypeError(f"Unexpected response type '{type(response).__name__}'")
