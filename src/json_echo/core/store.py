"""
JSON Echo Route Store

In-memory, read-only index of configured routes.

Each route definition becomes a Model keyed by its canonical identifier
("[GET] /api/users/:id"). The store answers:
- exact lookups by identifier
- path matching for a concrete request (literal segments beat parameters)
- record lookups inside a model's collection by a bound path parameter

A populated store is never modified. Reloading builds a new store and swaps
it in through a StoreHandle, so concurrent readers see either the old or the
new set of routes, never a mixture.
"""

import copy
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .config import (
    DEFAULT_CONFIG_FILE,
    ConfigLoader,
    Configuration,
    FileResponse,
    InlineResponse,
    RouteDefinition,
)
from .errors import DuplicateRouteError, InvalidRouteError, MissingResultsFieldError
from .routing import (
    PathPattern,
    RouteKeyError,
    normalize_method,
    normalize_route_key,
    route_identifier,
    split_path,
)


logger = logging.getLogger("json_echo.store")


@dataclass(frozen=True)
class Model:
    """Resolved, queryable representation of one route."""

    identifier: str
    method: str
    path_pattern: PathPattern
    data: Any
    status: int = 200
    description: Optional[str] = None
    id_field: str = "id"
    results_field: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def has_params(self) -> bool:
        return bool(self.path_pattern.param_names)

    def collection(self) -> Any:
        """
        The value records are searched in: `data`, or `data[results_field]`.

        Raises:
            MissingResultsFieldError: If `results_field` is set but absent
                from `data` or not a list
        """
        if self.results_field is None:
            return self.data

        if not isinstance(self.data, dict) or self.results_field not in self.data:
            raise MissingResultsFieldError(self.identifier, self.results_field, "field not found")

        results = self.data[self.results_field]
        if not isinstance(results, list):
            raise MissingResultsFieldError(
                self.identifier, self.results_field,
                f"expected a list, got {type(results).__name__}",
            )
        return results

    def to_dict(self) -> Dict[str, Any]:
        """Summary used by the admin API."""
        return {
            'identifier': self.identifier,
            'method': self.method,
            'path': str(self.path_pattern),
            'params': list(self.path_pattern.param_names),
            'description': self.description,
            'status': self.status,
            'id_field': self.id_field,
            'results_field': self.results_field,
        }


def build_model(key: str, route: RouteDefinition) -> Model:
    """
    Build a Model from a route definition.

    Raises:
        InvalidRouteError: If the key can't be normalized or the response
            is still an unresolved file reference
    """
    try:
        method, pattern = normalize_route_key(key, route.method)
    except RouteKeyError as e:
        raise InvalidRouteError(key, str(e)) from e

    response = route.response
    if isinstance(response, InlineResponse):
        data, status = copy.deepcopy(response.body), response.status
    elif isinstance(response, FileResponse):
        raise InvalidRouteError(
            key, f"response file '{response.path}' has not been resolved; load it with ConfigLoader"
        )
    else:
        raise InvalidRouteError(key, f"unexpected response type '{type(response).__name__}'")

    return Model(
        identifier=route_identifier(method, pattern),
        method=method,
        path_pattern=pattern,
        data=data,
        status=status,
        description=route.description,
        id_field=route.id_field,
        results_field=route.results_field,
        headers=dict(route.headers),
    )


def _as_text(value: Any) -> Optional[str]:
    """Text form used to compare a record field against a path parameter."""
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (bool, int, float)):
        return json.dumps(value)
    return None


def _record_matches(record: Any, field_name: str, value: str) -> bool:
    if not isinstance(record, dict) or field_name not in record:
        return False
    return _as_text(record[field_name]) == value


class RouteStore:
    """
    Read-only route index built from a configuration's routes.

    Example:
        store = RouteStore.from_routes(config.routes)
        found = store.find_matching('GET', '/api/users/2')
        if found:
            model, params = found
            record = store.resolve_record(model, 'id', params['id'])
    """

    def __init__(self):
        self._models: Dict[str, Model] = {}
        self._literal_index: Dict[Tuple[str, Tuple[str, ...]], Model] = {}
        self._pattern_index: Dict[Tuple[str, int], List[Model]] = {}
        self._populated = False

    @classmethod
    def from_routes(cls, routes: Mapping[str, RouteDefinition]) -> 'RouteStore':
        store = cls()
        store.populate(routes)
        return store

    @classmethod
    def from_configuration(cls, config: Configuration) -> 'RouteStore':
        return cls.from_routes(config.routes)

    def populate(self, routes: Mapping[str, RouteDefinition]) -> None:
        """
        Build one model per route.

        Nothing is stored unless every route is valid and unique.

        Raises:
            DuplicateRouteError: If two keys normalize to the same identity
            InvalidRouteError: If a key is invalid or a response is unresolved
            RuntimeError: If the store was already populated
        """
        if self._populated:
            raise RuntimeError("RouteStore is already populated; build a new store instead")

        models: Dict[str, Model] = {}
        for key, route in routes.items():
            model = build_model(key, route)
            if model.identifier in models:
                raise DuplicateRouteError(model.identifier)
            models[model.identifier] = model

        literal_index: Dict[Tuple[str, Tuple[str, ...]], Model] = {}
        pattern_index: Dict[Tuple[str, int], List[Model]] = {}
        for model in models.values():
            pattern = model.path_pattern
            if pattern.is_literal:
                segments = tuple(s.value for s in pattern.segments)
                literal_index[(model.method, segments)] = model
            else:
                bucket = pattern_index.setdefault((model.method, len(pattern.segments)), [])
                bucket.append(model)

        # Most literal pattern first; sort is stable so declaration order
        # breaks ties.
        for bucket in pattern_index.values():
            bucket.sort(key=lambda m: m.path_pattern.specificity, reverse=True)

        self._models = models
        self._literal_index = literal_index
        self._pattern_index = pattern_index
        self._populated = True

        logger.debug(f"Populated store with {len(models)} model(s)")

    def get_model(self, identifier: str) -> Optional[Model]:
        """Exact lookup. Any key form that normalizes to a stored identifier works."""
        model = self._models.get(identifier)
        if model is not None:
            return model

        try:
            method, pattern = normalize_route_key(identifier)
        except RouteKeyError:
            return None
        return self._models.get(route_identifier(method, pattern))

    def get_models(self) -> List[Model]:
        """All models in configuration order."""
        return list(self._models.values())

    def find_matching(self, method: str, path: str) -> Optional[Tuple[Model, Dict[str, str]]]:
        """
        Find the model serving `method` `path`.

        A fully literal pattern always wins. Among parameterized patterns the
        one with a literal at the first position where they differ wins, so
        "/a/:x/b" beats "/a/:y/:z" whichever is declared first. Patterns
        with the same literal positions go to the route declared first.

        Returns:
            (model, bound parameters) or None
        """
        try:
            method = normalize_method(method)
        except RouteKeyError:
            return None

        segments = split_path(path)

        model = self._literal_index.get((method, tuple(segments)))
        if model is not None:
            return model, {}

        for model in self._pattern_index.get((method, len(segments)), ()):
            params = model.path_pattern.match(segments)
            if params is not None:
                return model, params

        return None

    def resolve_record(self, model: Model, param_name: str, param_value: str) -> Optional[Any]:
        """
        Find the record whose `param_name` field equals `param_value`.

        Numbers, booleans and null are compared by their JSON text, so the
        path value "2" finds {"id": 2}.

        Returns:
            The first matching record, or None when nothing matches

        Raises:
            MissingResultsFieldError: If the model's `results_field` is
                missing from its data or isn't a list
        """
        collection = model.collection()

        if isinstance(collection, list):
            for record in collection:
                if _record_matches(record, param_name, param_value):
                    return record
            return None

        if _record_matches(collection, param_name, param_value):
            return collection
        return None

    def __len__(self) -> int:
        return len(self._models)

    def __iter__(self) -> Iterator[Model]:
        return iter(self.get_models())

    def __contains__(self, identifier: str) -> bool:
        return self.get_model(identifier) is not None


class StoreHandle:
    """
    Process-wide reference to the current RouteStore.

    Readers use `current` without locking. Writers replace the whole store;
    an existing store is never patched.
    """

    def __init__(self, store: Optional[RouteStore] = None):
        store = store if store is not None else RouteStore.from_routes({})
        self._state: Tuple[RouteStore, Optional[Configuration]] = (store, None)
        self._write_lock = threading.Lock()

    @property
    def current(self) -> RouteStore:
        return self._state[0]

    @property
    def configuration(self) -> Optional[Configuration]:
        """Configuration the current store was built from, if known."""
        return self._state[1]

    def swap(self, store: RouteStore, configuration: Optional[Configuration] = None) -> RouteStore:
        """Replace the current store. Returns the previous one."""
        with self._write_lock:
            previous = self._state[0]
            self._state = (store, configuration)
        return previous

    async def reload(
        self,
        loader: ConfigLoader,
        path: Union[str, Path] = DEFAULT_CONFIG_FILE
    ) -> RouteStore:
        """
        Load `path`, build a complete store and swap it in.

        On failure the current store keeps serving and the error propagates.
        """
        config = await loader.load(path)
        store = RouteStore.from_configuration(config)
        self.swap(store, config)
        logger.info(f"Reloaded {len(store)} route(s) from {loader.file_system.resolve(path)}")
        return store
