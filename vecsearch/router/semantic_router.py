"""
Semantic router.

Routes are named intents described by reference utterances. Every
reference is embedded and stored as one row of a dedicated vector index;
routing a statement runs a single range search bounded by the widest route
threshold, groups candidates by route, aggregates their distances and keeps
the routes whose aggregated distance falls within their own threshold.

Router configuration is persisted as a JSON document at
``{name}:route_config`` and every mutation re-persists it while holding a
per-router lock.
"""

import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from redis.commands.search.aggregation import AggregateRequest, Asc
from redis.commands.search import reducers

from vecsearch.config.settings import settings
from vecsearch.exceptions import IllegalStateError, RouteNotFoundError
from vecsearch.index.search_index import SearchIndex
from vecsearch.models.router import (
    DistanceAggregationMethod,
    Route,
    RouteMatch,
    RoutingConfig
)
from vecsearch.query.aggregate import AggregationQuery
from vecsearch.query.filter import Filter
from vecsearch.query.filter_query import FilterQuery
from vecsearch.query.vector_query import DISTANCE_ID, VectorRangeQuery
from vecsearch.storage.redis_client import RedisConnection
from vecsearch.utils.logger import LoggerMixin
from vecsearch.utils.utils import decode, hashify
from vecsearch.vectorize.base import BaseVectorizer
from .schema import (
    REFERENCE_FIELD,
    REFERENCE_ID_FIELD,
    ROUTE_NAME_FIELD,
    VECTOR_FIELD,
    SemanticRouterIndexSchema
)

ROUTE_CONFIG_SUFFIX = "route_config"
AGGREGATE_DISTANCE = "distance"

_REDUCERS = {
    DistanceAggregationMethod.AVG: reducers.avg,
    DistanceAggregationMethod.MIN: reducers.min,
    DistanceAggregationMethod.SUM: reducers.sum,
}


class SemanticRouter(LoggerMixin):
    """
    Route statements to the closest configured intent.

    Example:
        router = SemanticRouter(
            name="topic-router",
            routes=[Route(name="greeting", references=["hello", "hi there"])],
            vectorizer=HFTextVectorizer(),
            redis_url="redis://localhost:6379"
        )
        match = router.route("hey, how are you?")
    """

    def __init__(
        self,
        name: str,
        routes: List[Route],
        vectorizer: Optional[BaseVectorizer] = None,
        routing_config: Optional[RoutingConfig] = None,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        overwrite: bool = False,
        connection_kwargs: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the router, creating and populating its index as needed.

        Args:
            name: Router name; also the index name and key prefix
            routes: Routes to serve
            vectorizer: Embedding model; a sentence-transformers model is
                loaded when omitted
            routing_config: Router-wide routing options
            redis_client: Existing redis-py client
            redis_url: URL used when no client is supplied
            overwrite: Recreate the index and re-embed every route
            connection_kwargs: Extra redis-py options used with ``redis_url``

        Raises:
            ValueError: If route names are duplicated
        """
        if not name:
            raise ValueError("Router name must not be empty")
        if vectorizer is None:
            from vecsearch.vectorize.huggingface import HFTextVectorizer
            vectorizer = HFTextVectorizer()

        route_names = [route.name for route in routes]
        if len(route_names) != len(set(route_names)):
            raise ValueError(f"Duplicate route names in {route_names}")

        self.name = name
        self.routes: List[Route] = list(routes)
        self.vectorizer = vectorizer
        self.routing_config = routing_config or RoutingConfig()
        self._lock = threading.Lock()

        schema = SemanticRouterIndexSchema.from_params(name, vectorizer.dims, vectorizer.dtype)
        self._index = SearchIndex(
            schema,
            redis_client=redis_client,
            redis_url=redis_url,
            connection_kwargs=connection_kwargs
        )
        self._initialize_index(overwrite)

    def _initialize_index(self, overwrite: bool) -> None:
        existed = self._index.exists()
        self._index.create(overwrite=overwrite, drop=True)

        if not existed or overwrite:
            self._add_routes(self.routes)
        self._persist_config()
        self.logger.info(f"Router '{self.name}' initialized with {len(self.routes)} routes")

    # Construction and serialization

    @classmethod
    def from_existing(
        cls,
        name: str,
        vectorizer: Optional[BaseVectorizer] = None,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        **kwargs
    ) -> "SemanticRouter":
        """
        Reconnect to a router whose configuration is already persisted.

        Raises:
            IllegalStateError: If no configuration exists for ``name``
        """
        if redis_client is None:
            redis_client = RedisConnection(redis_url or settings.REDIS_URL).get_client()

        config = redis_client.json().get(cls._config_key(name))
        if not config:
            raise IllegalStateError(f"No router configuration found for '{name}'")
        return cls.from_dict(
            decode(config),
            vectorizer=vectorizer,
            redis_client=redis_client,
            overwrite=False,
            **kwargs
        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        vectorizer: Optional[BaseVectorizer] = None,
        **kwargs
    ) -> "SemanticRouter":
        """
        Build a router from its configuration mapping.

        Args:
            data: Mapping shaped like :meth:`to_dict` output
            vectorizer: Embedding model; required unless the mapping names a
                sentence-transformers model
            **kwargs: Connection arguments forwarded to the constructor

        Raises:
            ValueError: If the mapping is incomplete
        """
        name = data.get("name")
        if not name:
            raise ValueError("Router configuration must include a 'name'")
        routes = data.get("routes")
        if routes is None:
            raise ValueError("Router configuration must include 'routes'")

        if vectorizer is None:
            vectorizer = cls._vectorizer_from_dict(data.get("vectorizer") or {})

        return cls(
            name=name,
            routes=[Route(**route) for route in routes],
            vectorizer=vectorizer,
            routing_config=RoutingConfig(**(data.get("routing_config") or {})),
            **kwargs
        )

    @staticmethod
    def _vectorizer_from_dict(data: Mapping[str, Any]) -> BaseVectorizer:
        if data.get("type") != "HFTextVectorizer":
            raise ValueError(
                f"Cannot rebuild vectorizer of type '{data.get('type')}'; pass one explicitly"
            )
        from vecsearch.vectorize.huggingface import HFTextVectorizer
        return HFTextVectorizer(model=data["model"], dtype=data.get("dtype", "float32"))

    def to_dict(self) -> Dict[str, Any]:
        """Configuration mapping, as persisted at the config key."""
        return {
            "name": self.name,
            "routes": [route.to_dict() for route in self.routes],
            "vectorizer": {
                "type": type(self.vectorizer).__name__,
                "model": self.vectorizer.model,
                "dims": self.vectorizer.dims,
                "dtype": self.vectorizer.dtype.value,
            },
            "routing_config": self.routing_config.model_dump(mode="json"),
        }

    @classmethod
    def from_yaml(cls, file_path: Union[str, Path], **kwargs) -> "SemanticRouter":
        """
        Build a router from a YAML configuration file.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(file_path).resolve()
        if not path.exists():
            raise FileNotFoundError(f"Router file {file_path} does not exist")

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data, **kwargs)

    def to_yaml(self, file_path: Union[str, Path], overwrite: bool = True) -> None:
        """Write the configuration mapping to a YAML file."""
        path = Path(file_path).resolve()
        if path.exists() and not overwrite:
            raise FileExistsError(f"Router file {file_path} already exists")

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    # Accessors

    @property
    def index(self) -> SearchIndex:
        return self._index

    @property
    def route_names(self) -> List[str]:
        return [route.name for route in self.routes]

    @property
    def route_thresholds(self) -> Dict[str, float]:
        return {route.name: route.distance_threshold for route in self.routes}

    def get(self, route_name: str) -> Optional[Route]:
        """The route called ``route_name``, or None."""
        for route in self.routes:
            if route.name == route_name:
                return route
        return None

    def _require(self, route_name: str) -> Route:
        route = self.get(route_name)
        if route is None:
            raise RouteNotFoundError(route_name)
        return route

    # Configuration updates

    def update_route_thresholds(self, thresholds: Dict[str, float]) -> None:
        """
        Change per-route distance thresholds.

        Raises:
            RouteNotFoundError: If a route does not exist
            ValueError: If a threshold is outside (0, 2]
        """
        with self._lock:
            updates = []
            for route_name, threshold in thresholds.items():
                route = self._require(route_name)
                if not 0 < threshold <= 2:
                    raise ValueError(
                        f"Distance threshold for '{route_name}' must be in (0, 2], got {threshold}"
                    )
                updates.append((route, threshold))

            for route, threshold in updates:
                route.distance_threshold = threshold
            self._persist_config()

    def update_routing_config(self, routing_config: RoutingConfig) -> None:
        """Replace the router-wide routing options."""
        with self._lock:
            self.routing_config = routing_config
            self._persist_config()

    def remove_route(self, route_name: str) -> None:
        """
        Remove a route and its reference rows.

        Raises:
            RouteNotFoundError: If the route does not exist
        """
        with self._lock:
            route = self._require(route_name)
            deleted = self._index.drop_keys(self._route_keys(route_name))
            self.routes.remove(route)
            self._persist_config()
        self.logger.info(f"Removed route '{route_name}' ({deleted} references)")

    # Routing

    def route(
        self,
        statement: Optional[str] = None,
        vector: Optional[List[float]] = None,
        aggregation_method: Optional[DistanceAggregationMethod] = None,
        distance_threshold: Optional[float] = None
    ) -> RouteMatch:
        """
        Find the single best route for a statement or vector.

        Args:
            statement: Text to embed
            vector: Pre-computed embedding, used instead of ``statement``
            aggregation_method: Override the configured aggregation
            distance_threshold: Use this threshold for every route instead
                of their own

        Returns:
            The best match, or an empty RouteMatch when nothing qualifies
        """
        matches = self._route_matches(
            statement, vector, 1, aggregation_method, distance_threshold
        )
        return matches[0] if matches else RouteMatch()

    def __call__(self, statement: Optional[str] = None, **kwargs) -> RouteMatch:
        return self.route(statement, **kwargs)

    def route_many(
        self,
        statement: Optional[str] = None,
        vector: Optional[List[float]] = None,
        max_k: Optional[int] = None,
        aggregation_method: Optional[DistanceAggregationMethod] = None,
        distance_threshold: Optional[float] = None
    ) -> List[RouteMatch]:
        """
        Find up to ``max_k`` matching routes, closest first.

        Each match is checked against its own route threshold; routes with no
        qualifying candidates are absent from the result.
        """
        max_k = max_k or self.routing_config.max_k
        if max_k <= 0:
            raise ValueError("max_k must be a positive integer")
        return self._route_matches(
            statement, vector, max_k, aggregation_method, distance_threshold
        )

    def _route_matches(
        self,
        statement: Optional[str],
        vector: Optional[List[float]],
        max_k: int,
        aggregation_method: Optional[DistanceAggregationMethod],
        distance_threshold: Optional[float]
    ) -> List[RouteMatch]:
        if vector is None:
            if statement is None:
                raise ValueError("Must provide a vector or a statement to route")
            vector = self.vectorizer.embed(statement)

        if not self.routes:
            return []
        if distance_threshold is not None and not 0 < distance_threshold <= 2:
            raise ValueError("distance_threshold must be in (0, 2]")

        thresholds = {
            route.name: distance_threshold if distance_threshold is not None else route.distance_threshold
            for route in self.routes
        }
        method = DistanceAggregationMethod(
            aggregation_method or self.routing_config.aggregation_method
        )
        query = self._build_aggregate_query(vector, thresholds, method, max_k)
        rows = self._index.query(query)

        matches: List[RouteMatch] = []
        for row in rows:
            route_name = row.get(ROUTE_NAME_FIELD)
            distance = row.get(DISTANCE_ID)
            threshold = thresholds.get(route_name)
            if threshold is None or distance is None:
                continue
            if distance <= threshold:
                matches.append(RouteMatch(name=route_name, distance=distance))

        self.logger.debug(f"Router '{self.name}' matched {[m.name for m in matches]}")
        return matches[:max_k]

    def _build_aggregate_query(
        self,
        vector: List[float],
        thresholds: Dict[str, float],
        method: DistanceAggregationMethod,
        max_k: int
    ) -> AggregationQuery:
        range_query = VectorRangeQuery(
            vector=vector,
            vector_field_name=VECTOR_FIELD,
            dtype=self.vectorizer.dtype,
            distance_threshold=max(thresholds.values()),
            return_fields=[ROUTE_NAME_FIELD],
        )

        request = (
            AggregateRequest(range_query.query_string())
            .load(f"@{ROUTE_NAME_FIELD}")
            .group_by(
                f"@{ROUTE_NAME_FIELD}",
                _REDUCERS[method](f"@{DISTANCE_ID}").alias(AGGREGATE_DISTANCE)
            )
            .filter(self._threshold_expression(thresholds))
            .sort_by(Asc(f"@{AGGREGATE_DISTANCE}"))
            .limit(0, max_k)
            .dialect(range_query.dialect)
        )
        return AggregationQuery(
            request,
            query_params=range_query.params(),
            numeric_fields=(AGGREGATE_DISTANCE,),
            distance_aliases=(AGGREGATE_DISTANCE,)
        )

    @staticmethod
    def _threshold_expression(thresholds: Dict[str, float]) -> str:
        clauses = [
            f"(@{ROUTE_NAME_FIELD} == '{name}' && @{AGGREGATE_DISTANCE} <= {threshold})"
            for name, threshold in thresholds.items()
        ]
        return " || ".join(clauses)

    # References

    def _reference_key(self, route_name: str, reference: str) -> str:
        return self._index.key(f"{route_name}:{hashify(reference)}")

    def _route_keys(self, route_name: str) -> List[str]:
        pattern = self._index.key(f"{route_name}:*")
        return [decode(key) for key in self._index.client.scan_iter(match=pattern)]

    def _add_routes(self, routes: List[Route]) -> List[str]:
        references = [(route.name, ref) for route in routes for ref in route.references]
        if not references:
            return []
        return self._load_references(references)

    def _load_references(self, references: List[tuple]) -> List[str]:
        # one vectorizer call for every reference
        embeddings = self.vectorizer.embed_batch(
            [reference for _, reference in references],
            as_buffer=True
        )
        documents = []
        keys = []
        for (route_name, reference), embedding in zip(references, embeddings):
            documents.append({
                REFERENCE_ID_FIELD: hashify(reference),
                ROUTE_NAME_FIELD: route_name,
                REFERENCE_FIELD: reference,
                VECTOR_FIELD: embedding,
            })
            keys.append(self._reference_key(route_name, reference))
        return self._index.load(documents, keys=keys)

    def add_route_references(
        self,
        route_name: str,
        references: Union[str, List[str]]
    ) -> List[str]:
        """
        Embed and store new references for an existing route.

        Returns:
            Keys of the reference rows written

        Raises:
            RouteNotFoundError: If the route does not exist
            ValueError: If a reference is empty
        """
        if isinstance(references, str):
            references = [references]
        if not references or any(not ref or not ref.strip() for ref in references):
            raise ValueError("References must be non-empty strings")

        with self._lock:
            route = self._require(route_name)
            keys = self._load_references([(route_name, ref) for ref in references])
            for reference in references:
                if reference not in route.references:
                    route.references.append(reference)
            self._persist_config()

        self.logger.info(f"Added {len(keys)} references to route '{route_name}'")
        return keys

    def get_route_references(
        self,
        route_name: Optional[str] = None,
        reference_ids: Optional[List[str]] = None,
        keys: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        Look up stored references by route name, by reference id or by key.

        Returns:
            Rows with ``key``, ``reference_id``, ``route_name`` and ``reference``

        Raises:
            ValueError: If no lookup argument is supplied
        """
        if keys is None:
            keys = self._resolve_reference_keys(route_name, reference_ids)

        references = []
        for key in keys:
            document = self._index.fetch(key)
            if document is None:
                continue
            document.pop(VECTOR_FIELD, None)
            document["key"] = key
            references.append(document)
        return references

    def _resolve_reference_keys(
        self,
        route_name: Optional[str],
        reference_ids: Optional[List[str]]
    ) -> List[str]:
        if route_name:
            return self._route_keys(route_name)
        if reference_ids:
            query = FilterQuery(
                filter_expression=Filter.tag(REFERENCE_ID_FIELD, reference_ids),
                return_fields=[REFERENCE_ID_FIELD]
            )
            return [row["id"] for row in self._index.paginate(query, page_size=100).all()]
        raise ValueError("Must provide a route name, reference ids or keys")

    def delete_route_references(
        self,
        route_name: Optional[str] = None,
        reference_ids: Optional[List[str]] = None,
        keys: Optional[List[str]] = None
    ) -> int:
        """
        Delete stored references and drop them from the route configuration.

        A route left without references is removed from the router.

        Returns:
            Number of reference rows deleted
        """
        with self._lock:
            references = self.get_route_references(route_name, reference_ids, keys)
            deleted = self._index.drop_keys([ref["key"] for ref in references])

            for ref in references:
                route = self.get(ref.get(ROUTE_NAME_FIELD))
                if route is None:
                    continue
                if ref.get(REFERENCE_FIELD) in route.references:
                    route.references.remove(ref[REFERENCE_FIELD])
                if not route.references:
                    self.routes.remove(route)
                    self.logger.info(f"Route '{route.name}' has no references left, removed")
            self._persist_config()

        self.logger.info(f"Deleted {deleted} references from router '{self.name}'")
        return deleted

    # Lifecycle

    @classmethod
    def _config_key(cls, name: str) -> str:
        return f"{name}:{ROUTE_CONFIG_SUFFIX}"

    @property
    def config_key(self) -> str:
        return self._config_key(self.name)

    def _persist_config(self) -> None:
        self._index.client.json().set(self.config_key, "$", self.to_dict())

    def clear(self) -> int:
        """
        Delete every reference row and route, keeping the index.

        Returns:
            Number of reference rows deleted
        """
        with self._lock:
            pattern = self._index.key("*")
            keys = [decode(key) for key in self._index.client.scan_iter(match=pattern)]
            deleted = self._index.drop_keys([key for key in keys if key != self.config_key])
            self.routes = []
            self._persist_config()
        return deleted

    def delete(self) -> None:
        """Drop the index, its reference rows and the persisted configuration."""
        with self._lock:
            self._index.delete(drop=True)
            self._index.client.delete(self.config_key)
        self.logger.info(f"Deleted router '{self.name}'")
