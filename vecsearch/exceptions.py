"""
Exception hierarchy for vecsearch.

Validation errors double as ``ValueError`` so pydantic validators can raise
them directly. Errors coming from the Redis client are never wrapped here;
callers see ``redis.exceptions.*`` as raised by redis-py.
"""


class VecSearchException(Exception):
    """Base exception for vecsearch operations."""
    pass


class SchemaValidationError(VecSearchException, ValueError):
    """Raised when an index schema declaration is malformed."""
    pass


class QueryValidationError(VecSearchException, ValueError):
    """Raised when a query is built with invalid arguments."""
    pass


class DocumentValidationError(VecSearchException, ValueError):
    """Raised when a document does not match the schema it is written against."""
    pass


class IllegalStateError(VecSearchException, RuntimeError):
    """Raised when an operation is attempted on an object in the wrong state."""
    pass


class RouteNotFoundError(IllegalStateError):
    """Raised when a route name is not configured on the router."""

    def __init__(self, route_name: str):
        self.route_name = route_name
        super().__init__(f"Route {route_name} not found in the SemanticRouter")


class UnsupportedOperationError(VecSearchException, NotImplementedError):
    """Raised for operations the target backend or object does not support."""
    pass
