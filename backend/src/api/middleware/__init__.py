"""FastAPI error handling and dependency providers."""

from .dependencies import (
    get_assistant_service,
    get_container,
    get_graph_service,
    get_retrieval_service,
)
from .error_handlers import (
    backend_failure_handler,
    http_exception_handler,
    internal_exception_handler,
    register_error_handlers,
    validation_exception_handler,
)

__all__ = [
    "get_container",
    "get_retrieval_service",
    "get_graph_service",
    "get_assistant_service",
    "register_error_handlers",
    "validation_exception_handler",
    "http_exception_handler",
    "backend_failure_handler",
    "internal_exception_handler",
]
