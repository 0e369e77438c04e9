"""
FastAPI middleware package for enhanced logging and request handling.
"""

from .logging_middleware import LoggingMiddleware, add_logging_middleware

__all__ = ["LoggingMiddleware", "add_logging_middleware"]
