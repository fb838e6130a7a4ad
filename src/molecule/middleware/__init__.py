"""
Middleware wrapped around the command dispatcher.

CommandLoggingMiddleware:
    Logs every command with its outcome and timing.
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import CommandLoggingMiddleware

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    # Built-in middleware
    "CommandLoggingMiddleware",
]
