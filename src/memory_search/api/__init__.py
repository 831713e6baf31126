"""
HTTP API for memory-search.

Thin FastAPI surface over SearchOrchestrator and GraphTraversal.
"""

from memory_search.api.app import create_app
from memory_search.api.dependencies import ServiceContainer, build_services

__all__ = ["create_app", "ServiceContainer", "build_services"]
