"""
Main entry point for memory-search.

Creates the FastAPI application instance for uvicorn:

    uvicorn memory_search.main:app --port 8082
"""

import uvicorn

from memory_search.api.app import create_app
from memory_search.core.config import get_settings
from memory_search.core.logging import setup_structured_logging

setup_structured_logging()

# Create application instance
app = create_app()


def run() -> None:
    """Run the API with uvicorn on the configured port."""
    uvicorn.run(app, host="0.0.0.0", port=get_settings().memory_search_port)  # noqa: S104


if __name__ == "__main__":
    run()
