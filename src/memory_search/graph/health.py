"""
Neo4j health check.

Runs a trivial query through the shared client and reports latency.
"""

import time
from typing import Any

from memory_search.graph.exceptions import Neo4jError


async def check_neo4j_health(client: Any) -> dict[str, Any]:
    """
    Check Neo4j health with detailed information.

    Args:
        client: Neo4jClient or FakeNeo4jClient

    Returns:
        Dictionary with status, uri, and latency_ms or error
    """
    uri = getattr(client, "uri", "unknown")
    start_time = time.time()
    try:
        await client.query("RETURN 1 AS ok")
    except Neo4jError as e:
        return {
            "status": "unhealthy",
            "uri": uri,
            "error": str(e),
        }

    latency_ms = (time.time() - start_time) * 1000
    return {
        "status": "healthy",
        "uri": uri,
        "latency_ms": round(latency_ms, 2),
    }
