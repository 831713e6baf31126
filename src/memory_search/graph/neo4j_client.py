"""
Async Neo4j access for memory search.

Every query runs in its own short-lived session opened from one shared
driver. Reads use READ access mode so clustered deployments can route
them to followers, and every statement carries a server-side timeout.

Driver failures are translated at this boundary:
- unreachable server or lost session -> Neo4jConnectionError
- rejected or failed statement -> Neo4jQueryError
- failed schema write -> Neo4jTransactionError

FakeNeo4jClient implements the same interface with scripted responses.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from neo4j import READ_ACCESS, AsyncGraphDatabase, Query
from neo4j.exceptions import ServiceUnavailable, SessionExpired

from memory_search.graph.exceptions import (
    Neo4jConnectionError,
    Neo4jQueryError,
    Neo4jTransactionError,
)

if TYPE_CHECKING:
    from neo4j import AsyncDriver

_DEFAULT_QUERY_TIMEOUT = 30.0
_DEFAULT_MAX_POOL_SIZE = 50


@runtime_checkable
class Neo4jClientProtocol(Protocol):
    """Interface shared by Neo4jClient and FakeNeo4jClient."""

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        ...

    async def connect(self) -> None:
        """Connect to Neo4j."""
        ...

    async def close(self) -> None:
        """Close connection."""
        ...

    async def query(
        self,
        cypher: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute read query."""
        ...

    async def execute_write(
        self,
        cypher: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute write query."""
        ...


class Neo4jClient:
    """Driver-backed client.

    Usage:
        async with Neo4jClient(settings) as client:
            rows = await client.query(
                "MATCH (m:Memory {id: $id}) RETURN m.name AS name", {"id": "m1"}
            )
    """

    def __init__(self, settings: Any) -> None:
        """Store connection settings; the driver is created by connect().

        Args:
            settings: Settings with neo4j_uri, neo4j_user, neo4j_password,
                neo4j_database and optionally neo4j_query_timeout and
                neo4j_max_pool_size
        """
        self._settings = settings
        self._uri = settings.neo4j_uri
        self._auth = (settings.neo4j_user, settings.neo4j_password)
        self._database = settings.neo4j_database
        self._query_timeout = float(
            getattr(settings, "neo4j_query_timeout", _DEFAULT_QUERY_TIMEOUT)
        )
        self._max_pool_size = int(getattr(settings, "neo4j_max_pool_size", _DEFAULT_MAX_POOL_SIZE))
        self._driver: AsyncDriver | None = None

    @property
    def uri(self) -> str:
        """Get the connection URI."""
        return self._uri

    @property
    def database(self) -> str:
        """Get the database name."""
        return self._database

    @property
    def is_connected(self) -> bool:
        """True once connect() has succeeded and until close()."""
        return self._driver is not None

    async def connect(self) -> None:
        """Create the driver and verify the server is reachable.

        Raises:
            Neo4jConnectionError: If the server cannot be reached
        """
        driver = AsyncGraphDatabase.driver(
            self._uri,
            auth=self._auth,
            max_connection_pool_size=self._max_pool_size,
        )
        try:
            await driver.verify_connectivity()
        except Exception as e:
            await driver.close()
            raise Neo4jConnectionError(
                f"Failed to connect to Neo4j at {self._uri}: {e}",
                cause=e,
            ) from e
        self._driver = driver

    async def close(self) -> None:
        """Close the driver; a no-op when not connected."""
        if self._driver is not None:
            driver, self._driver = self._driver, None
            await driver.close()

    async def __aenter__(self) -> Neo4jClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    def _require_driver(self) -> AsyncDriver:
        if self._driver is None:
            raise Neo4jConnectionError(
                "Not connected to Neo4j. Call connect() first or use async context manager."
            )
        return self._driver

    def _statement(self, cypher: str) -> Query:
        return Query(cypher, timeout=self._query_timeout)

    async def query(
        self,
        cypher: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a read statement and return its rows as dicts.

        Args:
            cypher: Cypher text; values always travel in ``parameters``
            parameters: Bound query parameters

        Raises:
            Neo4jConnectionError: If not connected or the connection is lost
            Neo4jQueryError: If the statement fails
        """
        driver = self._require_driver()
        try:
            async with driver.session(
                database=self._database,
                default_access_mode=READ_ACCESS,
            ) as session:
                result = await session.run(self._statement(cypher), parameters or {})
                return await result.data()
        except (ServiceUnavailable, SessionExpired) as e:
            raise Neo4jConnectionError(f"Lost connection to Neo4j: {e}", cause=e) from e
        except Exception as e:
            raise Neo4jQueryError(f"Query failed: {e}", query=cypher, cause=e) from e

    async def execute_write(
        self,
        cypher: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a statement in a managed write transaction.

        Only schema management writes; memories are owned by other services.

        Raises:
            Neo4jConnectionError: If not connected or the connection is lost
            Neo4jTransactionError: If the transaction fails
        """
        driver = self._require_driver()

        async def work(tx: Any) -> list[dict[str, Any]]:
            result = await tx.run(self._statement(cypher), parameters or {})
            return await result.data()

        try:
            async with driver.session(database=self._database) as session:
                return await session.execute_write(work)
        except (ServiceUnavailable, SessionExpired) as e:
            raise Neo4jConnectionError(f"Lost connection to Neo4j: {e}", cause=e) from e
        except Exception as e:
            raise Neo4jTransactionError(f"Transaction failed: {e}") from e


class FakeNeo4jClient:
    """Scripted in-memory fake Neo4j client for testing.

    Implements the same interface as Neo4jClient. Responses are registered
    against a Cypher fragment; the first registered fragment contained in
    an incoming query decides the response. A registered exception is
    raised instead of returned. Every call is recorded in ``calls``.

    Usage:
        fake = FakeNeo4jClient()
        fake.add_response("queryNodes('memory_metadata_idx'", [{"id": "m1", ...}])
        fake.add_response("gds.similarity.cosine([1,2,3]", Neo4jQueryError("Unknown function"))
        async with fake:
            rows = await fake.query(cypher, params)
    """

    def __init__(self, connected: bool = False) -> None:
        """Initialize fake client with no scripted responses.

        Args:
            connected: Start in the connected state (for sync fixtures)
        """
        self._connected = connected
        self._responses: list[tuple[str, list[dict[str, Any]] | Exception]] = []
        self._query_results: list[dict[str, Any]] = []
        self._writes: list[tuple[str, dict[str, Any]]] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def is_connected(self) -> bool:
        """Check if fake is 'connected'."""
        return self._connected

    async def connect(self) -> None:
        """Simulate connecting (always succeeds)."""
        await asyncio.sleep(0)
        self._connected = True

    async def close(self) -> None:
        """Simulate closing connection."""
        await asyncio.sleep(0)
        self._connected = False

    async def __aenter__(self) -> FakeNeo4jClient:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_connected(self) -> None:
        """Raise if not 'connected'."""
        if not self._connected:
            raise Neo4jConnectionError("Fake client not connected")

    async def query(
        self,
        cypher: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return the scripted response for the first matching fragment.

        Falls back to results configured with set_query_results(), then
        to an empty list.
        """
        await asyncio.sleep(0)
        self._ensure_connected()
        self.calls.append((cypher, dict(parameters or {})))

        for fragment, response in self._responses:
            if fragment in cypher:
                if isinstance(response, Exception):
                    raise response
                return [dict(row) for row in response]

        return list(self._query_results)

    async def execute_write(
        self,
        cypher: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Record the write and return no rows."""
        await asyncio.sleep(0)
        self._ensure_connected()
        self._writes.append((cypher, dict(parameters or {})))
        return []

    def add_response(
        self,
        fragment: str,
        response: list[dict[str, Any]] | Exception,
    ) -> None:
        """Register rows (or an exception) for queries containing fragment."""
        self._responses.append((fragment, response))

    def set_query_results(self, results: list[dict[str, Any]]) -> None:
        """Configure the default rows returned when no fragment matches."""
        self._query_results = results

    def calls_matching(self, fragment: str) -> list[tuple[str, dict[str, Any]]]:
        """Return recorded calls whose Cypher contains fragment."""
        return [call for call in self.calls if fragment in call[0]]

    def get_writes(self) -> list[tuple[str, dict[str, Any]]]:
        """Get all statements sent via execute_write()."""
        return self._writes.copy()

    def clear(self) -> None:
        """Clear scripted responses and recorded calls."""
        self._responses.clear()
        self._query_results = []
        self._writes.clear()
        self.calls.clear()
