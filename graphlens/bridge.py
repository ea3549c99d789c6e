"""
Query Bridge - the one capability the visualization layer gets from the host.

QueryService owns the async Neo4j driver and its lifecycle.
QueryBridge exposes a single operation, ``execute(query, params)``, which
returns the records as plain mappings and turns every failure into a
TransportError. No retries, no streaming, no partial results.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError
from neo4j.graph import Node, Path, Relationship

from graphlens.config import Neo4jSettings
from graphlens.errors import TransportError

logger = logging.getLogger(__name__)

_VERIFY_QUERY = 'RETURN "Query service is working" AS message'


def to_plain(value: Any) -> Any:
    """Convert a driver value into plain Python data (the bridge wire format)."""
    if isinstance(value, Node):
        return {
            'elementId': value.element_id,
            'labels': sorted(value.labels),
            'properties': {k: to_plain(v) for k, v in value.items()},
        }
    if isinstance(value, Relationship):
        return {
            'elementId': value.element_id,
            'startNodeElementId': value.start_node.element_id,
            'endNodeElementId': value.end_node.element_id,
            'type': value.type,
            'properties': {k: to_plain(v) for k, v in value.items()},
        }
    if isinstance(value, Path):
        nodes = [to_plain(n) for n in value.nodes]
        segments = []
        for i, rel in enumerate(value.relationships):
            segments.append({
                'start': nodes[i],
                'relationship': to_plain(rel),
                'end': nodes[i + 1],
            })
        return {
            'start': nodes[0] if nodes else None,
            'end': nodes[-1] if nodes else None,
            'segments': segments,
            'length': len(segments),
        }
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    # Temporal values expose iso_format(); spatial values and the rest fall back to str
    iso_format = getattr(value, 'iso_format', None)
    if callable(iso_format):
        return iso_format()
    return str(value)


def record_to_plain(record) -> Dict[str, Any]:
    """Convert one driver record into a mapping from return alias to plain value."""
    return {key: to_plain(record[key]) for key in record.keys()}


class QueryService:
    """Manages the async Neo4j driver lifecycle and runs raw queries."""

    def __init__(self, settings: Neo4jSettings):
        self._settings = settings
        self._driver: Optional[AsyncDriver] = None

    @property
    def settings(self) -> Neo4jSettings:
        return self._settings

    @property
    def driver(self) -> AsyncDriver:
        if self._driver is None:
            raise RuntimeError("Neo4j driver not initialised. Call connect() first.")
        return self._driver

    @property
    def is_connected(self) -> bool:
        return self._driver is not None

    async def connect(self) -> None:
        """Create the driver. Does not touch the network."""
        if self._driver is not None:
            return
        self._driver = AsyncGraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.username, self._settings.password),
        )
        logger.info(f"Neo4j driver created for {self._settings.uri}")

    async def close(self) -> None:
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j driver closed")

    async def reconfigure(self, settings: Neo4jSettings) -> None:
        """Swap connection settings; the next query uses a fresh driver."""
        await self.close()
        self._settings = settings

    async def verify_connectivity(self) -> str:
        """Run a trivial query and return its message."""
        records = await self.run(_VERIFY_QUERY)
        if not records:
            return "No results returned."
        return records[0]['message']

    async def run(self, cypher: str, params: Optional[Mapping[str, Any]] = None) -> List[Any]:
        """Run a query in a fresh session and return the driver records."""
        await self.connect()
        async with self.driver.session(database=self._settings.database) as session:
            result = await session.run(cypher, dict(params or {}))
            return [record async for record in result]


class QueryBridge:
    """
    The only surface the visualization layer uses to reach the database.

    Every record is converted to plain data before it leaves the bridge.
    """

    def __init__(self, service: QueryService):
        self._service = service

    @property
    def service(self) -> QueryService:
        return self._service

    async def execute(self, query: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        try:
            records = await self._service.run(query, params)
        except (Neo4jError, DriverError, OSError, RuntimeError, ValueError) as e:
            # Unresolvable addresses surface as ValueError
            logger.error(f"Error executing query: {e}")
            raise TransportError("Query execution failed") from e
        return [record_to_plain(record) for record in records]


async def validate_connection(settings: Neo4jSettings) -> Tuple[bool, str]:
    """
    Validate connection settings without storing them.

    Returns:
        (is_valid, message) tuple
    """
    if not settings.uri:
        return False, "URI is empty"

    service = QueryService(settings)
    try:
        message = await service.verify_connectivity()
        return True, f"Connected: {message}"
    except (Neo4jError, DriverError, OSError, RuntimeError, ValueError) as e:
        error_msg = str(e)
        if "unauthorized" in error_msg.lower() or "authentication" in error_msg.lower():
            return False, "Invalid username or password"
        return False, f"Connection failed: {error_msg}"
    finally:
        await service.close()
