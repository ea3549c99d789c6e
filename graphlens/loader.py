"""
GraphLoader - fetches query results through the bridge into a GraphSession.

The bridge call is the only await point. A fetch of a given kind is never
issued while another of the same kind is in flight, and a result that
arrives after its session was closed is dropped.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from graphlens.builder import GraphModelBuilder
from graphlens.errors import TransportError
from graphlens.model import EMPTY_SNAPSHOT

logger = logging.getLogger(__name__)

NODE_QUERY = "MATCH (n) RETURN n"
LINK_QUERY = "MATCH ()-[r]->() RETURN r"

ConsoleResult = Union[List[Dict[str, Any]], Dict[str, str]]


class GraphLoader:
    """Loads graph snapshots for one session."""

    def __init__(self, bridge, session, builder: Optional[GraphModelBuilder] = None):
        self.bridge = bridge
        self.session = session
        self.builder = builder or GraphModelBuilder()
        self._in_flight = set()

    def is_loading(self, kind: str = 'graph') -> bool:
        return kind in self._in_flight

    def _show_failure(self, message: str) -> None:
        # Never leave stale data under an error banner
        self.session.replace_snapshot(EMPTY_SNAPSHOT)
        self.session.set_error(message)

    async def load(self) -> bool:
        """
        Fetch every node, then every relationship, and replace the snapshot.

        The two queries are independent (not one transaction), so the
        relationship result may reference nodes the node result lacks.

        Returns:
            True if a new snapshot was applied
        """
        if self.is_loading('graph'):
            logger.info("Graph load already in flight; ignoring request")
            return False

        self._in_flight.add('graph')
        try:
            try:
                node_records = await self.bridge.execute(NODE_QUERY)
                link_records = await self.bridge.execute(LINK_QUERY)
            except TransportError as e:
                if not self.session.active:
                    logger.debug("Discarding failed graph load for closed session")
                    return False
                self._show_failure(f"Error fetching graph data: {e}")
                return False

            if not self.session.active:
                logger.debug("Discarding graph load for closed session")
                return False

            snapshot = self.builder.build(node_records, link_records)
            self.session.set_error(None)
            self.session.replace_snapshot(snapshot)
            logger.info(f"Loaded graph: {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges")
            return True
        finally:
            self._in_flight.discard('graph')

    async def run_console(self, query: str,
                          params: Optional[Mapping[str, Any]] = None) -> Optional[ConsoleResult]:
        """
        Run a free-form query, show whatever nodes/relationships it returned.

        Returns:
            The plain records, ``{'error': message}`` on failure, or None if
            the request was refused or its session is gone.
        """
        if self.is_loading('console'):
            logger.info("Console query already in flight; ignoring request")
            return None

        self._in_flight.add('console')
        try:
            try:
                records = await self.bridge.execute(query, params)
            except TransportError as e:
                if not self.session.active:
                    return None
                self._show_failure(str(e))
                return {'error': str(e)}

            if not self.session.active:
                logger.debug("Discarding console result for closed session")
                return None

            self.session.set_error(None)
            self.session.replace_snapshot(self.builder.build_from_records(records))
            return records
        finally:
            self._in_flight.discard('console')
