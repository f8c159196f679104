"""
Bounded breadth-first construction of concept graphs.

Starting from a root concept record, the builder walks related-concept stubs
level by level, resolving each stub into a full record through a
ConceptResolver. All stubs of one dequeued concept are resolved together and
awaited as a group before the walk moves on; concepts are expanded one at a
time.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from catalogue.client import ConceptResolver
from catalogue.schemas import ConceptRecord, ConceptStub

from .graph_data import GraphData, GraphEdge, GraphNode

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 2


class GraphBuilder:
    """
    Turn one concept record into a deduplicated node/edge graph.

    Depth is the BFS distance at which a concept was first discovered and is
    never revised. Edges are deduplicated by exact direction, so ``A -> B``
    and ``B -> A`` may both appear.
    """

    def __init__(self, resolver: ConceptResolver, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self.resolver = resolver
        self.max_depth = max_depth

    async def build(self, root: ConceptRecord) -> GraphData:
        """
        Expand ``root`` into a graph.

        Unresolvable stubs are dropped; the build itself never fails because
        of them. Cancelling the surrounding task abandons the build at the
        current batch of lookups.

        Args:
            root: Fully resolved root concept

        Returns:
            GraphData with the root at depth 0
        """
        nodes: Dict[str, GraphNode] = {
            root.id: GraphNode(
                id=root.id, label=root.label or root.id, type=root.type,
                depth=0, is_root=True
            )
        }
        edges: List[GraphEdge] = []
        seen_edges: Set[Tuple[str, str]] = set()
        queue: Deque[Tuple[ConceptRecord, int]] = deque([(root, 0)])

        while queue:
            concept, depth = queue.popleft()
            if depth >= self.max_depth:
                continue

            candidates = concept.candidate_stubs()
            if not candidates:
                continue

            resolved = await self._resolve_all(candidates)

            for stub, record in zip(candidates, resolved):
                if record is None:
                    continue

                if record.id not in nodes:
                    nodes[record.id] = GraphNode(
                        id=record.id,
                        label=record.label or stub.label,
                        type=record.type or stub.type,
                        depth=depth + 1,
                    )
                    if depth + 1 < self.max_depth:
                        queue.append((record, depth + 1))

                key = (concept.id, record.id)
                if key not in seen_edges:
                    seen_edges.add(key)
                    edges.append(GraphEdge(*key))

        graph = GraphData(root.id, nodes.values(), edges)
        logger.info("Built graph for %s: %d nodes, %d edges",
                    root.id, len(graph), len(graph.edges))
        return graph

    async def _resolve_all(self, stubs: List[ConceptStub]) -> List[Optional[ConceptRecord]]:
        """Resolve every stub concurrently; failures become None."""
        results = await asyncio.gather(
            *(self.resolver.resolve(stub.id) for stub in stubs),
            return_exceptions=True
        )

        records: List[Optional[ConceptRecord]] = []
        for stub, result in zip(stubs, results):
            # CancelledError and interpreter exits are not lookup failures
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                logger.warning("Resolver raised for concept %s: %r", stub.id, result)
                records.append(None)
            elif isinstance(result, ConceptRecord):
                records.append(result)
            else:
                if result is not None:
                    logger.warning("Resolver returned unusable record for %s", stub.id)
                records.append(None)
        return records


async def build_concept_graph(root: ConceptRecord, resolver: ConceptResolver,
                              max_depth: int = DEFAULT_MAX_DEPTH) -> GraphData:
    """Convenience wrapper around GraphBuilder.build."""
    return await GraphBuilder(resolver, max_depth=max_depth).build(root)
