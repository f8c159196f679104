#!/usr/bin/env python3
"""
Explore related concepts in the Wellcome Collection catalogue.

Fetches a concept, builds the graph of concepts related to it (two hops by
default), lets the force layout settle and writes the result as an
interactive HTML figure and/or a static image. Optionally lists the works
tagged with the concept.

Example:
    python explore_concepts.py --concept-id avkn7rq3 --html graph.html --works
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from catalogue import (
    CatalogueClient, CatalogueResolver, CatalogueError, ConceptResolver,
    ConceptRecord, WorkSummary, DEFAULT_CONCEPT_ID
)
from concept_graph import DEFAULT_MAX_DEPTH, EXPORT_FORMATS, GraphData
from visualization import InteractionController
from visualization.config import DEFAULT_VIEW_WIDTH, DEFAULT_VIEW_HEIGHT

logger = logging.getLogger(__name__)


class ExplorerSession:
    """
    Host for the graph view.

    Keeps track of the concept currently in focus, fetches its record and
    hands it to the InteractionController. Node clicks come back through
    ``request_concept`` and re-root the exploration.
    """

    def __init__(self,
                 client: Optional[CatalogueClient] = None,
                 resolver: Optional[ConceptResolver] = None,
                 width: float = DEFAULT_VIEW_WIDTH,
                 height: float = DEFAULT_VIEW_HEIGHT,
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 seed: Optional[int] = None):
        self.client = client or CatalogueClient()
        self.controller = InteractionController(
            resolver or CatalogueResolver(self.client),
            on_node_click=self.request_concept,
            width=width,
            height=height,
            max_depth=max_depth,
            seed=seed,
        )
        self.concept_id: Optional[str] = None
        self.concept: Optional[ConceptRecord] = None
        self.error: Optional[str] = None
        self._navigation: Optional[asyncio.Task] = None

    async def open(self, concept_id: str) -> Optional[GraphData]:
        """
        Make ``concept_id`` the root of the exploration.

        Returns:
            The new graph, or None if the concept could not be fetched or a
            newer request superseded this one
        """
        self.concept_id = concept_id
        self.error = None

        try:
            root = await asyncio.to_thread(self.client.get_concept, concept_id)
        except CatalogueError as e:
            self.error = f'Concept with ID "{concept_id}" not found or API error: {e}'
            self.concept = None
            logger.error(self.error)
            await self.controller.load(None)
            return None

        self.concept = root
        return await self.controller.load(root, selected_id=concept_id)

    def request_concept(self, concept_id: str):
        """Re-root on ``concept_id``; a pending navigation is abandoned."""
        if self._navigation is not None and not self._navigation.done():
            self._navigation.cancel()
        self._navigation = asyncio.get_running_loop().create_task(self.open(concept_id))

    async def wait(self) -> Optional[GraphData]:
        """Wait for the latest navigation started by ``request_concept``."""
        if self._navigation is None:
            return self.controller.graph
        return await self._navigation

    async def related_works(self, page_size: int = 10) -> List[WorkSummary]:
        if self.concept_id is None:
            return []
        return await asyncio.to_thread(self.client.get_related_works, self.concept_id, page_size)

    def close(self):
        if self._navigation is not None and not self._navigation.done():
            self._navigation.cancel()
        self.controller.close()


def describe_concept(concept: ConceptRecord) -> str:
    """Plain-text detail panel for a concept."""
    lines = [
        concept.label or concept.id,
        concept.description or "No description available.",
        f"ID: {concept.id}",
        f"Type: {concept.type}",
    ]
    if concept.alternative_labels:
        lines.append(f"Alt Labels: {', '.join(concept.alternative_labels)}")
    return "\n".join(lines)


def export_format(path: Path) -> str:
    """Export format named by the file suffix; no suffix means JSON."""
    return path.suffix.lstrip('.').lower() or 'json'


def describe_work(work: WorkSummary) -> str:
    line = f"- {work.title} [{work.id}]"
    if work.contributors:
        line += f" by {'; '.join(work.contributors)}"
    return line


async def run(args: argparse.Namespace) -> int:
    session = ExplorerSession(
        width=args.width, height=args.height, max_depth=args.max_depth, seed=args.seed
    )
    try:
        print(f"Fetching concept {args.concept_id}...")
        graph = await session.open(args.concept_id)
        if session.error:
            print(f"Error: {session.error}", file=sys.stderr)
            return 1

        print("=" * 60)
        print(describe_concept(session.concept))
        print("=" * 60)

        scene = session.controller.settle(max_ticks=args.max_ticks)
        if graph is not None:
            metrics = graph.compute_graph_metrics()
            print(f"Graph: {metrics['num_nodes']} nodes, {metrics['num_edges']} edges")
            print(f"Nodes per depth: {metrics['nodes_per_depth']}")
            if graph.is_empty:
                print(scene.message)

            if args.export:
                export_path = Path(args.export)
                graph.export(export_path, format=export_format(export_path))
                print(f"Exported graph to {export_path}")

        renderer = session.controller.renderer
        title = f"Related Concepts: {session.concept.label or session.concept.id}"
        if args.html:
            renderer.write_html(scene, Path(args.html), title=title)
            print(f"Interactive graph written to {args.html}")
        if args.png:
            renderer.save_static(scene, Path(args.png), title=title)
            print(f"Static graph written to {args.png}")

        if args.works:
            print("\nRelated works:")
            try:
                works = await session.related_works(page_size=args.works_page_size)
            except CatalogueError as e:
                print(f"  Could not load related works: {e}", file=sys.stderr)
            else:
                if not works:
                    print("  No related works found.")
                for work in works:
                    print("  " + describe_work(work))
        return 0
    finally:
        session.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Explore related concepts in the Wellcome Collection catalogue")
    parser.add_argument('--concept-id', default=DEFAULT_CONCEPT_ID,
                        help=f"Concept to start from (default: {DEFAULT_CONCEPT_ID})")
    parser.add_argument('--max-depth', type=int, default=DEFAULT_MAX_DEPTH,
                        help="Number of hops to follow from the root")
    parser.add_argument('--html', help="Write an interactive plotly figure to this path")
    parser.add_argument('--png', help="Write a static matplotlib image to this path")
    parser.add_argument('--export', help="Export the graph (.json, .graphml or .gexf)")
    parser.add_argument('--width', type=float, default=DEFAULT_VIEW_WIDTH)
    parser.add_argument('--height', type=float, default=DEFAULT_VIEW_HEIGHT)
    parser.add_argument('--max-ticks', type=int, default=1000,
                        help="Upper bound on layout iterations")
    parser.add_argument('--seed', type=int, default=None)
    parser.add_argument('--works', action='store_true', help="List works tagged with the concept")
    parser.add_argument('--works-page-size', type=int, default=10)
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    args = parser.parse_args(argv)

    if args.export and export_format(Path(args.export)) not in EXPORT_FORMATS:
        parser.error(f"--export must end in one of: "
                     f"{', '.join('.' + f for f in EXPORT_FORMATS)}")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
