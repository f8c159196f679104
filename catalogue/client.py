"""
HTTP client for the Wellcome Collection catalogue API.

Two layers live here:

- CatalogueClient: blocking lookups that raise on failure. Used by the host
  to fetch the root concept and the works tagged with it.
- CatalogueResolver: the awaitable resolver used during graph construction.
  It runs lookups in worker threads and folds every failure (not found,
  network error, malformed body) into ``None``.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from .config import (
    API_BASE_URL, CONCEPTS_PATH, WORKS_PATH, REQUEST_TIMEOUT, USER_AGENT,
    DEFAULT_WORKS_PAGE_SIZE
)
from .schemas import ConceptRecord, WorkSummary

logger = logging.getLogger(__name__)


class CatalogueError(Exception):
    """A catalogue lookup failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConceptNotFoundError(CatalogueError):
    """The catalogue has no concept with the requested id."""


@dataclass
class ClientConfig:
    """Connection settings for CatalogueClient."""
    base_url: str = API_BASE_URL
    timeout: float = REQUEST_TIMEOUT
    user_agent: str = USER_AGENT


class CatalogueClient:
    """
    Read-only client for the concepts and works endpoints.

    Never writes to the catalogue.
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig()
        self.headers = {
            'Accept': 'application/json',
            'User-Agent': self.config.user_agent,
        }

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.config.base_url.rstrip('/')}/{path}"
        try:
            response = requests.get(
                url, params=params, headers=self.headers, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            raise CatalogueError(f"Request to {url} failed: {e}") from e

        if response.status_code == 404:
            raise ConceptNotFoundError(f"Nothing found at {url}", status_code=404)
        if not response.ok:
            raise CatalogueError(
                f"Catalogue returned {response.status_code} for {url}",
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise CatalogueError(f"Malformed JSON from {url}") from e

    def get_concept(self, concept_id: str) -> ConceptRecord:
        """
        Fetch a single concept.

        Args:
            concept_id: Catalogue concept identifier

        Returns:
            Parsed ConceptRecord

        Raises:
            ConceptNotFoundError: If the catalogue answers 404
            CatalogueError: On network errors, other HTTP errors or an
                unusable payload
        """
        if not concept_id:
            raise ValueError("concept_id must be a non-empty string")

        payload = self._get_json(f"{CONCEPTS_PATH}/{concept_id}")
        record = ConceptRecord.from_dict(payload)
        if record is None:
            raise CatalogueError(f"Concept {concept_id} has no usable record")
        return record

    def get_related_works(self, concept_id: str,
                          page_size: int = DEFAULT_WORKS_PAGE_SIZE) -> List[WorkSummary]:
        """Fetch works whose subjects include ``concept_id``."""
        payload = self._get_json(
            WORKS_PATH, params={'subjects': concept_id, 'pageSize': page_size}
        )
        results = payload.get('results', []) if isinstance(payload, dict) else []

        works = []
        for item in results:
            work = WorkSummary.from_dict(item)
            if work is not None:
                works.append(work)
        return works


class ConceptResolver:
    """
    Resolves concept ids to full records for graph construction.

    Implementations return None for anything that is not a usable record;
    the graph builder drops those silently.
    """

    async def resolve(self, concept_id: str) -> Optional[ConceptRecord]:
        raise NotImplementedError


class CatalogueResolver(ConceptResolver):
    """ConceptResolver backed by CatalogueClient, one worker thread per lookup."""

    def __init__(self, client: Optional[CatalogueClient] = None):
        self.client = client or CatalogueClient()

    async def resolve(self, concept_id: str) -> Optional[ConceptRecord]:
        try:
            return await asyncio.to_thread(self.client.get_concept, concept_id)
        except CatalogueError as e:
            logger.warning("Failed to resolve concept %s for graph: %s", concept_id, e)
            return None
