"""Read-only access to concepts and works in the Wellcome Collection catalogue."""

from .client import (
    CatalogueClient, CatalogueResolver, ConceptResolver, ClientConfig,
    CatalogueError, ConceptNotFoundError
)
from .schemas import ConceptRecord, ConceptStub, WorkSummary
from .config import DEFAULT_CONCEPT_ID

__all__ = [
    'CatalogueClient',
    'CatalogueResolver',
    'ConceptResolver',
    'ClientConfig',
    'CatalogueError',
    'ConceptNotFoundError',
    'ConceptRecord',
    'ConceptStub',
    'WorkSummary',
    'DEFAULT_CONCEPT_ID'
]
