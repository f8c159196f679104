"""
Record types for concepts and works returned by the catalogue API.

The catalogue nests references to other concepts inside a concept record
under ``relatedConcepts``, grouped by relation category (``broaderThan``,
``narrowerThan``, ``relatedTo``, ...). The category names carry no meaning
for graph construction, so every group is flattened into a single list of
candidate stubs.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


def _text(value: Any) -> str:
    """Return ``value`` if it is a non-blank string, else an empty string."""
    if isinstance(value, str) and value.strip():
        return value
    return ''


@dataclass(frozen=True)
class ConceptStub:
    """Unresolved reference to a related concept."""
    id: str
    label: str
    type: str

    @classmethod
    def from_dict(cls, data: Any) -> Optional['ConceptStub']:
        """
        Parse a related-concept entry.

        Returns None unless the entry carries a non-empty id, label and type.
        The catalogue names the type field ``conceptType`` on related entries.
        """
        if not isinstance(data, dict):
            return None

        concept_id = _text(data.get('id'))
        label = _text(data.get('label'))
        concept_type = _text(data.get('conceptType')) or _text(data.get('type'))

        if not (concept_id and label and concept_type):
            return None
        return cls(id=concept_id, label=label, type=concept_type)


@dataclass(frozen=True)
class ConceptRecord:
    """
    Full concept record as served by ``/concepts/{id}``.

    ``related_concepts`` keeps the raw entries per category; use
    ``candidate_stubs`` to get the validated, flattened candidate list.
    """
    id: str
    label: str
    type: str
    related_concepts: Dict[str, List[Any]] = field(default_factory=dict)
    description: Optional[str] = None
    alternative_labels: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> Optional['ConceptRecord']:
        """
        Build a record from an API payload.

        Args:
            data: Decoded JSON body of a concept lookup

        Returns:
            ConceptRecord, or None when the payload has no usable id
        """
        if not isinstance(data, dict):
            return None

        concept_id = _text(data.get('id'))
        if not concept_id:
            return None

        related = data.get('relatedConcepts') or {}
        if not isinstance(related, dict):
            related = {}
        groups = {
            str(category): list(entries)
            for category, entries in related.items()
            if isinstance(entries, list)
        }

        alternative_labels = tuple(
            label for label in data.get('alternativeLabels') or []
            if _text(label)
        )

        return cls(
            id=concept_id,
            label=_text(data.get('label')),
            type=_text(data.get('type')),
            related_concepts=groups,
            description=_text(data.get('description')) or None,
            alternative_labels=alternative_labels,
        )

    def candidate_stubs(self) -> List[ConceptStub]:
        """Flatten every relation category into one list of valid stubs."""
        stubs = []
        for entries in self.related_concepts.values():
            for entry in entries:
                stub = ConceptStub.from_dict(entry)
                if stub is not None:
                    stubs.append(stub)
        return stubs


@dataclass(frozen=True)
class WorkSummary:
    """A catalogue work tagged with a concept as subject."""
    id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    contributors: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> Optional['WorkSummary']:
        if not isinstance(data, dict) or not _text(data.get('id')):
            return None

        thumbnail = data.get('thumbnail')
        thumbnail_url = None
        if isinstance(thumbnail, dict):
            thumbnail_url = _text(thumbnail.get('url')) or None

        contributors = []
        for contributor in data.get('contributors') or []:
            if not isinstance(contributor, dict):
                continue
            agent = contributor.get('agent') or {}
            name = _text(agent.get('label')) if isinstance(agent, dict) else ''
            if not name:
                continue
            roles = []
            for role in contributor.get('roles') or []:
                # Roles come back either as plain strings or {"label": ...}
                role_label = _text(role.get('label')) if isinstance(role, dict) else _text(role)
                if role_label:
                    roles.append(role_label)
            contributors.append(f"{name} ({', '.join(roles)})" if roles else name)

        return cls(
            id=data['id'],
            title=_text(data.get('title')) or 'Untitled',
            description=_text(data.get('description')) or None,
            thumbnail_url=thumbnail_url,
            contributors=tuple(contributors),
        )
