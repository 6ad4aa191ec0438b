"""Related-record discovery by tags, category, and back-references.

Scoring for each other record of the same type:

- one point per tag shared with the target
- one point when the category matches
- one point per relation field that points back at the target, where
  a reference is a bare id, a list of ids, or an object with an ``id``

Records scoring zero are dropped.  Results are ranked by score, highest
first; ties keep store listing order (file name order).
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from typing import Any

from pydantic import BaseModel, Field

from folio.config import DEFAULT_RELATION_FIELDS, FolioConfig
from folio.content.models import ContentItem, Page, Record
from folio.content.store import ContentStore
from folio.query.engine import paginate_items


class Relation(BaseModel):
    """A candidate record with its accumulated score and the reasons for it."""

    item: ContentItem
    score: int = 0
    reasons: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {"item": self.item.to_record(), "score": self.score, "reasons": self.reasons}


class RelationResolver:
    """Derives related records on demand from the content store."""

    def __init__(
        self,
        store: ContentStore,
        *,
        relation_fields: Sequence[str] = DEFAULT_RELATION_FIELDS,
        tags_field: str = "tags",
        category_field: str = "category",
    ) -> None:
        self._store = store
        self._relation_fields = list(relation_fields)
        self._tags_field = tags_field
        self._category_field = category_field

    @classmethod
    def from_config(cls, store: ContentStore, config: FolioConfig) -> RelationResolver:
        return cls(
            store,
            relation_fields=config.relations.fields,
            tags_field=config.relations.tags_field,
            category_field=config.relations.category_field,
        )

    async def get_related(
        self,
        content_type: str,
        item_id: str,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> Page[Relation]:
        """Rank other records of the same type by relatedness to (type, id).

        An unknown target yields an empty page rather than an error.
        """
        target = await self._store.read(content_type, item_id)
        if target is None:
            return paginate_items([], limit, offset)

        target_record = target.to_record()
        relations = [
            relation
            for item in await self._store.list(content_type)
            if item.id != item_id
            and (relation := self.score(target_record, item)).score > 0
        ]
        relations.sort(key=lambda relation: relation.score, reverse=True)
        return paginate_items(relations, limit, offset)

    def score(self, target: Record, candidate: ContentItem) -> Relation:
        """Score one candidate record against the target record."""
        record = candidate.to_record()
        relation = Relation(item=candidate)

        shared = self._shared_tags(target.get(self._tags_field), record.get(self._tags_field))
        if shared:
            relation.score += shared
            relation.reasons.append("tags")

        category = target.get(self._category_field)
        if category and record.get(self._category_field) == category:
            relation.score += 1
            relation.reasons.append("category")

        target_id = target["id"]
        for field in self._relation_fields:
            if _references(record.get(field), target_id):
                relation.score += 1
                relation.reasons.append(f"relation:{field}")

        return relation

    @staticmethod
    def _shared_tags(target_tags: Any, candidate_tags: Any) -> int:
        if not isinstance(target_tags, list) or not isinstance(candidate_tags, list):
            return 0
        ours = {tag for tag in target_tags if isinstance(tag, Hashable)}
        theirs = {tag for tag in candidate_tags if isinstance(tag, Hashable)}
        return len(ours & theirs)


def _references(value: Any, target_id: Any) -> bool:
    if not value:
        return False
    if isinstance(value, list):
        refs = value
    elif isinstance(value, dict):
        refs = [value.get("id")]
    else:
        refs = [value]
    return any(
        (isinstance(ref, dict) and ref.get("id") == target_id) or ref == target_id
        for ref in refs
    )
