"""Relation resolver — rank records related by tags, category, and references."""

from folio.relations.resolver import Relation, RelationResolver

__all__ = ["Relation", "RelationResolver"]
