"""Relationship analysis: eligibility, the finder collaborator and the controller."""

from .controller import AnalysisOutcome, AnalysisStatus, IncrementalAnalysisController
from .eligibility import PLACEHOLDER_TEXT, eligible_ids, is_empty_item
from .finder import LLMRelationshipFinder, RelationshipFinder
from .response import parse_connections_payload

__all__ = [
    "AnalysisOutcome",
    "AnalysisStatus",
    "IncrementalAnalysisController",
    "PLACEHOLDER_TEXT",
    "eligible_ids",
    "is_empty_item",
    "LLMRelationshipFinder",
    "RelationshipFinder",
    "parse_connections_payload",
]
