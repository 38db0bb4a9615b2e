from __future__ import annotations
"""
Mapping utilities to convert ranked CandidateScores into API responses.

Centralises the rounding and optional score breakdown so the HTTP layer, the
CLI and any in-process caller expose results the same way.
"""

from typing import List, Sequence

from loguru import logger

from .config import SimilarItem, SimilarItemsResponse, SimilarityScores
from .pipeline_types import CandidateScore

SCORE_DECIMALS = 3


def _round(value: float) -> float:
    return round(float(value), SCORE_DECIMALS)


def to_similarity_scores(cs: CandidateScore) -> SimilarityScores:
    return SimilarityScores(
        overall=_round(cs.overall_score),
        category=_round(cs.category),
        tags=_round(cs.tag),
        attributes=_round(cs.attribute),
        price=_round(cs.price),
        brand=_round(cs.brand),
        semantic=_round(cs.semantic),
    )


def to_api_item(cs: CandidateScore, include_scores: bool = False) -> SimilarItem:
    return SimilarItem(
        item_id=int(cs.item_id),
        overall_score=_round(cs.overall_score),
        similarity_scores=to_similarity_scores(cs) if include_scores else None,
    )


def to_response(
    item_id: int,
    scores: Sequence[CandidateScore],
    include_scores: bool = False,
) -> SimilarItemsResponse:
    """
    Convert ranked scores into a SimilarItemsResponse, keeping rank order.
    """
    items: List[SimilarItem] = [to_api_item(cs, include_scores) for cs in scores]
    logger.debug("Mapped {} similar items for {} (scores={})", len(items), item_id, include_scores)
    return SimilarItemsResponse(item_id=int(item_id), similar_items=items)


def to_payload(
    item_id: int,
    scores: Sequence[CandidateScore],
    include_scores: bool = False,
) -> List[dict]:
    """Plain-dict view for JSON output; the score breakdown key only appears when requested."""
    response = to_response(item_id, scores, include_scores)
    return [item.model_dump(exclude_none=True) for item in response.similar_items]
