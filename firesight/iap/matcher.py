"""
Ranking of historical IAPs against the current incident.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from firesight.iap.constants import MAX_IAP_INSIGHTS, MIN_IAP_SCORE, RELEVANT_SECTIONS
from firesight.iap.reasoning import generate_reasoning
from firesight.iap.records import Category, IAPInsight, IAPRecord, IAPSection
from firesight.iap.scoring import calculate_iap_similarity
from firesight.iap.snippets import extract_tactical_snippet
from firesight.incident import Incident, Weather
from firesight.terrain import TerrainMetrics

logger = logging.getLogger(__name__)


def select_section(record: IAPRecord, category: Category) -> Optional[IAPSection]:
    """First section relevant to the category, else the first section."""
    relevant = RELEVANT_SECTIONS[Category(category)]
    for section in record.sections:
        if section.type in relevant:
            return section
    return record.sections[0] if record.sections else None


def rank_iaps(
    records: Sequence[IAPRecord],
    incident: Incident,
    weather: Weather,
    category: Category,
    terrain: Optional[TerrainMetrics] = None,
    min_score: int = MIN_IAP_SCORE,
) -> list[tuple[IAPRecord, int]]:
    """Records scoring at least ``min_score``, best first (ties keep dataset order)."""
    scored = [
        (record, calculate_iap_similarity(incident, weather, category, record, terrain))
        for record in records
    ]
    kept = [(record, score) for record, score in scored if score >= min_score]
    kept.sort(key=lambda item: item[1], reverse=True)
    return kept


def find_relevant_iaps(
    records: Sequence[IAPRecord],
    incident: Incident,
    weather: Weather,
    category: Category,
    terrain: Optional[TerrainMetrics] = None,
    min_score: int = MIN_IAP_SCORE,
    max_insights: int = MAX_IAP_INSIGHTS,
) -> list[IAPInsight]:
    """
    Build insights for the best-scoring historical IAPs.

    Parameters
    ----------
    records : sequence of IAPRecord
        Historical IAP collection.
    incident, weather : Incident, Weather
        Current incident context.
    category : Category
        Recommendation category.
    terrain : TerrainMetrics, optional
        Adds the terrain term to tactics scoring.

    Returns
    -------
    list of IAPInsight
        At most ``max_insights``, sorted by descending relevance. Empty when
        nothing reaches ``min_score``.
    """
    category = Category(category)
    if not records:
        return []

    ranked = rank_iaps(records, incident, weather, category, terrain, min_score)
    logger.debug(f"{len(ranked)} of {len(records)} IAPs scored >= {min_score} for {category.value}")

    insights = []
    for record, score in ranked[:max_insights]:
        section = select_section(record, category)
        if section is None:
            continue
        insights.append(
            IAPInsight(
                iap_id=record.id,
                iap_name=record.incident_name,
                relevance_score=score,
                tactical_snippet=extract_tactical_snippet(section, category, record),
                section_type=section.type,
                reasoning=generate_reasoning(incident, weather, record, score, category),
            )
        )
    return insights


class IAPMatcher:
    """Holds a loaded IAP collection and matching thresholds."""

    def __init__(
        self,
        records: Sequence[IAPRecord],
        min_score: int = MIN_IAP_SCORE,
        max_insights: int = MAX_IAP_INSIGHTS,
    ):
        self.records = tuple(records)
        self.min_score = min_score
        self.max_insights = max_insights

    def __len__(self) -> int:
        return len(self.records)

    def match(
        self,
        incident: Incident,
        weather: Weather,
        category: Category,
        terrain: Optional[TerrainMetrics] = None,
    ) -> list[IAPInsight]:
        return find_relevant_iaps(
            self.records,
            incident,
            weather,
            category,
            terrain=terrain,
            min_score=self.min_score,
            max_insights=self.max_insights,
        )
