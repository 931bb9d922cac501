"""
Incident Action Plan (IAP) similarity matching.
"""

from firesight.iap.matcher import IAPMatcher, find_relevant_iaps, rank_iaps, select_section
from firesight.iap.reasoning import generate_reasoning
from firesight.iap.records import (
    Category,
    IAPConditions,
    IAPInsight,
    IAPLocation,
    IAPRecord,
    IAPSection,
    IAPWeather,
    SectionType,
    summarize_iaps,
)
from firesight.iap.scoring import ScoreBreakdown, calculate_iap_similarity, score_breakdown
from firesight.iap.snippets import contains_keyword, extract_tactical_snippet, split_sentences

__all__ = [
    "Category",
    "IAPConditions",
    "IAPInsight",
    "IAPLocation",
    "IAPMatcher",
    "IAPRecord",
    "IAPSection",
    "IAPWeather",
    "ScoreBreakdown",
    "SectionType",
    "calculate_iap_similarity",
    "contains_keyword",
    "extract_tactical_snippet",
    "find_relevant_iaps",
    "generate_reasoning",
    "rank_iaps",
    "score_breakdown",
    "select_section",
    "split_sentences",
    "summarize_iaps",
]
