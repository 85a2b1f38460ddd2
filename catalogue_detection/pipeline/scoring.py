# catalogue_detection/pipeline/scoring.py
import logging
from typing import Tuple

from ..models import (
    DetectionSignals,
    DetectionScores,
    DomSignalType,
    ExtractionPlan,
    ExtractionPriority,
    PlatformCategory,
    SiteType,
    UrlPatternType,
)
from ..models.signal_models import CATALOGUE_SCHEMA_TYPES, ITEM_SCHEMA_TYPES, MENU_SCHEMA_TYPES

logger = logging.getLogger(__name__)

TYPE_THRESHOLD = 0.3
HYBRID_THRESHOLD = 0.6
# Raw evidence on the winning side must exceed the other side by this factor.
DOMINANCE_MARGIN = 1.3
MAX_SCORE = 0.99
NORMALIZATION_OFFSET = 2.0

REPEATED_STRUCTURED_COUNT = 5
REPEATED_STRUCTURED_BOOST = 1.5
PLATFORM_WEIGHT = 1.2
DELIVERY_WEIGHT = 0.5
URL_PATTERN_WEIGHT = 0.8
DOM_WEIGHT = 0.7
PRICE_GRID_BOOST = 0.3

MIN_ESTIMATED_ITEMS = 10


def normalize_score(raw: float) -> float:
    """Maps an unbounded raw score onto [0, 0.99]: 1.0 -> ~0.33, 3.0 -> 0.6, never certainty."""
    if raw <= 0:
        return 0.0
    return min(MAX_SCORE, raw / (raw + NORMALIZATION_OFFSET))


def accumulate_raw_scores(signals: DetectionSignals) -> Tuple[float, float]:
    """Sums the weighted contribution of every signal into (raw_catalogue, raw_menu)."""
    raw_catalogue = 0.0
    raw_menu = 0.0

    for signal in signals.structured_data:
        contribution = signal.confidence * (REPEATED_STRUCTURED_BOOST if signal.count > REPEATED_STRUCTURED_COUNT else 1.0)
        if signal.type in CATALOGUE_SCHEMA_TYPES:
            raw_catalogue += contribution
        elif signal.type in MENU_SCHEMA_TYPES:
            raw_menu += contribution

    for signal in signals.platform:
        if signal.category == PlatformCategory.ECOMMERCE:
            raw_catalogue += signal.confidence * PLATFORM_WEIGHT
        elif signal.category == PlatformCategory.FOOD_ORDERING:
            raw_menu += signal.confidence * PLATFORM_WEIGHT
        elif signal.category == PlatformCategory.DELIVERY:
            # Delivery marketplaces list restaurants but say nothing about a shop.
            raw_menu += signal.confidence * DELIVERY_WEIGHT

    for signal in signals.url_patterns:
        if signal.type == UrlPatternType.CATALOGUE:
            raw_catalogue += signal.confidence * URL_PATTERN_WEIGHT
        elif signal.type == UrlPatternType.MENU:
            raw_menu += signal.confidence * URL_PATTERN_WEIGHT

    for signal in signals.dom_heuristics:
        if signal.type == DomSignalType.PRODUCT_CARD:
            raw_catalogue += signal.confidence * DOM_WEIGHT
        elif signal.type == DomSignalType.MENU_ITEM:
            raw_menu += signal.confidence * DOM_WEIGHT
        elif signal.type == DomSignalType.PRICE_GRID:
            raw_catalogue += PRICE_GRID_BOOST
            raw_menu += PRICE_GRID_BOOST

    return raw_catalogue, raw_menu


def classify(score_catalogue: float, score_menu: float, raw_catalogue: float, raw_menu: float) -> SiteType:
    # The margin rules compare raw values; normalization would squash large differences.
    if score_catalogue > HYBRID_THRESHOLD and score_menu > HYBRID_THRESHOLD:
        return SiteType.HYBRID
    if score_catalogue > TYPE_THRESHOLD and raw_catalogue > raw_menu * DOMINANCE_MARGIN:
        return SiteType.CATALOGUE
    if score_menu > TYPE_THRESHOLD and raw_menu > raw_catalogue * DOMINANCE_MARGIN:
        return SiteType.MENU
    if score_catalogue > TYPE_THRESHOLD or score_menu > TYPE_THRESHOLD:
        return SiteType.CATALOGUE if raw_catalogue >= raw_menu else SiteType.MENU
    return SiteType.NONE


def calculate_scores(signals: DetectionSignals) -> DetectionScores:
    """Fuses all collected evidence into catalogue/menu scores and a primary classification."""
    raw_catalogue, raw_menu = accumulate_raw_scores(signals)
    score_catalogue = normalize_score(raw_catalogue)
    score_menu = normalize_score(raw_menu)
    primary_type = classify(score_catalogue, score_menu, raw_catalogue, raw_menu)

    logger.debug(
        "Raw scores catalogue=%.3f menu=%.3f -> normalized %.3f / %.3f (%s)",
        raw_catalogue, raw_menu, score_catalogue, score_menu, primary_type.value,
    )
    return DetectionScores(
        score_catalogue=score_catalogue,
        score_menu=score_menu,
        confidence=max(score_catalogue, score_menu),
        primary_type=primary_type,
        signals=signals,
        raw_catalogue=raw_catalogue,
        raw_menu=raw_menu,
    )


def _summarize_signals(signals: DetectionSignals) -> str:
    summary = []
    if signals.structured_data:
        summary.append("Structured data: " + ", ".join(f"{s.type.value}({s.count})" for s in signals.structured_data))
    if signals.platform:
        summary.append("Platforms: " + ", ".join(s.platform for s in signals.platform))
    if signals.url_patterns:
        summary.append("URL patterns: " + ", ".join(s.pattern for s in signals.url_patterns))
    if signals.dom_heuristics:
        summary.append("DOM heuristics: " + ", ".join(f"{s.type.value}({s.count})" for s in signals.dom_heuristics))
    return "; ".join(summary) or "No strong signals detected"


def derive_extraction_plan(scores: DetectionScores) -> ExtractionPlan:
    """Turns detection scores into which extractor(s) to run, in what order, and how many items to expect."""
    signals = scores.signals

    estimated_items = sum(s.count for s in signals.structured_data if s.type in ITEM_SCHEMA_TYPES)
    for signal in signals.dom_heuristics:
        if signal.type in (DomSignalType.PRODUCT_CARD, DomSignalType.MENU_ITEM):
            estimated_items = max(estimated_items, signal.count)

    if scores.primary_type == SiteType.HYBRID:
        priority = (
            ExtractionPriority.CATALOGUE_FIRST
            if scores.score_catalogue > scores.score_menu
            else ExtractionPriority.MENU_FIRST
        )
    else:
        priority = ExtractionPriority.PARALLEL

    return ExtractionPlan(
        type=scores.primary_type,
        priority=priority,
        confidence=scores.confidence,
        rationale=_summarize_signals(signals),
        estimated_items=max(estimated_items, MIN_ESTIMATED_ITEMS),
    )
