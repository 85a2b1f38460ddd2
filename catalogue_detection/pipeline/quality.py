# catalogue_detection/pipeline/quality.py
import logging
from collections import Counter
from typing import Sequence

from ..models import QualityAssessment

logger = logging.getLogger(__name__)

COUNT_WEIGHT = 60
PRICE_WEIGHT = 25
DESCRIPTION_WEIGHT = 15
PASS_THRESHOLD = 70


def _populated(value) -> bool:
    if value is None:
        return False
    return bool(str(value).strip())


def validate_extraction_quality(items: Sequence, minimum_items: int) -> QualityAssessment:
    """
    Scores an extracted item set from 0 to 100.

    Item count against ``minimum_items`` drives most of the score and saturates once the
    minimum is met; the rest comes from how many items carry a price and a description.
    Passing needs both the count floor and the score threshold, so plenty of items with
    nothing but names still fails.
    """
    item_count = len(items)
    if minimum_items <= 0:
        count_adequacy = 1.0
    else:
        count_adequacy = min(1.0, item_count / minimum_items)

    if item_count:
        price_coverage = sum(1 for i in items if _populated(getattr(i, "price", None))) / item_count
        description_coverage = sum(1 for i in items if _populated(getattr(i, "description", None))) / item_count
    else:
        price_coverage = description_coverage = 0.0

    score = round(
        COUNT_WEIGHT * count_adequacy
        + PRICE_WEIGHT * price_coverage
        + DESCRIPTION_WEIGHT * description_coverage
    )
    score = max(0, min(100, score))
    passed = item_count >= minimum_items and score >= PASS_THRESHOLD

    issues = []
    if item_count < minimum_items:
        issues.append(f"Only {item_count} items extracted, expected at least {minimum_items}")
    if item_count and price_coverage < 1.0:
        issues.append(f"{round((1 - price_coverage) * 100)}% of items have no price")
    if item_count and description_coverage < 1.0:
        issues.append(f"{round((1 - description_coverage) * 100)}% of items have no description")
    names = Counter(
        str(getattr(i, "name", None) or getattr(i, "title", "")).strip().lower() for i in items
    )
    duplicates = sum(count - 1 for count in names.values() if count > 1)
    if duplicates:
        issues.append(f"{duplicates} items share a name with another item")

    pages_visited = len({getattr(i, "source_url", None) for i in items if getattr(i, "source_url", None)})

    logger.info(
        "Quality: %d/100 (%s), %d items over %d pages",
        score, "PASS" if passed else "FAIL", item_count, pages_visited,
    )
    return QualityAssessment(
        score=score,
        passed=passed,
        item_count=item_count,
        minimum_items=minimum_items,
        pages_visited=pages_visited,
        price_coverage=price_coverage,
        description_coverage=description_coverage,
        issues=issues,
    )
