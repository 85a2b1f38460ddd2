# catalogue_detection/pipeline/collectors.py
import logging
import re
from collections import Counter
from typing import List

from lxml import etree

from .. import config
from ..models import (
    RenderedPage,
    SchemaType,
    PlatformCategory,
    UrlPatternType,
    DomSignalType,
    StructuredDataSignal,
    PlatformSignal,
    UrlPatternSignal,
    DomHeuristicSignal,
    DetectionSignals,
)
from ..utils.links import internal_hrefs
from .structured_data import collect_nodes, parse_json_ld_blocks

logger = logging.getLogger(__name__)

PRICE_PATTERN = re.compile(r"[£$€]\s*\d+(?:[.,]\d{2})?|\d+(?:[.,]\d{2})?\s*[£$€]")
PREFIXED_PRICE_PATTERN = re.compile(r"[£$€]\s*\d+(?:[.,]\d{2})?")
HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
MAX_INDICATORS = 5
PRICE_GRID_MIN_COUNT = 5


def collect_structured_data(page: RenderedPage) -> List[StructuredDataSignal]:
    """Counts schema.org types in the page's JSON-LD, including nested lists and menus."""
    roots = parse_json_ld_blocks(page.json_ld_blocks())
    type_counts: Counter = Counter()
    for node in collect_nodes(roots):
        for type_name in set(node.types):
            type_counts[type_name] += 1

    signals = []
    for schema_type in SchemaType:
        count = type_counts.get(schema_type.value, 0)
        if count > 0:
            signals.append(StructuredDataSignal(
                type=schema_type,
                count=count,
                confidence=min(0.9, 0.5 + count * 0.1),
            ))
    logger.debug("Structured data on %s: %s", page.url, dict(type_counts))
    return signals


def collect_platform_fingerprints(page: RenderedPage) -> List[PlatformSignal]:
    """Matches the known platform indicator table against the raw markup and URL."""
    html_lower = (page.html or "").lower()
    url_lower = page.url.lower()

    signals = []
    for category, platforms in config.PLATFORM_FINGERPRINTS.items():
        for entry in platforms:
            matched = tuple(
                indicator for indicator in entry["indicators"]
                if indicator.lower() in html_lower or indicator.lower() in url_lower
            )
            if matched:
                signals.append(PlatformSignal(
                    platform=entry["platform"],
                    category=PlatformCategory(category),
                    confidence=min(0.95, 0.4 + len(matched) * 0.2),
                    indicators=matched,
                ))
    return signals


def _url_pattern_table():
    for pattern, weight in config.CATALOGUE_URL_PATTERNS:
        yield pattern, weight, UrlPatternType.CATALOGUE
    for pattern, weight in config.MENU_URL_PATTERNS:
        yield pattern, weight, UrlPatternType.MENU


def collect_url_patterns(page: RenderedPage) -> List[UrlPatternSignal]:
    """
    Checks the page URL against the catalogue/menu path tables, then a sample of its
    internal links at a discount. Each (pattern, type) pair is reported at most once
    from the links.
    """
    signals: List[UrlPatternSignal] = []
    url_lower = page.url.lower()
    for pattern, weight, pattern_type in _url_pattern_table():
        if pattern in url_lower:
            signals.append(UrlPatternSignal(pattern=pattern, type=pattern_type, confidence=weight, url=page.url))

    for link in internal_hrefs(page, config.MAX_INTERNAL_LINKS):
        link_lower = link.lower()
        for pattern, weight, pattern_type in _url_pattern_table():
            if pattern not in link_lower:
                continue
            if any(s.pattern == pattern and s.type == pattern_type for s in signals):
                continue
            signals.append(UrlPatternSignal(
                pattern=pattern,
                type=pattern_type,
                confidence=weight * config.INTERNAL_LINK_DISCOUNT,
                url=link,
            ))
    return signals


def collect_dom_heuristics(page: RenderedPage) -> List[DomHeuristicSignal]:
    """
    One pass over every element: price-bearing product cards, add-to-cart phrases,
    menu section headings and dietary markers. Text is each element's full text
    content, so nested elements each contribute, the same as a browser walk would.
    """
    tree = page.content_tree
    if tree is None:
        return []

    product_count, product_indicators = 0, []
    menu_count, menu_indicators = 0, []

    for el in tree.iter(etree.Element):
        raw_text = el.text_content() or ""
        text = raw_text.lower()
        class_name = (el.get("class") or "").lower()
        tag = el.tag.lower() if isinstance(el.tag, str) else ""

        if any(hint in class_name for hint in config.PRODUCT_CLASS_HINTS) and PRICE_PATTERN.search(raw_text):
            product_count += 1
            product_indicators.append("product-class-with-price")

        for cart_text in config.ADD_TO_CART_TEXTS:
            if cart_text in text:
                product_count += 1
                product_indicators.append(f"cart-text: {cart_text}")

        if tag in HEADING_TAGS:
            for section in config.MENU_SECTION_TEXTS:
                if section in text:
                    menu_count += 1
                    menu_indicators.append(f"menu-section: {section}")

        for marker in config.DIETARY_MARKERS:
            if marker in text:
                menu_count += 1
                menu_indicators.append(f"dietary: {marker}")

    body = tree.find("body")
    body_markup = etree.tostring(body, encoding="unicode") if body is not None else ""
    price_count = len(PREFIXED_PRICE_PATTERN.findall(body_markup))

    signals = []
    if product_count > 0:
        signals.append(DomHeuristicSignal(
            type=DomSignalType.PRODUCT_CARD,
            count=product_count,
            confidence=min(0.85, 0.3 + product_count * 0.05),
            indicators=tuple(product_indicators[:MAX_INDICATORS]),
        ))
    if menu_count > 0:
        signals.append(DomHeuristicSignal(
            type=DomSignalType.MENU_ITEM,
            count=menu_count,
            confidence=min(0.85, 0.3 + menu_count * 0.05),
            indicators=tuple(menu_indicators[:MAX_INDICATORS]),
        ))
    if price_count > PRICE_GRID_MIN_COUNT:
        signals.append(DomHeuristicSignal(
            type=DomSignalType.PRICE_GRID,
            count=price_count,
            confidence=min(0.7, 0.2 + price_count * 0.02),
            indicators=(f"{price_count} price elements found",),
        ))
    return signals


def collect_signals(page: RenderedPage) -> DetectionSignals:
    """Runs all four collectors against the same rendered page."""
    signals = DetectionSignals(
        structured_data=tuple(collect_structured_data(page)),
        platform=tuple(collect_platform_fingerprints(page)),
        url_patterns=tuple(collect_url_patterns(page)),
        dom_heuristics=tuple(collect_dom_heuristics(page)),
    )
    logger.info(
        "Collected signals for %s: %d structured, %d platform, %d url, %d dom",
        page.url, len(signals.structured_data), len(signals.platform),
        len(signals.url_patterns), len(signals.dom_heuristics),
    )
    return signals
