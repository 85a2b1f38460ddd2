# catalogue_detection/main.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Sequence

from . import config
from .config import BrowserSettings
from .delegates import DownloaderDelegate, WebScraperDelegate
from .models import (
    DetectionScores,
    DetectionSignals,
    ExtractedMenuItem,
    ExtractedProduct,
    ExtractionPlan,
    ExtractionPriority,
    MultiPageMenuItem,
    QualityAssessment,
    RenderedPage,
    SiteExtractionResult,
    SiteType,
)
from .pipeline import (
    PageRenderer,
    calculate_scores,
    collect_signals,
    crawl_menu_pages,
    derive_extraction_plan as _derive_extraction_plan,
    extract_menu_from_page,
    extract_products_from_page,
    validate_extraction_quality as _validate_extraction_quality,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_session(settings: Optional[BrowserSettings] = None, renderer: Optional[PageRenderer] = None):
    """
    Yields something with ``render_page``. A caller-supplied renderer is used as is and
    stays owned by the caller; otherwise a delegate is started for the configured backend
    and is closed however the block exits.
    """
    if renderer is not None:
        yield renderer
        return

    settings = settings or config.BROWSER_SETTINGS
    delegate_cls = DownloaderDelegate if settings.renderer == "static" else WebScraperDelegate
    async with delegate_cls(settings) as session:
        yield session


def detect_from_page(page: RenderedPage) -> DetectionScores:
    return calculate_scores(collect_signals(page))


async def detect_site_type(url: str, *, settings: Optional[BrowserSettings] = None,
                           renderer: Optional[PageRenderer] = None) -> DetectionScores:
    """Renders ``url`` once and classifies it as catalogue, menu, hybrid or none."""
    async with open_session(settings, renderer) as session:
        page = await session.render_page(url)

    if page is None:
        logger.warning("Could not render %s; reporting no signals.", url)
        return calculate_scores(DetectionSignals())

    scores = detect_from_page(page)
    logger.info(
        "Detected [bold green]%s[/bold green] for %s (catalogue=%.2f, menu=%.2f)",
        scores.primary_type.value, url, scores.score_catalogue, scores.score_menu,
    )
    return scores


def derive_extraction_plan(scores: DetectionScores) -> ExtractionPlan:
    return _derive_extraction_plan(scores)


async def extract_catalogue_items(url: str, *, settings: Optional[BrowserSettings] = None,
                                  renderer: Optional[PageRenderer] = None) -> List[ExtractedProduct]:
    async with open_session(settings, renderer) as session:
        page = await session.render_page(url)
    if page is None:
        logger.warning("Could not render %s; no products extracted.", url)
        return []
    return extract_products_from_page(page)


async def extract_menu_items(url: str, *, settings: Optional[BrowserSettings] = None,
                             renderer: Optional[PageRenderer] = None) -> List[ExtractedMenuItem]:
    async with open_session(settings, renderer) as session:
        page = await session.render_page(url)
    if page is None:
        logger.warning("Could not render %s; no menu items extracted.", url)
        return []
    return extract_menu_from_page(page)


async def extract_menu_items_multi_page(url: str, max_pages: int = 10, *,
                                        settings: Optional[BrowserSettings] = None,
                                        renderer: Optional[PageRenderer] = None) -> List[MultiPageMenuItem]:
    """Crawls the menu starting at ``url``, visiting at most ``max_pages`` pages in one browser session."""
    async with open_session(settings, renderer) as session:
        return await crawl_menu_pages(session, url, max_pages)


def validate_extraction_quality(items: Sequence, minimum_items: int) -> QualityAssessment:
    return _validate_extraction_quality(items, minimum_items)


async def extract_site(url: str, minimum_items: int = 5, *, settings: Optional[BrowserSettings] = None,
                       renderer: Optional[PageRenderer] = None) -> SiteExtractionResult:
    """
    The whole pipeline for one URL: render once, detect, plan, run the planned
    extractor(s) on that same snapshot and assess what came out.
    """
    async with open_session(settings, renderer) as session:
        page = await session.render_page(url)

    if page is None:
        logger.warning("Could not render %s; nothing to extract.", url)
        scores = calculate_scores(DetectionSignals())
        plan = derive_extraction_plan(scores)
        return SiteExtractionResult(url=url, scores=scores, plan=plan,
                                    quality=validate_extraction_quality([], minimum_items))

    scores = detect_from_page(page)
    plan = derive_extraction_plan(scores)
    logger.info("Extraction plan for %s: %s / %s (%s)", url, plan.type.value, plan.priority.value, plan.rationale)

    products: List[ExtractedProduct] = []
    menu_items: List[ExtractedMenuItem] = []
    if plan.type == SiteType.HYBRID:
        if plan.priority == ExtractionPriority.MENU_FIRST:
            menu_items = extract_menu_from_page(page)
            products = extract_products_from_page(page)
        else:
            products = extract_products_from_page(page)
            menu_items = extract_menu_from_page(page)
    elif plan.type == SiteType.CATALOGUE:
        products = extract_products_from_page(page)
    elif plan.type == SiteType.MENU:
        menu_items = extract_menu_from_page(page)
    else:
        logger.info("No catalogue or menu detected on %s; skipping extraction.", url)

    quality = validate_extraction_quality([*products, *menu_items], minimum_items)
    return SiteExtractionResult(
        url=url,
        scores=scores,
        plan=plan,
        products=products,
        menu_items=menu_items,
        quality=quality,
    )
