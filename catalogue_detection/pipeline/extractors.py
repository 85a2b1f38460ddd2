# catalogue_detection/pipeline/extractors.py
import logging
import re
from collections import Counter, deque
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Set, Tuple
from urllib.parse import urljoin, urlparse

from lxml import etree

from .. import config
from ..models import (
    ExtractedMenuItem,
    ExtractedProduct,
    MultiPageMenuItem,
    RenderedPage,
)
from ..utils.links import PageLink, label_from_path, normalize_url, same_site_links
from .structured_data import MAX_DEPTH, SchemaNode, collect_nodes, parse_json_ld_blocks

logger = logging.getLogger(__name__)


class PageRenderer(Protocol):
    """Anything that can turn a URL into a rendered snapshot (None when the page could not be loaded)."""

    async def render_page(self, url: str) -> Optional[RenderedPage]:
        ...


# --- Structured data: products ---

AVAILABILITY_MAP = {
    "instock": "available",
    "onlineonly": "available",
    "instoreonly": "available",
    "limitedavailability": "limited",
    "preorder": "limited",
    "presale": "limited",
    "backorder": "limited",
    "outofstock": "unavailable",
    "soldout": "unavailable",
    "discontinued": "unavailable",
}
PRODUCT_TAG_KEYS = ("sku", "mpn", "gtin", "gtin8", "gtin12", "gtin13", "gtin14", "brand")
DIET_PREFIXES = ("https://schema.org/", "http://schema.org/", "schema:")


def _scalar_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool) or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _offers(node: SchemaNode) -> List[SchemaNode]:
    return node.children("offers")


def _price_of(node: SchemaNode) -> Optional[str]:
    for offer in _offers(node):
        price = _scalar_text(offer.get("price")) or _scalar_text(offer.get("lowPrice"))
        if price:
            return price
        price_spec = offer.child("priceSpecification")
        if price_spec and _scalar_text(price_spec.get("price")):
            return _scalar_text(price_spec.get("price"))
    return _scalar_text(node.get("price"))


def _currency_of(node: SchemaNode) -> str:
    for offer in _offers(node):
        currency = _scalar_text(offer.get("priceCurrency"))
        if currency:
            return currency
    return _scalar_text(node.get("priceCurrency")) or config.DEFAULT_CURRENCY


def _image_of(node: SchemaNode) -> Optional[str]:
    image = node.get("image")
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("url") or image.get("contentUrl")
    return _scalar_text(image)


def _availability_of(node: SchemaNode) -> str:
    """Only an explicit stock state moves an item off 'available'."""
    raw = None
    for offer in _offers(node):
        raw = _scalar_text(offer.get("availability"))
        if raw:
            break
    raw = raw or _scalar_text(node.get("availability"))
    if not raw:
        return "available"
    key = raw.rstrip("/").rsplit("/", 1)[-1].split(":")[-1].lower()
    return AVAILABILITY_MAP.get(key, "available")


def _variants_of(node: SchemaNode) -> List[str]:
    variants = [v.text("name") for v in node.children("hasVariant")]
    offers = _offers(node)
    if len(offers) > 1:
        variants.extend(o.text("name") for o in offers)
    ordered = []
    for name in variants:
        if name and name not in ordered:
            ordered.append(name)
    return ordered


def _tags_of(node: SchemaNode) -> List[dict]:
    tags = []
    for key in PRODUCT_TAG_KEYS:
        value = node.text(key)
        if value:
            tags.append({"key": key, "value": value})
    return tags


def product_from_node(node: SchemaNode, source_url: Optional[str]) -> ExtractedProduct:
    title = node.text("name")
    if not title and node.is_a("Offer"):
        offered = node.child("itemOffered")
        title = offered.text("name") if offered else None
    return ExtractedProduct(
        title=title or "Unknown Product",
        description=node.text("description"),
        price=_price_of(node),
        currency=_currency_of(node),
        category=node.text("category"),
        image_url=_image_of(node),
        availability=_availability_of(node),
        variants=_variants_of(node),
        source_url=source_url,
        tags=_tags_of(node),
    )


def structured_products(roots: List[SchemaNode], source_url: Optional[str]) -> List[ExtractedProduct]:
    """Every Product/Offer reachable from the JSON-LD roots, including ItemList entries."""
    return [
        product_from_node(node, source_url)
        for node in collect_nodes(roots)
        if node.is_a("Product", "Offer")
    ]


# --- Structured data: menus ---

def _strip_diet_prefix(value: str) -> str:
    for prefix in DIET_PREFIXES:
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


def _dietary_tags_of(node: SchemaNode) -> List[str]:
    raw = node.get("suitableForDiet")
    values = raw if isinstance(raw, list) else [raw]
    tags = []
    for value in values:
        if isinstance(value, dict):
            value = value.get("@id") or value.get("name")
        text = _scalar_text(value)
        if text:
            tags.append(_strip_diet_prefix(text))
    return tags


def _options_of(node: SchemaNode) -> List[str]:
    options = []
    for addon in node.children("menuAddOn"):
        nested = addon.children("hasMenuItem")
        names = [n.text("name") for n in nested] if nested else [addon.text("name")]
        options.extend(name for name in names if name)
    return options


def menu_item_from_node(node: SchemaNode, section: str, source_url: Optional[str]) -> ExtractedMenuItem:
    return ExtractedMenuItem(
        name=node.text("name") or "Unknown Item",
        description=node.text("description"),
        price=_price_of(node),
        currency=_currency_of(node),
        section=section,
        dietary_tags=_dietary_tags_of(node),
        options=_options_of(node),
        source_url=source_url,
    )


def _walk_menu(node: SchemaNode, section: str, depth: int, found: List[Tuple[SchemaNode, str]]) -> None:
    if depth > MAX_DEPTH:
        return
    if node.is_a("MenuItem"):
        found.append((node, section))
    if node.is_a("MenuSection"):
        section = node.text("name") or section
    for key in ("hasMenu", "hasMenuSection", "hasMenuItem"):
        for child in node.children(key):
            _walk_menu(child, section, depth + 1, found)
    for child in node.children("itemListElement"):
        _walk_menu(child.unwrap_list_item(), section, depth + 1, found)


def structured_menu_nodes(roots: List[SchemaNode], default_section: str) -> List[Tuple[SchemaNode, str]]:
    """(MenuItem node, nearest enclosing section name) pairs, in document order."""
    found: List[Tuple[SchemaNode, str]] = []
    for root in roots:
        _walk_menu(root, default_section, 0, found)
    return found


# --- DOM fallback ---

# Thousands-grouped amounts first, so "1,299.00" is not cut short at the separator.
PRICE_CAPTURE = re.compile(r"([£$€])\s*(\d{1,3}(?:[,.]\d{3})+(?:[.,]\d{2})?|\d+(?:[.,]\d{2})?)")
CURRENCY_SYMBOLS = {"£": "GBP", "$": "USD", "€": "EUR"}
CALL_TO_ACTION = re.compile(r"^(add|buy|order|view|see|menu|sign|login)\b", re.IGNORECASE)
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 80
MIN_GRID_CHILDREN = 3
SKIPPED_IMAGE_HINTS = ("icon", "logo", "avatar")
NAME_XPATH = ".//*[self::h1 or self::h2 or self::h3 or self::h4 or self::h5 or self::h6 or self::strong or self::b or @role='heading']"
GRID_CONTAINER_XPATH = "//ul | //ol | //*[@role='list'] | //main | //section | //article"


@dataclass
class DomItemRow:
    """An item recovered from page structure alone, before it is shaped into a product or menu item."""
    name: str
    description: Optional[str] = None
    price: Optional[str] = None
    currency: str = config.DEFAULT_CURRENCY
    image_url: Optional[str] = None


def _clean_text(el) -> str:
    return " ".join((el.text_content() or "").split())


def _valid_name(name: Optional[str], seen: Set[str], skip_calls_to_action: bool = True) -> bool:
    if not name or not (MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH):
        return False
    if name.lower() in seen:
        return False
    return not (skip_calls_to_action and CALL_TO_ACTION.match(name))


def _price_in(text: str) -> Tuple[Optional[str], str]:
    match = PRICE_CAPTURE.search(text or "")
    if not match:
        return None, config.DEFAULT_CURRENCY
    return match.group(2), CURRENCY_SYMBOLS.get(match.group(1), config.DEFAULT_CURRENCY)


def _int_attr(el, name: str) -> Optional[int]:
    try:
        return int(str(el.get(name, "")).strip().rstrip("px"))
    except ValueError:
        return None


def _image_src(img, page_url: str) -> Optional[str]:
    src = (img.get("src") or img.get("data-src") or "").strip()
    if not src or src.startswith("data:"):
        return None
    return urljoin(page_url, src)


def _first(el, xpath: str):
    found = el.xpath(xpath)
    return found[0] if found else None


def _microdata_rows(tree, page_url: str, seen: Set[str]) -> List[DomItemRow]:
    rows = []
    for scope in tree.xpath("//*[@itemscope][contains(@itemtype, 'Product') or contains(@itemtype, 'MenuItem')]"):
        name_el = _first(scope, ".//*[@itemprop='name']")
        name = (name_el.get("content") or _clean_text(name_el)) if name_el is not None else None
        if not _valid_name(name, seen, skip_calls_to_action=False):
            continue
        price_el = _first(scope, ".//*[@itemprop='price']")
        price = None
        if price_el is not None:
            price_match = re.search(r"\d+(?:[.,]\d{2})?", price_el.get("content") or _clean_text(price_el))
            price = price_match.group(0) if price_match else None
        currency_el = _first(scope, ".//*[@itemprop='priceCurrency']")
        currency = (currency_el.get("content") or _clean_text(currency_el)) if currency_el is not None else None
        desc_el = _first(scope, ".//*[@itemprop='description']")
        img = _first(scope, ".//img")
        seen.add(name.lower())
        rows.append(DomItemRow(
            name=name,
            description=(_clean_text(desc_el) or None) if desc_el is not None else None,
            price=price,
            currency=currency or config.DEFAULT_CURRENCY,
            image_url=_image_src(img, page_url) if img is not None else None,
        ))
    return rows


def _child_signature(child) -> Tuple[bool, bool, bool]:
    has_img = _first(child, ".//img") is not None or child.tag == "img"
    has_price = PRICE_CAPTURE.search(child.text_content() or "") is not None
    has_heading = _first(child, ".//*[self::h1 or self::h2 or self::h3 or self::h4 or self::h5 or self::h6]") is not None
    return has_img, has_price, has_heading


def _grid_rows(tree, page_url: str, seen: Set[str]) -> List[DomItemRow]:
    """Containers whose children repeat the same image/price/heading shape are treated as item grids."""
    for container in tree.xpath(GRID_CONTAINER_XPATH):
        children = [c for c in container if isinstance(c.tag, str)]
        if len(children) < MIN_GRID_CHILDREN:
            continue
        signatures = Counter(_child_signature(c) for c in children[:5])
        signature, matches = signatures.most_common(1)[0]
        if matches < MIN_GRID_CHILDREN or not any(signature):
            continue

        rows = []
        for child in children:
            heading = _first(child, NAME_XPATH)
            name = _clean_text(heading) if heading is not None else None
            if not _valid_name(name, seen):
                continue
            price, currency = _price_in(child.text_content())
            img = _first(child, ".//img")
            image_url = _image_src(img, page_url) if img is not None else None
            if img is not None:
                width, height = _int_attr(img, "width"), _int_attr(img, "height")
                if (width is not None and width < 50) or (height is not None and height < 50):
                    image_url = None
            desc_el = _first(child, ".//p")
            seen.add(name.lower())
            rows.append(DomItemRow(
                name=name,
                description=(_clean_text(desc_el) or None) if desc_el is not None else None,
                price=price,
                currency=currency,
                image_url=image_url,
            ))
        if rows:
            return rows
    return []


def _image_card_rows(tree, page_url: str, seen: Set[str]) -> List[DomItemRow]:
    """Images sitting inside a small card that also carries a heading and a price."""
    rows = []
    for img in tree.iter("img"):
        src = _image_src(img, page_url)
        if not src or any(hint in src.lower() for hint in SKIPPED_IMAGE_HINTS):
            continue
        width = _int_attr(img, "width")
        if width is not None and 0 < width < 80:
            continue

        card = img.getparent()
        for _level in range(4):
            if card is None:
                break
            text = card.text_content() or ""
            if 10 < len(text) < 500 and PRICE_CAPTURE.search(text):
                heading = _first(card, NAME_XPATH)
                name = _clean_text(heading) if heading is not None else None
                if _valid_name(name, seen) and len(name) > 2:
                    price, currency = _price_in(text)
                    seen.add(name.lower())
                    rows.append(DomItemRow(name=name, price=price, currency=currency, image_url=src))
                break
            card = card.getparent()
    return rows


def dom_item_rows(page: RenderedPage) -> List[DomItemRow]:
    """
    Best-effort item recovery when a page has no usable structured data.
    Tries microdata, then repeating grids, then image cards; the first strategy
    that finds anything wins.
    """
    tree = page.content_tree
    if tree is None:
        return []
    for strategy in (_microdata_rows, _grid_rows, _image_card_rows):
        seen: Set[str] = set()
        try:
            rows = strategy(tree, page.url, seen)
        except etree.XPathError as e:
            logger.warning("DOM strategy %s failed on %s: %s", strategy.__name__, page.url, e)
            continue
        if rows:
            logger.debug("DOM strategy %s found %d items on %s", strategy.__name__, len(rows), page.url)
            return rows
    return []


# --- Page-level extraction ---

def extract_products_from_page(page: RenderedPage) -> List[ExtractedProduct]:
    roots = parse_json_ld_blocks(page.json_ld_blocks())
    products = structured_products(roots, page.url)
    if products:
        logger.info("Found %d structured products on %s", len(products), page.url)
        return products

    rows = dom_item_rows(page)
    logger.info("No structured products on %s; DOM fallback found %d", page.url, len(rows))
    return [
        ExtractedProduct(
            title=row.name,
            description=row.description,
            price=row.price,
            currency=row.currency,
            image_url=row.image_url,
            source_url=page.url,
        )
        for row in rows
    ]


def extract_menu_from_page(page: RenderedPage) -> List[ExtractedMenuItem]:
    roots = parse_json_ld_blocks(page.json_ld_blocks())
    found = structured_menu_nodes(roots, config.DEFAULT_MENU_SECTION)
    if found:
        logger.info("Found %d structured menu items on %s", len(found), page.url)
        return [menu_item_from_node(node, section, page.url) for node, section in found]

    rows = dom_item_rows(page)
    logger.info("No structured menu on %s; DOM fallback found %d", page.url, len(rows))
    return [
        ExtractedMenuItem(
            name=row.name,
            description=row.description,
            price=row.price,
            currency=row.currency,
            source_url=page.url,
        )
        for row in rows
    ]


def extract_crawl_items(page: RenderedPage, section: str, page_index: int) -> List[MultiPageMenuItem]:
    """Menu items for one crawled page: structured menu, then structured products, then the DOM."""
    roots = parse_json_ld_blocks(page.json_ld_blocks())

    items = []
    for node, node_section in structured_menu_nodes(roots, section):
        base = menu_item_from_node(node, node_section, page.url)
        items.append(MultiPageMenuItem(**base.to_dict(), image_url=_image_of(node), page_index=page_index))
    if items:
        return items

    for node in collect_nodes(roots):
        if node.is_a("Product"):
            items.append(MultiPageMenuItem(
                name=node.text("name") or "Unknown Item",
                description=node.text("description"),
                price=_price_of(node),
                currency=_currency_of(node),
                section=section,
                source_url=page.url,
                image_url=_image_of(node),
                page_index=page_index,
            ))
    if items:
        return items

    return [
        MultiPageMenuItem(
            name=row.name,
            description=row.description,
            price=row.price,
            currency=row.currency,
            section=section,
            source_url=page.url,
            image_url=row.image_url,
            page_index=page_index,
        )
        for row in dom_item_rows(page)
    ]


# --- Multi-page crawl ---

def _path_of(url: str) -> str:
    return urlparse(url).path.rstrip("/")


def discover_menu_links(page: RenderedPage, seed_path: str) -> List[PageLink]:
    """
    Same-host links that look like menu pages: below the seed path, containing a
    menu URL pattern, or containing a menu category keyword.
    """
    current = normalize_url(page.url)
    menu_patterns = [pattern for pattern, _weight in config.MENU_URL_PATTERNS]
    links = []
    for link in same_site_links(page):
        if normalize_url(link.url) == current:
            continue
        path = _path_of(link.url).lower()
        if not path:
            continue
        is_sub_page = bool(seed_path) and path.startswith(seed_path.lower() + "/")
        matches_pattern = any(pattern in path for pattern in menu_patterns)
        matches_keyword = any(keyword in path for keyword in config.MENU_CATEGORY_KEYWORDS)
        if not (is_sub_page or matches_pattern or matches_keyword):
            continue
        text = link.text if link.text and len(link.text) < 50 else (label_from_path(link.url) or "")
        links.append(PageLink(url=link.url, text=text))
    return links


async def crawl_menu_pages(renderer: PageRenderer, seed_url: str, max_pages: int) -> List[MultiPageMenuItem]:
    """
    Visits the seed page and then menu-looking same-site links, breadth first, one page
    at a time, for at most ``max_pages`` visits. Items are deduplicated by
    (name, section, source_url). A page that fails to load only loses its own items.
    """
    if max_pages < 1:
        return []

    seed_path = _path_of(seed_url)
    queue = deque([(seed_url, None)])
    queued = {normalize_url(seed_url)}
    visited: Set[str] = set()
    items: List[MultiPageMenuItem] = []
    seen_keys = set()
    visits = 0

    while queue and visits < max_pages:
        url, label = queue.popleft()
        page_index = visits
        visits += 1
        logger.info("[bold blue]Visiting page %d/%d:[/bold blue] %s", visits, max_pages, url)

        page = await renderer.render_page(url)
        if page is None:
            logger.warning("Page %s could not be rendered, skipping its contribution.", url)
            continue

        final_key = normalize_url(page.url)
        if final_key in visited:
            logger.debug("%s resolved to already visited %s, skipping.", url, page.url)
            continue
        visited.add(final_key)
        queued.add(final_key)

        section = label or (config.DEFAULT_MENU_SECTION if page_index == 0 else label_from_path(page.url)) or config.DEFAULT_MENU_SECTION
        page_items = extract_crawl_items(page, section, page_index)
        added = 0
        for item in page_items:
            if item.dedup_key in seen_keys:
                continue
            seen_keys.add(item.dedup_key)
            items.append(item)
            added += 1
        if added:
            logger.info("Found %d new items on %s (section '%s')", added, page.url, section)
        else:
            logger.info("No new items on %s", page.url)

        for link in discover_menu_links(page, seed_path):
            key = normalize_url(link.url)
            if key not in queued:
                queued.add(key)
                queue.append((link.url, link.text or None))

    logger.info("Multi-page extraction finished: %d items from %d visits.", len(items), visits)
    return items
