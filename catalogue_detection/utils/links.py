# catalogue_detection/utils/links.py
import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urljoin, urldefrag, urlparse

from ..models import RenderedPage

logger = logging.getLogger(__name__)

SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "data:", "#")


@dataclass(frozen=True)
class PageLink:
    url: str
    text: str


def normalize_url(url: str) -> str:
    """Drops the fragment and a trailing slash so the same page is recognised under both spellings."""
    url, _fragment = urldefrag(url)
    parsed = urlparse(url)
    path = parsed.path.rstrip("/") or "/"
    return parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower(), path=path).geturl()


def same_host(url: str, host: str) -> bool:
    return (urlparse(url).hostname or "").lower() == host.lower()


def internal_hrefs(page: RenderedPage, limit: int) -> List[str]:
    """
    Hrefs that stay on the page's site: root-relative paths or absolute links mentioning the host.
    Returned as written in the markup, capped at ``limit``.
    """
    host = page.host
    hrefs = [
        href for href in page.anchor_hrefs()
        if href.startswith("/") or (host and host in href.lower())
    ]
    return hrefs[:limit]


def _link_text(anchor) -> str:
    text = " ".join(anchor.text_content().split())
    if not text:
        text = (anchor.get("title") or anchor.get("aria-label") or "").strip()
    return text


def label_from_path(url: str) -> Optional[str]:
    """'/our-menu/burgers_and_more' -> 'Burgers and more'."""
    parts = [p for p in urlparse(url).path.split("/") if p]
    if not parts:
        return None
    label = parts[-1].replace("-", " ").replace("_", " ").strip()
    return label[:1].upper() + label[1:] if label else None


def same_site_links(page: RenderedPage) -> List[PageLink]:
    """Every same-host link on the page, resolved to an absolute URL, first occurrence wins."""
    if page.tree is None:
        return []
    links: List[PageLink] = []
    seen = set()
    for anchor in page.tree.iter("a"):
        href = (anchor.get("href") or "").strip()
        if not href or href.lower().startswith(SKIPPED_SCHEMES):
            continue
        try:
            absolute = urljoin(page.url, href)
        except ValueError:
            logger.debug("Ignoring unparseable href '%s' on %s", href, page.url)
            continue
        if not absolute.lower().startswith(("http://", "https://")) or not same_host(absolute, page.host):
            continue
        key = normalize_url(absolute)
        if key in seen:
            continue
        seen.add(key)
        links.append(PageLink(url=absolute, text=_link_text(anchor)))
    return links
