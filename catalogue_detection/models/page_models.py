# catalogue_detection/models/page_models.py

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from lxml import etree, html as lxml_html

logger = logging.getLogger(__name__)

# Elements whose text is code or styling rather than visible content.
NON_CONTENT_TAGS = ("script", "style", "noscript", "template")


@dataclass
class RenderedPage:
    """
    A point-in-time snapshot of one page after the browser finished rendering it.
    Holds the final resolved URL and the raw HTML; the DOM is parsed lazily with lxml
    and all collectors/extractors query that tree read-only.
    """
    url: str
    html: str
    _tree: Optional[lxml_html.HtmlElement] = field(default=None, init=False, repr=False)
    _content_tree: Optional[lxml_html.HtmlElement] = field(default=None, init=False, repr=False)
    _parsed: bool = field(default=False, init=False, repr=False)

    @property
    def host(self) -> str:
        return (urlparse(self.url).hostname or "").lower()

    @property
    def tree(self) -> Optional[lxml_html.HtmlElement]:
        """The parsed DOM, or None when the markup is empty or unparseable."""
        if not self._parsed:
            self._parsed = True
            self._tree = self._parse()
        return self._tree

    @property
    def content_tree(self) -> Optional[lxml_html.HtmlElement]:
        """A second parse of the DOM with scripts, styles and templates stripped out."""
        if self._content_tree is None and self.tree is not None:
            content = self._parse()
            if content is not None:
                etree.strip_elements(content, *NON_CONTENT_TAGS, with_tail=False)
            self._content_tree = content
        return self._content_tree

    def _parse(self) -> Optional[lxml_html.HtmlElement]:
        if not self.html or not self.html.strip():
            logger.debug("Empty HTML for %s, no DOM available.", self.url)
            return None
        try:
            try:
                return lxml_html.document_fromstring(self.html)
            except ValueError:
                # lxml refuses str input that carries an XML encoding declaration.
                return lxml_html.document_fromstring(self.html.encode("utf-8"))
        except (etree.ParserError, ValueError) as e:
            logger.warning("Could not parse HTML for %s: %s", self.url, e)
            return None

    def json_ld_blocks(self) -> List[str]:
        """Raw text of every <script type="application/ld+json"> block, in document order."""
        if self.tree is None:
            return []
        blocks = []
        for script in self.tree.iter("script"):
            script_type = (script.get("type") or "").strip().lower()
            if script_type == "application/ld+json":
                blocks.append(script.text or "")
        return blocks

    def anchor_hrefs(self) -> List[str]:
        """The href attribute of every anchor, as written in the markup."""
        if self.tree is None:
            return []
        return [a.get("href") for a in self.tree.iter("a") if a.get("href")]
