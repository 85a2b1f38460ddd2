# catalogue_detection/models/item_models.py

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .. import config
from .signal_models import DetectionScores, ExtractionPlan

AVAILABILITY_VALUES = ("available", "limited", "unavailable")


@dataclass
class ExtractedProduct:
    """
    One product pulled out of a catalogue page. Optional fields stay None when the
    page does not provide them; nothing is synthesized. The price is kept as the raw
    string the site published so we never guess at locale-specific number formats.
    """
    title: str
    description: Optional[str] = None
    price: Optional[str] = None
    currency: str = config.DEFAULT_CURRENCY
    category: Optional[str] = None
    image_url: Optional[str] = None
    availability: str = "available"
    variants: List[str] = field(default_factory=list)
    source_url: Optional[str] = None
    tags: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExtractedMenuItem:
    """One dish or drink from a food menu, filed under the section it appeared in."""
    name: str
    description: Optional[str] = None
    price: Optional[str] = None
    currency: str = config.DEFAULT_CURRENCY
    section: str = config.DEFAULT_MENU_SECTION
    dietary_tags: List[str] = field(default_factory=list)
    options: List[str] = field(default_factory=list)
    source_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MultiPageMenuItem(ExtractedMenuItem):
    """A menu item collected during a crawl; remembers which page visit produced it."""
    image_url: Optional[str] = None
    page_index: int = 0

    @property
    def dedup_key(self):
        return (self.name.strip().lower(), self.section.strip().lower(), self.source_url)


@dataclass
class QualityAssessment:
    score: int
    passed: bool
    item_count: int = 0
    minimum_items: int = 0
    pages_visited: int = 0
    price_coverage: float = 0.0
    description_coverage: float = 0.0
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SiteExtractionResult:
    """Everything one end-to-end run produced for the caller."""
    url: str
    scores: DetectionScores
    plan: ExtractionPlan
    products: List[ExtractedProduct] = field(default_factory=list)
    menu_items: List[ExtractedMenuItem] = field(default_factory=list)
    quality: Optional[QualityAssessment] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "scores": self.scores.to_dict(),
            "plan": self.plan.to_dict(),
            "products": [p.to_dict() for p in self.products],
            "menu_items": [m.to_dict() for m in self.menu_items],
            "quality": self.quality.to_dict() if self.quality else None,
        }
