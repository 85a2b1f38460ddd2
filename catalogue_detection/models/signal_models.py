# catalogue_detection/models/signal_models.py

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Union


class SchemaType(str, Enum):
    """Structured-data types the detector counts."""
    PRODUCT = "Product"
    OFFER = "Offer"
    ITEM_LIST = "ItemList"
    RESTAURANT = "Restaurant"
    FOOD_ESTABLISHMENT = "FoodEstablishment"
    MENU = "Menu"
    MENU_ITEM = "MenuItem"
    ORGANIZATION = "Organization"
    LOCAL_BUSINESS = "LocalBusiness"


CATALOGUE_SCHEMA_TYPES = (SchemaType.PRODUCT, SchemaType.OFFER, SchemaType.ITEM_LIST)
MENU_SCHEMA_TYPES = (SchemaType.RESTAURANT, SchemaType.FOOD_ESTABLISHMENT, SchemaType.MENU, SchemaType.MENU_ITEM)
ITEM_SCHEMA_TYPES = (SchemaType.PRODUCT, SchemaType.MENU_ITEM)


class PlatformCategory(str, Enum):
    ECOMMERCE = "ecommerce"
    FOOD_ORDERING = "food_ordering"
    DELIVERY = "delivery"


class UrlPatternType(str, Enum):
    CATALOGUE = "catalogue"
    MENU = "menu"


class DomSignalType(str, Enum):
    PRODUCT_CARD = "product_card"
    MENU_ITEM = "menu_item"
    PRICE_GRID = "price_grid"


class SiteType(str, Enum):
    CATALOGUE = "catalogue"
    MENU = "menu"
    HYBRID = "hybrid"
    NONE = "none"


class ExtractionPriority(str, Enum):
    CATALOGUE_FIRST = "catalogue_first"
    MENU_FIRST = "menu_first"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class StructuredDataSignal:
    """How many times a schema.org type appeared in the page's embedded JSON-LD."""
    type: SchemaType
    count: int
    confidence: float
    source: str = "json-ld"


@dataclass(frozen=True)
class PlatformSignal:
    """A known commerce/ordering platform whose fingerprints were found in the page."""
    platform: str
    category: PlatformCategory
    confidence: float
    indicators: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UrlPatternSignal:
    """A catalogue- or menu-suggestive path fragment, found in the page URL or one of its links."""
    pattern: str
    type: UrlPatternType
    confidence: float
    url: str


@dataclass(frozen=True)
class DomHeuristicSignal:
    """Visual/textual evidence counted while walking the rendered DOM."""
    type: DomSignalType
    count: int
    confidence: float
    indicators: Tuple[str, ...] = ()


Signal = Union[StructuredDataSignal, PlatformSignal, UrlPatternSignal, DomHeuristicSignal]


def _enum_safe(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _enum_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_enum_safe(v) for v in value]
    return value


@dataclass(frozen=True)
class DetectionSignals:
    """All evidence gathered for a single page visit, one tuple per collector."""
    structured_data: Tuple[StructuredDataSignal, ...] = ()
    platform: Tuple[PlatformSignal, ...] = ()
    url_patterns: Tuple[UrlPatternSignal, ...] = ()
    dom_heuristics: Tuple[DomHeuristicSignal, ...] = ()

    def is_empty(self) -> bool:
        return not (self.structured_data or self.platform or self.url_patterns or self.dom_heuristics)

    def to_dict(self) -> Dict[str, Any]:
        return _enum_safe(asdict(self))


@dataclass(frozen=True)
class DetectionScores:
    score_catalogue: float
    score_menu: float
    confidence: float
    primary_type: SiteType
    signals: DetectionSignals = field(default_factory=DetectionSignals)
    raw_catalogue: float = 0.0
    raw_menu: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return _enum_safe(asdict(self))


@dataclass(frozen=True)
class ExtractionPlan:
    type: SiteType
    priority: ExtractionPriority
    confidence: float
    rationale: str
    estimated_items: int

    def to_dict(self) -> Dict[str, Any]:
        return _enum_safe(asdict(self))
