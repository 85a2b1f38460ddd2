# catalogue_detection/models/__init__.py

# Makes the model classes directly available from the 'models' package.

from .page_models import RenderedPage
from .signal_models import (
    SchemaType,
    PlatformCategory,
    UrlPatternType,
    DomSignalType,
    SiteType,
    ExtractionPriority,
    StructuredDataSignal,
    PlatformSignal,
    UrlPatternSignal,
    DomHeuristicSignal,
    Signal,
    DetectionSignals,
    DetectionScores,
    ExtractionPlan,
)
from .item_models import (
    ExtractedProduct,
    ExtractedMenuItem,
    MultiPageMenuItem,
    QualityAssessment,
    SiteExtractionResult,
)
