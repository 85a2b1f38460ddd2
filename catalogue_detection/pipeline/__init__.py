# catalogue_detection/pipeline/__init__.py

# Makes the pipeline stages directly available from the 'pipeline' package.
from .collectors import collect_signals
from .scoring import calculate_scores, derive_extraction_plan
from .extractors import (
    PageRenderer,
    crawl_menu_pages,
    extract_menu_from_page,
    extract_products_from_page,
)
from .quality import validate_extraction_quality
