# catalogue_detection/__init__.py

# The public entry points used by the rest of the platform.
from .main import (
    detect_site_type,
    derive_extraction_plan,
    extract_catalogue_items,
    extract_menu_items,
    extract_menu_items_multi_page,
    validate_extraction_quality,
    extract_site,
)
from .config import BrowserSettings
