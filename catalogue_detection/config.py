# catalogue_detection/config.py

import os
import shutil
from dataclasses import dataclass
from typing import Dict, Optional

# --- Browser/Network Settings ---
# A fixed desktop User-Agent so sites serve the same markup a normal visitor would see.
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
VIEWPORT = {"width": 1920, "height": 1080}
# Maximum time (in milliseconds) a single navigation may take before that page is abandoned.
REQUEST_TIMEOUT = 30000
# Flags needed to run Chromium inside a container.
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage", "--disable-gpu"]
# Buttons we try to click to get rid of cookie banners before reading the page.
CONSENT_SELECTORS = [
    "#onetrust-accept-btn-handler",
    "[id*='cookie'] button",
    "[class*='cookie'] button",
    "[id*='consent'] button",
    "[class*='consent'] button",
    "button[aria-label*='Accept']",
    "button[aria-label*='accept']",
    "[data-testid*='accept']",
    ".accept-cookies",
]

RENDERER_BACKENDS = ("playwright", "static")


def resolve_chromium_path() -> Optional[str]:
    """Finds a system Chromium: env override first, then PATH. None means Playwright's bundled build."""
    env_path = os.getenv("CHROMIUM_PATH")
    if env_path:
        return env_path
    return shutil.which("chromium") or shutil.which("chromium-browser")


@dataclass(frozen=True)
class BrowserSettings:
    """Everything a renderer needs, resolved once and handed to the delegates explicitly."""
    executable_path: Optional[str] = None
    renderer: str = "playwright"
    headless: bool = True
    user_agent: str = USER_AGENT
    viewport: Optional[Dict[str, int]] = None
    timeout_ms: int = REQUEST_TIMEOUT
    settle_ms: int = 0

    def __post_init__(self):
        if self.renderer not in RENDERER_BACKENDS:
            raise ValueError(f"Unknown renderer backend '{self.renderer}'. Expected one of {RENDERER_BACKENDS}.")

    @classmethod
    def from_env(cls) -> "BrowserSettings":
        return cls(
            executable_path=resolve_chromium_path(),
            renderer=os.getenv("CATALOGUE_RENDERER", "playwright").lower(),
            headless=os.getenv("CATALOGUE_HEADLESS", "true").lower() == "true",
            viewport=dict(VIEWPORT),
            timeout_ms=int(os.getenv("CATALOGUE_NAV_TIMEOUT_MS", str(REQUEST_TIMEOUT))),
            settle_ms=int(os.getenv("CATALOGUE_SETTLE_MS", "0")),
        )


# Resolved once at process start. Library callers may pass their own BrowserSettings instead.
BROWSER_SETTINGS = BrowserSettings.from_env()

# --- Analysis Settings ---
# Known platform signatures, grouped by what kind of business they power.
# Each indicator is matched case-insensitively against the raw page markup and the URL.
PLATFORM_FINGERPRINTS = {
    "ecommerce": [
        {"platform": "Shopify", "indicators": ["Shopify.shop", "cdn.shopify.com", "shopify-section", "/collections/", "/products/"]},
        {"platform": "WooCommerce", "indicators": ["woocommerce", "wc-block", "add_to_cart", "/product-category/", "/product/"]},
        {"platform": "Magento", "indicators": ["Magento", "mage-cache", "/static/frontend/", "/catalog/product/"]},
        {"platform": "Wix Stores", "indicators": ["wix-stores", "wixstores", "_api/wix-ecommerce"]},
        {"platform": "Squarespace Commerce", "indicators": ["squarespace", "sqsp", "/store/"]},
        {"platform": "BigCommerce", "indicators": ["bigcommerce", "/cart.php"]},
        {"platform": "PrestaShop", "indicators": ["prestashop", "/modules/"]},
    ],
    "food_ordering": [
        {"platform": "Square Online", "indicators": ["squareup.com", "square-menu", "weeblysite.com"]},
        {"platform": "GloriaFood", "indicators": ["gloriafood", "gloria.food"]},
        {"platform": "Toast", "indicators": ["toasttab.com", "toast-menu"]},
        {"platform": "Flipdish", "indicators": ["flipdish", "order.flipdish"]},
        {"platform": "ChowNow", "indicators": ["chownow", "direct.chownow"]},
        {"platform": "OpenTable", "indicators": ["opentable.com", "ot-widget"]},
    ],
    "delivery": [
        {"platform": "Deliveroo", "indicators": ["deliveroo.co", "deliveroo.com"]},
        {"platform": "Just Eat", "indicators": ["just-eat", "justeat.co"]},
        {"platform": "Uber Eats", "indicators": ["ubereats.com", "uber.com/eats"]},
        {"platform": "DoorDash", "indicators": ["doordash.com"]},
    ],
}

# Path fragments that suggest a page (or a link) leads to products or to a food menu.
CATALOGUE_URL_PATTERNS = [
    ("/shop", 0.8),
    ("/products", 0.9),
    ("/collections", 0.85),
    ("/category", 0.7),
    ("/store", 0.75),
    ("/catalog", 0.8),
    ("/buy", 0.6),
]
MENU_URL_PATTERNS = [
    ("/menu", 0.95),
    ("/food", 0.8),
    ("/drinks", 0.8),
    ("/takeaway", 0.85),
    ("/order", 0.7),
    ("/our-menu", 0.95),
    ("/food-menu", 0.95),
]
# Only the first N internal links of a page are checked against the tables above.
MAX_INTERNAL_LINKS = 50
INTERNAL_LINK_DISCOUNT = 0.8

# Words and phrases the DOM heuristics look for.
ADD_TO_CART_TEXTS = ["add to cart", "add to bag", "buy now", "add to basket", "shop now"]
MENU_SECTION_TEXTS = ["starters", "mains", "desserts", "drinks", "sides", "appetizers", "entrees", "beverages"]
DIETARY_MARKERS = ["(v)", "(vg)", "(ve)", "(gf)", "vegetarian", "vegan", "gluten-free", "gluten free"]
PRODUCT_CLASS_HINTS = ["product", "item-card", "shop-item"]

# Path words that usually mark a menu category page when crawling a restaurant site.
MENU_CATEGORY_KEYWORDS = [
    "burger", "chicken", "side", "drink", "dessert", "meal", "bucket", "wrap",
    "salad", "breakfast", "lunch", "dinner", "appetizer", "starter", "main",
    "pizza", "pasta", "sandwich", "sharing", "vegan", "vegetarian", "kids",
    "combo", "value", "whats-new", "special", "rice", "bowls", "twisters",
    "box", "savers", "classic", "dips",
]

DEFAULT_CURRENCY = "GBP"
DEFAULT_MENU_SECTION = "Menu"
