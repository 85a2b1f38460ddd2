import pytest

from catalogue_detection.models import (
    DomSignalType,
    PlatformCategory,
    RenderedPage,
    SchemaType,
    UrlPatternType,
)
from catalogue_detection.pipeline.collectors import (
    collect_dom_heuristics,
    collect_platform_fingerprints,
    collect_signals,
    collect_structured_data,
    collect_url_patterns,
)

from conftest import html_page, json_ld, product


def by_type(signals):
    return {s.type: s for s in signals}


def test_structured_data_counts_nested_list_items(catalogue_html):
    signals = by_type(collect_structured_data(RenderedPage("https://shop.example/", catalogue_html)))

    assert signals[SchemaType.PRODUCT].count == 10
    assert signals[SchemaType.PRODUCT].confidence == pytest.approx(0.9)
    assert signals[SchemaType.ITEM_LIST].count == 1
    assert signals[SchemaType.ITEM_LIST].confidence == pytest.approx(0.6)
    assert SchemaType.MENU_ITEM not in signals


def test_structured_data_follows_menu_containers(restaurant_html):
    signals = by_type(collect_structured_data(RenderedPage("https://olive.example/", restaurant_html)))

    assert signals[SchemaType.RESTAURANT].count == 1
    assert signals[SchemaType.MENU].count == 1
    assert signals[SchemaType.MENU_ITEM].count == 4
    assert signals[SchemaType.MENU_ITEM].source == "json-ld"


def test_structured_data_ignores_malformed_blocks():
    html = html_page(
        '<script type="application/ld+json">{"@type": "Product", broken</script>'
        + json_ld(product("Survivor"))
    )

    signals = collect_structured_data(RenderedPage("https://shop.example/", html))

    assert [(s.type, s.count) for s in signals] == [(SchemaType.PRODUCT, 1)]


def test_platform_fingerprints_match_markup_case_insensitively():
    html = html_page(
        '<div class="Shopify-Section"></div>',
        head='<link rel="stylesheet" href="https://cdn.shopify.com/s/files/theme.css">',
    )

    signals = collect_platform_fingerprints(RenderedPage("https://mugs.example/", html))

    assert len(signals) == 1
    shopify = signals[0]
    assert shopify.platform == "Shopify"
    assert shopify.category == PlatformCategory.ECOMMERCE
    assert set(shopify.indicators) == {"cdn.shopify.com", "shopify-section"}
    assert shopify.confidence == pytest.approx(0.8)


def test_platform_fingerprints_match_the_url():
    signals = collect_platform_fingerprints(
        RenderedPage("https://deliveroo.co.uk/restaurants/olive", html_page("<p>Hi</p>"))
    )

    assert [(s.platform, s.category) for s in signals] == [("Deliveroo", PlatformCategory.DELIVERY)]
    assert signals[0].confidence == pytest.approx(0.6)


def test_image_mime_types_are_not_a_magento_fingerprint():
    html = html_page(
        '<img src="data:image/jpeg;base64,AAAA"><picture><source type="image/webp" srcset="/a.webp"></picture>',
        head='<link rel="icon" type="image/png" href="/favicon.png">',
    )

    assert collect_platform_fingerprints(RenderedPage("https://bakery.example/", html)) == []


def test_magento_theme_assets_are_fingerprinted():
    html = html_page(head='<link rel="stylesheet" href="/static/frontend/Acme/default/en_GB/css/styles.css">')

    [signal] = collect_platform_fingerprints(RenderedPage("https://store.example/", html))

    assert signal.platform == "Magento"
    assert signal.indicators == ("/static/frontend/",)


def test_url_patterns_direct_match_and_discounted_internal_links():
    body = (
        '<a href="/shop/all">Shop</a>'
        '<a href="/menu/drinks">Drinks</a>'
        '<a href="https://cafe.example/products">Products</a>'
        '<a href="https://elsewhere.example/collections">Partner</a>'
    )
    page = RenderedPage("https://cafe.example/menu", html_page(body))

    signals = {(s.pattern, s.type): s for s in collect_url_patterns(page)}

    assert set(signals) == {
        ("/menu", UrlPatternType.MENU),
        ("/shop", UrlPatternType.CATALOGUE),
        ("/drinks", UrlPatternType.MENU),
        ("/products", UrlPatternType.CATALOGUE),
    }
    assert signals[("/menu", UrlPatternType.MENU)].confidence == pytest.approx(0.95)
    assert signals[("/menu", UrlPatternType.MENU)].url == "https://cafe.example/menu"
    assert signals[("/shop", UrlPatternType.CATALOGUE)].confidence == pytest.approx(0.64)
    assert signals[("/products", UrlPatternType.CATALOGUE)].confidence == pytest.approx(0.72)


def test_url_patterns_only_sample_first_fifty_links():
    filler = "".join(f'<a href="/page-{i}">p</a>' for i in range(50))
    page = RenderedPage("https://site.example/", html_page(filler + '<a href="/menu">Menu</a>'))

    assert collect_url_patterns(page) == []


def test_dom_heuristics_on_a_menu_page():
    body = (
        "<h2>Starters</h2><ul><li>Soup (v) £5.00</li><li>Wings £6.00</li></ul>"
        "<h2>Mains</h2><ul><li>Burger £12.00</li><li>Vegan curry £11.00</li>"
        "<li>Fish £13.00</li><li>Pie £12.50</li></ul>"
    )

    signals = by_type(collect_dom_heuristics(RenderedPage("https://pub.example/", html_page(body))))

    assert DomSignalType.PRODUCT_CARD not in signals
    menu = signals[DomSignalType.MENU_ITEM]
    assert menu.count > 2
    assert menu.confidence <= 0.85
    assert "menu-section: starters" in menu.indicators
    assert len(menu.indicators) <= 5
    grid = signals[DomSignalType.PRICE_GRID]
    assert grid.count == 6
    assert grid.confidence == pytest.approx(0.32)


def test_dom_heuristics_on_a_product_grid():
    card = '<div class="product-card"><h3>Mug</h3><span>£8.00</span><button>Add to cart</button></div>'

    signals = by_type(collect_dom_heuristics(RenderedPage("https://shop.example/", html_page(card * 3))))

    products = signals[DomSignalType.PRODUCT_CARD]
    assert products.count >= 6
    assert "product-class-with-price" in products.indicators
    assert DomSignalType.MENU_ITEM not in signals
    assert DomSignalType.PRICE_GRID not in signals


def test_dom_heuristics_ignore_script_text():
    html = html_page("<p>Welcome</p><script>var label = 'vegan add to cart £1 £2 £3 £4 £5 £6';</script>")

    assert collect_dom_heuristics(RenderedPage("https://site.example/", html)) == []


def test_empty_page_yields_no_signals():
    signals = collect_signals(RenderedPage("https://site.example/", ""))

    assert signals.is_empty()
