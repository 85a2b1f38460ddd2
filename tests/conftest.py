"""Shared fixtures: HTML builders and an in-memory renderer standing in for the browser."""

import json
from typing import Dict, List, Optional
from urllib.parse import urldefrag

import pytest

from catalogue_detection.models import RenderedPage


def json_ld(*payloads) -> str:
    return "".join(
        f'<script type="application/ld+json">{json.dumps(p)}</script>' for p in payloads
    )


def html_page(body: str = "", head: str = "") -> str:
    return f"<!DOCTYPE html><html><head><title>Test</title>{head}</head><body>{body}</body></html>"


def product(name: str, price: str = "9.99", **extra) -> Dict:
    data = {
        "@type": "Product",
        "name": name,
        "offers": {"@type": "Offer", "price": price, "priceCurrency": "GBP"},
    }
    data.update(extra)
    return data


def menu_item(name: str, price: str = "5.00", **extra) -> Dict:
    data = {
        "@type": "MenuItem",
        "name": name,
        "offers": {"@type": "Offer", "price": price, "priceCurrency": "GBP"},
    }
    data.update(extra)
    return data


class FakeRenderer:
    """Serves canned HTML by URL and records every navigation, like a single browser session would."""

    def __init__(self, pages: Dict[str, str], redirects: Optional[Dict[str, str]] = None,
                 failing: Optional[List[str]] = None):
        self.pages = pages
        self.redirects = redirects or {}
        self.failing = set(failing or [])
        self.calls: List[str] = []

    async def render_page(self, url: str) -> Optional[RenderedPage]:
        self.calls.append(url)
        url, _fragment = urldefrag(url)
        if url in self.failing:
            return None
        final_url = self.redirects.get(url, url)
        html = self.pages.get(final_url)
        if html is None:
            return None
        return RenderedPage(url=final_url, html=html)


@pytest.fixture
def catalogue_html() -> str:
    items = [product(f"Ceramic Mug {i}", price=f"{10 + i}.00", description="Hand thrown stoneware") for i in range(10)]
    item_list = {
        "@context": "https://schema.org",
        "@type": "ItemList",
        "itemListElement": [
            {"@type": "ListItem", "position": i + 1, "item": p} for i, p in enumerate(items)
        ],
    }
    return html_page(json_ld(item_list) + "<h1>Our shop</h1>")


@pytest.fixture
def restaurant_html() -> str:
    restaurant = {
        "@context": "https://schema.org",
        "@type": "Restaurant",
        "name": "The Olive Tree",
        "hasMenu": {
            "@type": "Menu",
            "name": "Dinner",
            "hasMenuSection": [
                {
                    "@type": "MenuSection",
                    "name": "Starters",
                    "hasMenuItem": [
                        menu_item("Hummus", "6.50", description="Chickpeas, tahini",
                                  suitableForDiet=["https://schema.org/VeganDiet"]),
                        menu_item("Halloumi Fries", "7.00"),
                    ],
                },
                {
                    "@type": "MenuSection",
                    "name": "Mains",
                    "hasMenuItem": menu_item(
                        "Lamb Kofta", "15.00",
                        menuAddOn=[{"@type": "MenuItem", "name": "Extra pitta"}],
                    ),
                },
            ],
            "hasMenuItem": [menu_item("Bread Basket", "3.00")],
        },
    }
    return html_page(json_ld(restaurant) + "<h2>Starters</h2><p>Falafel (v)</p>")
