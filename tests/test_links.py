from catalogue_detection.models import RenderedPage
from catalogue_detection.utils.links import (
    internal_hrefs,
    label_from_path,
    normalize_url,
    same_site_links,
)

from conftest import html_page


def test_normalize_url():
    assert normalize_url("HTTPS://Pub.Example/menu/#mains") == "https://pub.example/menu"
    assert normalize_url("https://pub.example") == "https://pub.example/"
    assert normalize_url("https://pub.example/menu?page=2") == "https://pub.example/menu?page=2"


def test_label_from_path():
    assert label_from_path("https://pub.example/our-menu/burgers_and_more") == "Burgers and more"
    assert label_from_path("https://pub.example/") is None


def test_internal_hrefs_keeps_markup_order_and_limit():
    body = (
        '<a href="/a">A</a><a href="https://cdn.other.example/x">X</a>'
        '<a href="https://pub.example/b">B</a><a href="/c">C</a>'
    )
    page = RenderedPage("https://pub.example/", html_page(body))

    assert internal_hrefs(page, 2) == ["/a", "https://pub.example/b"]


def test_same_site_links_resolve_dedupe_and_fall_back_to_title():
    body = (
        '<a href="sides">Sides</a>'
        '<a href="/menu/sides/">Sides again</a>'
        '<a href="/menu/kids" title="Kids menu"><img src="k.png"></a>'
        '<a href="javascript:void(0)">Nope</a>'
        '<a href="https://elsewhere.example/menu">Away</a>'
    )
    page = RenderedPage("https://pub.example/menu/", html_page(body))

    links = same_site_links(page)

    assert [(l.url, l.text) for l in links] == [
        ("https://pub.example/menu/sides", "Sides"),
        ("https://pub.example/menu/kids", "Kids menu"),
    ]
