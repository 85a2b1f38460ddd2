# run_extractor.py
import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from catalogue_detection import config
from catalogue_detection.main import (
    derive_extraction_plan,
    detect_site_type,
    extract_menu_items_multi_page,
    extract_site,
    validate_extraction_quality,
)

console = Console()

SMOKE_TEST_URLS = [
    "https://www.kfc.co.uk/menu",
    "https://www.pizzahut.co.uk/restaurants/menu/",
    "https://www.burgerking.co.uk/menu",
    "https://www.subway.com/en-gb/menunutrition/menu",
]


def configure_logging(verbose: bool) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)-8s - %(name)-25s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = logging.FileHandler(Path("pipeline.log"))
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    rich_handler = RichHandler(
        level=logging.DEBUG if verbose else logging.INFO,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=True,
    )
    root_logger.addHandler(rich_handler)


def dump_json(payload, output: str) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output == "-":
        console.print_json(text)
    else:
        Path(output).write_text(text, encoding="utf-8")
        logging.info("Results written to %s", output)


async def run_detect(url: str, settings, output):
    scores = await detect_site_type(url, settings=settings)
    plan = derive_extraction_plan(scores)
    console.print(f"[bold]{url}[/bold] -> [green]{scores.primary_type.value}[/green] "
                  f"(catalogue {scores.score_catalogue:.2f}, menu {scores.score_menu:.2f})")
    console.print(f"Plan: {plan.priority.value}, ~{plan.estimated_items} items. {plan.rationale}")
    if output:
        dump_json({"scores": scores.to_dict(), "plan": plan.to_dict()}, output)
    return True


async def run_extract(url: str, settings, minimum_items: int, output):
    result = await extract_site(url, minimum_items, settings=settings)
    console.print(f"[bold]{url}[/bold]: {len(result.products)} products, {len(result.menu_items)} menu items")
    if result.quality:
        console.print(f"Quality: {result.quality.score}/100 ({'PASS' if result.quality.passed else 'FAIL'})")
    if output:
        dump_json(result.to_dict(), output)
    return bool(result.quality and result.quality.passed)


async def run_multipage(url: str, settings, max_pages: int, minimum_items: int, output):
    items = await extract_menu_items_multi_page(url, max_pages, settings=settings)
    quality = validate_extraction_quality(items, minimum_items)
    console.print(f"[bold]{url}[/bold]: {len(items)} items from {quality.pages_visited} pages, "
                  f"quality {quality.score}/100 ({'PASS' if quality.passed else 'FAIL'})")
    if output:
        dump_json({"items": [i.to_dict() for i in items], "quality": quality.to_dict()}, output)
    return quality.passed


async def run_smoke(urls, settings, max_pages: int, minimum_items: int, output):
    """Runs the multi-page extractor against each URL and prints a summary table."""
    results = []
    for url in urls:
        start = time.monotonic()
        try:
            items = await extract_menu_items_multi_page(url, max_pages, settings=settings)
            quality = validate_extraction_quality(items, minimum_items)
            results.append({
                "url": url,
                "success": True,
                "item_count": len(items),
                "pages_visited": quality.pages_visited,
                "quality_score": quality.score,
                "quality_passed": quality.passed,
                "duration_s": time.monotonic() - start,
            })
        except Exception as e:
            logging.error("Smoke test for %s failed: %s", url, e, exc_info=True)
            results.append({
                "url": url,
                "success": False,
                "item_count": 0,
                "pages_visited": 0,
                "quality_score": 0,
                "quality_passed": False,
                "duration_s": time.monotonic() - start,
                "error": str(e),
            })

    table = Table(title="Extraction smoke test")
    for column in ("URL", "Items", "Pages", "Quality", "Result", "Duration"):
        table.add_column(column)
    for r in results:
        verdict = "[green]PASS[/green]" if r["success"] and r["quality_passed"] else "[red]FAIL[/red]"
        table.add_row(r["url"], str(r["item_count"]), str(r["pages_visited"]),
                      f"{r['quality_score']}/100", verdict, f"{r['duration_s']:.1f}s")
    console.print(table)

    passed = sum(1 for r in results if r["success"] and r["quality_passed"])
    console.print(f"Passed: {passed}/{len(results)}")
    if output:
        dump_json(results, output)
    return passed == len(results)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Detect and extract product catalogues and food menus from business websites.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("command", choices=["detect", "extract", "multipage", "smoke"], help="""What to run.
    detect:    classify a single URL and print the extraction plan
    extract:   detect, extract and assess a single URL
    multipage: crawl a menu across several pages
    smoke:     multi-page extraction against a list of URLs (defaults to known menu sites)
""")
    parser.add_argument("urls", nargs="*", help="Target URL(s).")
    parser.add_argument("--max-pages", type=int, default=8, help="Page budget for multipage/smoke.")
    parser.add_argument("--minimum-items", type=int, default=5, help="Item count needed to pass quality checks.")
    parser.add_argument("--renderer", choices=list(config.RENDERER_BACKENDS), default=None,
                        help="Override the renderer backend (default from CATALOGUE_RENDERER).")
    parser.add_argument("--json", dest="output", default=None,
                        help="Write results as JSON to this file ('-' for stdout).")
    parser.add_argument("--verbose", action="store_true", help="Debug logging on the console.")
    args = parser.parse_args()

    configure_logging(args.verbose)

    settings = config.BROWSER_SETTINGS
    if args.renderer:
        settings = replace(settings, renderer=args.renderer)

    if args.command != "smoke" and len(args.urls) != 1:
        parser.error(f"'{args.command}' needs exactly one URL.")

    if args.command == "detect":
        job = run_detect(args.urls[0], settings, args.output)
    elif args.command == "extract":
        job = run_extract(args.urls[0], settings, args.minimum_items, args.output)
    elif args.command == "multipage":
        job = run_multipage(args.urls[0], settings, args.max_pages, args.minimum_items, args.output)
    else:
        job = run_smoke(args.urls or SMOKE_TEST_URLS, settings, args.max_pages, args.minimum_items, args.output)

    logging.info("=" * 60)
    logging.info("Catalogue detection '%s' starting...", args.command)
    logging.info("=" * 60)

    ok = False
    try:
        ok = asyncio.run(job)
    except KeyboardInterrupt:
        logging.warning("Run interrupted by user.")
    except Exception as e:
        logging.critical("An unexpected error occurred: %s", e, exc_info=True)
    finally:
        logging.info("=" * 60)
        logging.info("Run finished.")
    sys.exit(0 if ok else 1)
