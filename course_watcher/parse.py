"""
Parse module for the Course Watcher pipeline.

This module handles the two HTML concerns of the crawl:
- Discovering course detail links on catalog pages
- Extracting course fields from a course detail page

Both are pure functions of the page content; no network or store access
happens here. The selectors and labels match the layout of the
formacionagraria.tenerife.es catalog.
"""

from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from course_watcher.models import CourseRecord
from course_watcher.utils import get_logger, normalize_url


# Module logger
logger = get_logger("parse")


# Links to course detail pages start with this path
DETAIL_PATH_PREFIX = "/acfor-fo/actividades/"

# Application form links share the detail prefix and must never be followed
EXCLUDED_LINK_MARKER = "solicitud"

DETAIL_LINK_SELECTOR = f"a[href^='{DETAIL_PATH_PREFIX}']"

PAGE_BODY_SELECTOR = "div.container.page-body"
TITLE_SELECTOR = "span.convocatoria-titulo"
ROW_SELECTOR = "div.row"
ROW_LABEL_SELECTOR = "label"
ROW_VALUE_SELECTOR = "div.col-xs-6.col-sm-8.col-md-10 span"

# Row label (trimmed, exact) -> CourseRecord attribute
FIELD_LABELS: Dict[str, str] = {
    "Lugar de impartición:": "location",
    "Período de impartición:": "period",
    "Horario de impartición:": "schedule",
    "Plazas disponibles:": "available_slots",
    "Importe:": "cost",
}


def parse_html(html: str) -> BeautifulSoup:
    """Parse raw HTML with the parser used throughout the pipeline."""
    return BeautifulSoup(html, "html.parser")


def _child_text(element: Tag, selector: str) -> str:
    """Concatenated text of every element matching selector, trimmed."""
    return "".join(node.get_text() for node in element.select(selector)).strip()


# =============================================================================
# Link discovery
# =============================================================================


def is_detail_link(href: str) -> bool:
    """
    Decide whether a raw href points at a course detail page.

    Args:
        href: Value of an anchor's href attribute, as written in the page.

    Returns:
        True for detail links, False for everything else including
        application form links.
    """
    if not href.startswith(DETAIL_PATH_PREFIX):
        return False
    return EXCLUDED_LINK_MARKER not in href


def discover_detail_links(soup: BeautifulSoup, page_url: str) -> List[str]:
    """
    Find course detail links on a page.

    Relative links are resolved against the page's own URL. Duplicates are
    removed while keeping document order.

    Args:
        soup: Parsed page.
        page_url: URL the page was fetched from.

    Returns:
        Absolute URLs of detail pages.
    """
    links: List[str] = []
    seen = set()

    for anchor in soup.select(DETAIL_LINK_SELECTOR):
        href = str(anchor.get("href", ""))
        if not is_detail_link(href):
            if href:
                logger.debug(f"Skipping action link: {href}")
            continue

        url = normalize_url(href, page_url)
        if url not in seen:
            seen.add(url)
            links.append(url)

    logger.debug(f"Discovered {len(links)} detail link(s) on {page_url}")
    return links


# =============================================================================
# Field extraction
# =============================================================================


def extract_course(soup: BeautifulSoup, address: str) -> Optional[CourseRecord]:
    """
    Extract a course record from a detail page.

    Pages without a course title are not course pages and yield None. Rows
    whose label is not one of FIELD_LABELS are ignored; fields without a
    row stay empty.

    Args:
        soup: Parsed detail page.
        address: URL the page was fetched from, used as the record key.

    Returns:
        CourseRecord, or None if the page is not a course page.
    """
    body = soup.select_one(PAGE_BODY_SELECTOR)
    if body is None:
        return None

    title = _child_text(body, TITLE_SELECTOR)
    if not title:
        return None

    fields: Dict[str, str] = {}
    for row in body.select(ROW_SELECTOR):
        label = _child_text(row, ROW_LABEL_SELECTOR)
        attribute = FIELD_LABELS.get(label)
        if attribute is None:
            continue
        fields[attribute] = _child_text(row, ROW_VALUE_SELECTOR)

    return CourseRecord(address=address, title=title, **fields)


def extract_course_from_html(html: str, address: str) -> Optional[CourseRecord]:
    """
    Convenience wrapper around extract_course for raw HTML.

    Args:
        html: Raw HTML of the detail page.
        address: URL the page was fetched from.

    Returns:
        CourseRecord, or None if the page is not a course page.
    """
    if not html:
        return None
    return extract_course(parse_html(html), address)
