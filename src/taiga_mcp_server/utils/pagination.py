"""Pagination Utilities

Walks a paged Taiga listing endpoint and returns every item. Listing endpoints
answer in one of several shapes (a bare list, or an envelope with ``results``
and ``next``), so each response is classified before anything is accumulated.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..constants import DEFAULT_MAX_PAGES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BarePage:
    """A plain list of items. Always the only page."""

    items: List[Any]


@dataclass(frozen=True)
class EnvelopePage:
    """A ``{"results": [...], "next": ...}`` envelope."""

    items: List[Any]
    next: Any = None

    @property
    def has_next(self) -> bool:
        return bool(self.next)


@dataclass(frozen=True)
class UnrecognizedPage:
    """Any other body. Treated as an empty, final page."""

    items: List[Any] = field(default_factory=list)


PageResult = Union[BarePage, EnvelopePage, UnrecognizedPage]

PageFetcher = Callable[[Dict[str, Any]], Any]


def _response_body(response: Any) -> Any:
    # TaigaResponse and similar wrappers carry the body in .data
    if hasattr(response, "data") and not isinstance(response, (dict, list)):
        return response.data
    return response


def classify_page(response: Any) -> PageResult:
    """Classify one listing response into exactly one page shape.

    Args:
        response: A TaigaResponse, or a raw decoded body

    Returns:
        BarePage, EnvelopePage or UnrecognizedPage
    """
    body = _response_body(response)

    if isinstance(body, list):
        return BarePage(items=list(body))

    if isinstance(body, dict) and isinstance(body.get("results"), list):
        return EnvelopePage(items=list(body["results"]), next=body.get("next"))

    return UnrecognizedPage()


def fetch_all_pages(
    fetch_page: PageFetcher,
    initial_params: Optional[Dict[str, Any]] = None,
    max_pages: int = DEFAULT_MAX_PAGES
) -> List[Any]:
    """Fetch all items from a paginated listing.

    Pages are requested strictly one after another, passing
    ``{**initial_params, "page": n}`` to ``fetch_page`` for n = 1, 2, ...

    Traversal stops when a page has no ``next`` indicator, a page is empty,
    ``max_pages`` pages have been fetched, or ``fetch_page`` raises. An error
    mid-traversal is not propagated: the items gathered so far are returned
    and a warning is logged.

    Args:
        fetch_page: Callable taking the page parameters and returning a response
        initial_params: Query parameters sent with every page request
        max_pages: Safety bound on the number of requests (default: 100)

    Returns:
        Items from every page, in the order they were returned
    """
    base_params = dict(initial_params or {})
    all_items: List[Any] = []
    page_number = 1
    has_more = False

    while page_number <= max_pages:
        params = {**base_params, "page": page_number}
        try:
            response = fetch_page(params)
        except Exception as e:
            logger.warning(f"Pagination stopped at page {page_number}: {e}")
            return all_items

        page = classify_page(response)
        all_items.extend(page.items)
        logger.debug(
            f"Page {page_number}: {type(page).__name__} with {len(page.items)} items "
            f"({len(all_items)} total)"
        )

        has_more = isinstance(page, EnvelopePage) and page.has_next and len(page.items) > 0
        if not has_more:
            return all_items

        page_number += 1

    if has_more:
        logger.warning(f"Reached maximum page limit ({max_pages}). Results may be incomplete.")

    return all_items
