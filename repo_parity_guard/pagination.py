"""
Pagination over the two REST styles used by the compared systems.

Bitbucket Server pages by offset (``limit``/``start`` in, ``values``,
``isLastPage`` and ``nextPageStart`` out). GitHub pages by number
(``per_page``/``page`` in, a bare JSON array out, a short page marks the end).
Both walkers are generators: each call starts over from the first page and
issues one request per page.
"""

from enum import Enum
from typing import Any, Iterator, NamedTuple

from repo_parity_guard.errors import PaginationError
from repo_parity_guard.http_client import get_json

OFFSET_LIMIT = 100
PER_PAGE = 100


class PaginationStyle(str, Enum):
    """How an endpoint is paginated."""

    OFFSET = "offset"
    PAGE = "page"


class Page(NamedTuple):
    """One page of raw items as returned by a single API call."""

    items: list[Any]
    is_last: bool
    next_cursor: int | None = None


def _offset_page(url: str, body: Any, start: int) -> Page:
    if not isinstance(body, dict) or not isinstance(body.get("values"), list):
        raise PaginationError(url, 200, "expected an object with a 'values' array")

    # A missing isLastPage flag means there is nothing more to ask for
    is_last = body.get("isLastPage", True) is not False
    if is_last:
        return Page(body["values"], True)

    next_start = body.get("nextPageStart")
    if not isinstance(next_start, int) or isinstance(next_start, bool):
        raise PaginationError(url, 200, "page is not last but has no nextPageStart")
    if next_start <= start:
        raise PaginationError(url, 200, f"nextPageStart {next_start} does not advance")
    return Page(body["values"], False, next_start)


def iter_offset_pages(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    limit: int = OFFSET_LIMIT,
    **request_kwargs: Any,
) -> Iterator[Page]:
    """
    Walk an offset-paginated endpoint.

    Stops as soon as a page reports ``isLastPage``, even when it carries
    values. Later requests always use the ``nextPageStart`` the previous page
    returned.

    Args:
        url: Endpoint URL without query string.
        params: Extra query parameters sent with every page.
        limit: Page size.
        **request_kwargs: Passed to ``get_json`` (headers, auth, client, ...).

    Yields:
        One Page per request.

    Raises:
        FetchError: If any page request fails.
        PaginationError: If a page breaks the offset contract.
    """
    start = 0
    while True:
        query = {**(params or {}), "limit": limit, "start": start}
        body, _ = get_json(url, params=query, **request_kwargs)
        page = _offset_page(url, body, start)
        yield page
        if page.is_last:
            return
        start = page.next_cursor


def iter_numbered_pages(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    per_page: int = PER_PAGE,
    **request_kwargs: Any,
) -> Iterator[Page]:
    """
    Walk a page-number-paginated endpoint.

    An empty array ends the walk before anything is yielded for it. A page
    shorter than ``per_page`` is yielded and then ends the walk, so no
    request is made for the page after it.

    Args:
        url: Endpoint URL without query string.
        params: Extra query parameters sent with every page.
        per_page: Page size.
        **request_kwargs: Passed to ``get_json`` (headers, auth, client, ...).

    Yields:
        One Page per non-empty response.

    Raises:
        FetchError: If any page request fails.
        PaginationError: If a response body is not a JSON array.
    """
    page_number = 1
    while True:
        query = {**(params or {}), "per_page": per_page, "page": page_number}
        body, _ = get_json(url, params=query, **request_kwargs)
        if not isinstance(body, list):
            raise PaginationError(url, 200, "expected a JSON array")
        if not body:
            return
        is_last = len(body) < per_page
        yield Page(body, is_last, None if is_last else page_number + 1)
        if is_last:
            return
        page_number += 1


def fetch_items(
    url: str, style: PaginationStyle, **kwargs: Any
) -> Iterator[Any]:
    """Yield every raw item of a paginated collection, in API order."""
    if style is PaginationStyle.OFFSET:
        pages = iter_offset_pages(url, **kwargs)
    else:
        pages = iter_numbered_pages(url, **kwargs)
    for page in pages:
        yield from page.items
