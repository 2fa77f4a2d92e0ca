from __future__ import annotations

from typing import Any, Callable, Generator, Mapping, Sequence, Tuple, TypeVar

T = TypeVar("T")


def paginate(
    fetch: Callable[[str | None], Tuple[Sequence[T], str | None]]
) -> Generator[T, None, None]:
    """
    Generic paginator yielding items from a fetch(page_token) function.
    The fetch function must return (items, next_page_token). If next_page_token
    is falsy, pagination stops.
    """
    page: str | None = None
    while True:
        items, next_page = fetch(page)
        for it in items:
            yield it
        if not next_page:
            break
        page = next_page


def next_link(body: Mapping[str, Any], collection: str, links_key: str | None = None) -> str | None:
    """
    Return the next-page cursor from a list response body, or None on the last page.
    links_key overrides the "<collection>_links" key for services that name it differently.

    Understands the three link styles used across the services:
      - compute/block-storage/network: "<collection>_links": [{"rel": "next", "href": ...}]
      - identity: "links": {"next": ...}
      - image: "next": "/v2/images?marker=..." (relative to the endpoint root)
    """
    links = body.get(links_key or f"{collection}_links")
    if isinstance(links, list):
        for link in links:
            if isinstance(link, Mapping) and link.get("rel") == "next" and link.get("href"):
                return str(link["href"])
        return None
    links = body.get("links")
    if isinstance(links, Mapping):
        nxt = links.get("next")
        return str(nxt) if nxt else None
    nxt = body.get("next")
    if isinstance(nxt, str) and nxt:
        return nxt
    return None
