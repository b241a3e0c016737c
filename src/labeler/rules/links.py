"""Link extraction for URL-mode comment rules.

Markdown is rendered to HTML by GitHub (so autolinks, references and the
like resolve exactly as they display) and the anchors are read back with
BeautifulSoup. Rendering is the only I/O the comment pass performs, so each
distinct text is rendered at most once per run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from labeler.rules.matchers import match_pattern

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)

UrlMode = Literal["allow_only", "deny"]

# Component names follow the WHATWG URL interface used in rule configs
URL_FIELDS: frozenset[str] = frozenset({
    "href",
    "origin",
    "protocol",
    "username",
    "password",
    "host",
    "hostname",
    "port",
    "pathname",
    "search",
    "hash",
})

# Only anchors that point somewhere, not bare fragments or mailto-ish text
LINK_SELECTOR = 'a[href*="/"]'


class LinkExtractor:
    """Renders text and extracts its hyperlink targets, memoized per text.

    Create one extractor per run so the cache never outlives the event it
    was built for.
    """

    def __init__(self, render: Callable[[str], Awaitable[str]]) -> None:
        """Initialize link extractor.

        Args:
            render: Coroutine function turning markdown into HTML.
        """
        self._render = render
        self._rendered: dict[str, str] = {}
        self.renders = 0

    async def html(self, text: str) -> str:
        """Get the rendered HTML for a text, rendering on first use."""
        if text not in self._rendered:
            self._rendered[text] = await self._render(text)
            self.renders += 1
        else:
            logger.debug("Rendered markdown cache hit (%d chars)", len(text))
        return self._rendered[text]

    async def links(self, text: str) -> list[str]:
        """Extract unique link targets from a text, in document order.

        Args:
            text: Markdown text.

        Returns:
            Distinct ``href`` values of anchors containing a slash.
        """
        soup = BeautifulSoup(await self.html(text), "html.parser")
        seen: dict[str, None] = {}
        for anchor in soup.select(LINK_SELECTOR):
            href = anchor.get("href")
            if isinstance(href, str):
                seen.setdefault(href, None)
        return list(seen)


def url_component(link: str, field: str) -> str:
    """Get a URL component by its WHATWG name.

    Args:
        link: Absolute or relative URL.
        field: One of ``URL_FIELDS``.

    Returns:
        The component text ("" when absent).

    Raises:
        ValueError: If the field name is unknown.
    """
    parts = urlsplit(link)
    scheme = f"{parts.scheme}:" if parts.scheme else ""
    hostname = parts.hostname or ""
    port = str(parts.port) if parts.port is not None else ""
    host = f"{hostname}:{port}" if port else hostname

    components = {
        "href": link,
        "origin": f"{scheme}//{host}" if scheme and host else "null",
        "protocol": scheme,
        "username": parts.username or "",
        "password": parts.password or "",
        "host": host,
        "hostname": hostname,
        "port": port,
        "pathname": parts.path,
        "search": f"?{parts.query}" if parts.query else "",
        "hash": f"#{parts.fragment}" if parts.fragment else "",
    }
    if field not in components:
        raise ValueError(f"unknown URL field `{field}`")
    return components[field]


def link_matches(link: str, pattern: str | dict[str, str]) -> bool:
    """Check one URL list entry against a link.

    String patterns are searched in the whole link. Mapping patterns match
    when every named URL component matches its pattern.
    """
    if isinstance(pattern, str):
        return match_pattern(link, pattern)
    return all(
        match_pattern(url_component(link, field), field_pattern)
        for field, field_pattern in pattern.items()
    )


def link_hits(link: str, mode: UrlMode, url_list: Iterable[str | dict[str, str]]) -> bool:
    """Check whether one link violates the rule's URL list.

    Under ``allow_only`` a link hits when no entry matches it; under
    ``deny`` it hits when any entry matches it.

    Args:
        link: Link target.
        mode: "allow_only" or "deny".
        url_list: Patterns from the rule.

    Returns:
        True if the link hits under the mode.
    """
    matched = next((p for p in url_list if link_matches(link, p)), None)
    hit = matched is None if mode == "allow_only" else matched is not None
    if hit:
        logger.debug("Link %r hits mode %s (pattern %r)", link, mode, matched)
    return hit


def any_link_hits(
    links: Iterable[str],
    mode: UrlMode,
    url_list: list[str | dict[str, str]],
) -> bool:
    """Check whether at least one link hits (a semantic OR over links)."""
    return any(link_hits(link, mode, url_list) for link in links)
