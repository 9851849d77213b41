"""Fetching and parsing of RSS feeds."""

import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field


class FeedError(Exception):
    """Raised when a feed cannot be fetched or parsed."""


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSChannel:
    title: str = ""
    link: str = ""
    description: str = ""
    language: str = ""
    items: list[RSSItem] = field(default_factory=list)


@dataclass
class RSSFeed:
    channel: RSSChannel = field(default_factory=RSSChannel)


def _local(tag) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _children(element, name):
    return (child for child in element if _local(child.tag) == name)


def _text(element, name) -> str:
    child = next(_children(element, name), None)
    if child is None:
        return ""
    return "".join(child.itertext())


def parse_feed(data) -> RSSFeed:
    """Parse RSS XML given as bytes or text."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise FeedError(f"failed to unmarshal XML: {exc}") from exc
    channel_el = next(_children(root, "channel"), None)
    if channel_el is None:
        return RSSFeed()
    items = [
        RSSItem(
            title=_text(item, "title"),
            link=_text(item, "link"),
            description=_text(item, "description"),
            pub_date=_text(item, "pubDate"),
        )
        for item in _children(channel_el, "item")
    ]
    return RSSFeed(
        RSSChannel(
            title=_text(channel_el, "title"),
            link=_text(channel_el, "link"),
            description=_text(channel_el, "description"),
            language=_text(channel_el, "language"),
            items=items,
        )
    )


def url_to_feed(url: str, timeout: float = 10.0) -> RSSFeed:
    """Download the feed at ``url`` and parse it."""
    try:
        try:
            response = urllib.request.urlopen(url, timeout=timeout)
        except urllib.error.HTTPError as exc:
            response = exc
        with response:
            try:
                data = response.read()
            except OSError as exc:
                raise FeedError(f"failed to read response body: {exc}") from exc
    except FeedError:
        raise
    except (OSError, ValueError) as exc:
        raise FeedError(f"failed to fetch RSS feed: {exc}") from exc
    return parse_feed(data)