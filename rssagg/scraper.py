"""Background collection of posts from stored feeds."""

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from .database import DatabaseError, DuplicateKeyError, Feed, Queries
from .rss import FeedError, url_to_feed

logger = logging.getLogger(__name__)

_RFC1123Z = "%a, %d %b %Y %H:%M:%S %z"


def scrape_feed(queries: Queries, feed: Feed, fetch=url_to_feed) -> int:
    """Fetch one feed and store its posts; return how many were stored."""
    try:
        queries.mark_feed_as_fetched(feed.id)
    except DatabaseError as exc:
        logger.error("Error marking feed as fetched: %s", exc)
        return 0
    try:
        rss_feed = fetch(feed.url)
    except FeedError as exc:
        logger.error("Error fetching RSS feed for %s: %s", feed.url, exc)
        return 0

    stored = 0
    for item in rss_feed.channel.items:
        try:
            published_at = datetime.strptime(item.pub_date, _RFC1123Z)
        except ValueError as exc:
            logger.error("Error parsing publication date for item %s: %s", item.title, exc)
            continue
        now = datetime.now(timezone.utc)
        try:
            queries.create_post(
                uuid.uuid4(),
                now,
                now,
                item.title,
                item.description or None,
                published_at,
                item.link,
                feed.id,
            )
        except DuplicateKeyError:
            continue
        except DatabaseError as exc:
            logger.error("Error creating post for feed %s: %s", feed.name, exc)
            continue
        stored += 1
    logger.info("feed %s collected, %d posts found", feed.name, len(rss_feed.channel.items))
    return stored


def start_scraping(queries, concurrency, interval, stop_event=None, fetch=url_to_feed) -> None:
    """Scrape up to ``concurrency`` feeds at a time, every ``interval``, until stopped."""
    if isinstance(interval, timedelta):
        interval = interval.total_seconds()
    if stop_event is None:
        stop_event = threading.Event()
    logger.info(
        "Starting scraper with concurrency: %d and time between requests: %ss",
        concurrency,
        interval,
    )
    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as pool:
        while True:
            try:
                feeds = queries.get_next_feeds_to_fetch(concurrency)
            except DatabaseError as exc:
                logger.error("Error fetching feeds: %s", exc)
            else:
                futures = [pool.submit(scrape_feed, queries, feed, fetch) for feed in feeds]
                for future in futures:
                    future.result()
            if stop_event.wait(interval):
                return