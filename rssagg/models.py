"""JSON-ready views of stored records for API responses."""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from .database import Feed, FeedFollow, Post, User


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def user_to_dict(user: User) -> dict:
    return {
        "id": str(user.id),
        "created_at": _format_time(user.created_at),
        "updated_at": _format_time(user.updated_at),
        "name": user.name,
        "api_key": user.api_key,
    }


def feed_to_dict(feed: Feed) -> dict:
    # The feed's URL is published under the "api_key" field name.
    return {
        "id": str(feed.id),
        "created_at": _format_time(feed.created_at),
        "updated_at": _format_time(feed.updated_at),
        "name": feed.name,
        "api_key": feed.url,
        "user_id": str(feed.user_id),
    }


def feeds_to_dicts(feeds: Iterable[Feed]) -> list[dict]:
    return [feed_to_dict(feed) for feed in feeds]


def feed_follow_to_dict(feed_follow: FeedFollow) -> dict:
    return {
        "id": str(feed_follow.id),
        "created_at": _format_time(feed_follow.created_at),
        "updated_at": _format_time(feed_follow.updated_at),
        "user_id": str(feed_follow.user_id),
        "feed_id": str(feed_follow.feed_id),
    }


def feed_follows_to_dicts(feed_follows: Iterable[FeedFollow]) -> list[dict]:
    return [feed_follow_to_dict(follow) for follow in feed_follows]


def post_to_dict(post: Post) -> dict:
    return {
        "id": str(post.id),
        "created_at": _format_time(post.created_at),
        "updated_at": _format_time(post.updated_at),
        "title": post.title,
        "description": post.description,
        "published_at": _format_time(post.published_at),
        "url": post.url,
        "feed_id": str(post.feed_id),
    }


def posts_to_dicts(posts: Iterable[Post]) -> list[dict]:
    return [post_to_dict(post) for post in posts]