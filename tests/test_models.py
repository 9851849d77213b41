import uuid
from datetime import datetime, timedelta, timezone

from rssagg.database import Feed, FeedFollow, Post, User
from rssagg.models import (
    feed_follow_to_dict,
    feed_follows_to_dicts,
    feed_to_dict,
    feeds_to_dicts,
    post_to_dict,
    posts_to_dicts,
    user_to_dict,
)

WHEN = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _feed():
    return Feed(uuid.uuid4(), WHEN, WHEN, "blog", "https://feeds.example.com/a.xml", uuid.uuid4())


def _post(description):
    return Post(
        uuid.uuid4(), WHEN, WHEN, "title", description, WHEN,
        "https://feeds.example.com/p", uuid.uuid4(),
    )


def test_user_to_dict():
    user = User(uuid.uuid4(), WHEN, WHEN, "alice", "placeholder")
    data = user_to_dict(user)
    assert data["id"] == str(user.id)
    assert data["name"] == "alice"
    assert data["api_key"] == "placeholder"
    assert data["created_at"] == "2024-01-02T03:04:05Z"
    assert set(data) == {"id", "created_at", "updated_at", "name", "api_key"}


def test_fractional_seconds_are_trimmed():
    user = User(uuid.uuid4(), WHEN.replace(microsecond=500000), WHEN, "a", "token")
    assert user_to_dict(user)["created_at"] == "2024-01-02T03:04:05.5Z"


def test_non_utc_offset_is_kept():
    zone = timezone(timedelta(hours=5, minutes=30))
    user = User(uuid.uuid4(), WHEN.astimezone(zone), WHEN, "a", "token")
    assert user_to_dict(user)["created_at"].endswith("+05:30")


def test_feed_url_is_under_api_key():
    feed = _feed()
    data = feed_to_dict(feed)
    assert data["api_key"] == feed.url
    assert data["user_id"] == str(feed.user_id)
    assert "url" not in data


def test_feeds_to_dicts_keeps_order_and_empty():
    feeds = [_feed(), _feed()]
    assert [d["id"] for d in feeds_to_dicts(feeds)] == [str(f.id) for f in feeds]
    assert feeds_to_dicts([]) == []


def test_feed_follow_to_dict():
    follow = FeedFollow(uuid.uuid4(), WHEN, WHEN, uuid.uuid4(), uuid.uuid4())
    data = feed_follow_to_dict(follow)
    assert data["user_id"] == str(follow.user_id)
    assert data["feed_id"] == str(follow.feed_id)
    assert feed_follows_to_dicts([follow]) == [data]
    assert feed_follows_to_dicts([]) == []


def test_post_description_null_and_present():
    assert post_to_dict(_post(None))["description"] is None
    assert post_to_dict(_post("text"))["description"] == "text"


def test_posts_to_dicts():
    post = _post("text")
    data = posts_to_dicts([post])
    assert data == [post_to_dict(post)]
    assert data[0]["published_at"] == data[0]["created_at"]
    assert posts_to_dicts([]) == []