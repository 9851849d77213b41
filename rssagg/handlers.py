"""HTTP handlers for users, feeds, follows and posts."""

import functools
import json
import uuid
from datetime import datetime, timezone

from flask import request

from .auth import AuthError, get_api_key
from .database import DatabaseError, Queries
from .models import feed_follow_to_dict, feed_follows_to_dicts, feed_to_dict, feeds_to_dicts
from .models import posts_to_dicts, user_to_dict
from .responses import respond_with_error, respond_with_json

_NIL_UUID = uuid.UUID(int=0)


def _decode_body(fields: dict) -> dict:
    """Decode the JSON request body into the named fields, with zero defaults."""
    try:
        data = json.loads(request.get_data(as_text=True))
    except ValueError as exc:
        raise ValueError(str(exc)) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("cannot unmarshal non-object into parameters")
    result = {}
    for key, kind in fields.items():
        value = data.get(key)
        if value is None:
            result[key] = "" if kind is str else _NIL_UUID
        elif not isinstance(value, str):
            raise ValueError(f"cannot unmarshal {type(value).__name__} into field {key}")
        elif kind is uuid.UUID:
            try:
                result[key] = uuid.UUID(value)
            except ValueError as exc:
                raise ValueError(f"invalid UUID for field {key}: {exc}") from exc
        else:
            result[key] = value
    return result


def _now() -> datetime:
    return datetime.now(timezone.utc)


def handler_readiness():
    return respond_with_json(200, {})


def handler_err():
    return respond_with_error(400, "Something went wrong")


class Api:
    """Handlers bound to a set of database queries."""

    def __init__(self, queries: Queries):
        self.queries = queries

    def middleware_auth(self, handler):
        """Wrap ``handler`` so it receives the user named by the request's API key."""

        @functools.wraps(handler)
        def wrapper(*args, **kwargs):
            try:
                api_key = get_api_key(request.headers)
            except AuthError as exc:
                return respond_with_error(403, f"Unauthorized error: {exc}")
            try:
                user = self.queries.get_user_by_api_key(api_key)
            except DatabaseError as exc:
                return respond_with_error(400, f"User not found: {exc}")
            return handler(user, *args, **kwargs)

        return wrapper

    def create_user(self):
        try:
            params = _decode_body({"name": str})
        except ValueError as exc:
            return respond_with_error(400, f"Invalid request body: {exc}")
        now = _now()
        try:
            user = self.queries.create_user(uuid.uuid4(), now, now, params["name"])
        except DatabaseError as exc:
            return respond_with_error(400, f"Failed to create user: {exc}")
        return respond_with_json(201, user_to_dict(user))

    def get_user(self, user):
        return respond_with_json(200, user_to_dict(user))

    def get_posts_for_user(self, user):
        try:
            posts = self.queries.get_posts_for_user(user.id, 10)
        except DatabaseError as exc:
            return respond_with_error(500, f"Failed to get posts for user: {exc}")
        return respond_with_json(200, posts_to_dicts(posts))

    def create_feed(self, user):
        try:
            params = _decode_body({"name": str, "url": str})
        except ValueError as exc:
            return respond_with_error(400, f"Invalid request body: {exc}")
        now = _now()
        try:
            feed = self.queries.create_feed(
                uuid.uuid4(), now, now, params["name"], params["url"], user.id
            )
        except DatabaseError as exc:
            return respond_with_error(400, f"Failed to create feed: {exc}")
        return respond_with_json(201, feed_to_dict(feed))

    def get_feeds(self):
        try:
            feeds = self.queries.get_feeds()
        except DatabaseError as exc:
            return respond_with_error(400, f"Couldn't get feeds: {exc}")
        return respond_with_json(201, feeds_to_dicts(feeds))

    def create_feed_follow(self, user):
        try:
            params = _decode_body({"feed_id": uuid.UUID})
        except ValueError as exc:
            return respond_with_error(400, f"Invalid request body: {exc}")
        now = _now()
        try:
            follow = self.queries.create_feed_follow(
                uuid.uuid4(), now, now, user.id, params["feed_id"]
            )
        except DatabaseError as exc:
            return respond_with_error(400, f"Failed to create feed follow: {exc}")
        return respond_with_json(201, feed_follow_to_dict(follow))

    def get_feed_follows(self, user):
        try:
            follows = self.queries.get_feed_follows(user.id)
        except DatabaseError as exc:
            return respond_with_error(400, f"Failed to get feed follow: {exc}")
        return respond_with_json(201, feed_follows_to_dicts(follows))

    def delete_feed_follow(self, user, feed_follow_id):
        try:
            follow_id = uuid.UUID(feed_follow_id)
        except ValueError as exc:
            return respond_with_error(400, f"Invalid feed follow ID: {exc}")
        try:
            self.queries.delete_feed_follow(follow_id, user.id)
        except DatabaseError as exc:
            return respond_with_error(400, f"Failed to delete feed follow: {exc}")
        return respond_with_json(200, {})