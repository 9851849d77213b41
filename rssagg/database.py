"""SQLite storage for users, feeds, feed follows and posts."""

import hashlib
import secrets
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    api_key TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    published_at TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "id, created_at, updated_at, name, api_key"
_FEED_COLUMNS = "id, created_at, updated_at, name, url, user_id, last_fetched_at"
_FOLLOW_COLUMNS = "id, created_at, updated_at, user_id, feed_id"
_POST_COLUMNS = (
    "posts.id, posts.created_at, posts.updated_at, posts.title, "
    "posts.description, posts.published_at, posts.url, posts.feed_id"
)


class DatabaseError(Exception):
    """Raised when a query fails."""


class NotFoundError(DatabaseError):
    """Raised when a query that must return one row returns none."""


class DuplicateKeyError(DatabaseError):
    """Raised when an insert violates a unique constraint."""


@dataclass(frozen=True)
class User:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    api_key: str


@dataclass(frozen=True)
class Feed:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: uuid.UUID
    last_fetched_at: datetime | None = None


@dataclass(frozen=True)
class FeedFollow:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID
    feed_id: uuid.UUID


@dataclass(frozen=True)
class Post:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    title: str
    description: str | None
    published_at: datetime
    url: str
    feed_id: uuid.UUID


def _time_to_db(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _time_from_db(text: str | None) -> datetime | None:
    return None if text is None else datetime.fromisoformat(text)


def _user(row) -> User:
    id_, created, updated, name, api_key = row
    return User(uuid.UUID(id_), _time_from_db(created), _time_from_db(updated), name, api_key)


def _feed(row) -> Feed:
    id_, created, updated, name, url, user_id, fetched = row
    return Feed(
        uuid.UUID(id_),
        _time_from_db(created),
        _time_from_db(updated),
        name,
        url,
        uuid.UUID(user_id),
        _time_from_db(fetched),
    )


def _follow(row) -> FeedFollow:
    id_, created, updated, user_id, feed_id = row
    return FeedFollow(
        uuid.UUID(id_),
        _time_from_db(created),
        _time_from_db(updated),
        uuid.UUID(user_id),
        uuid.UUID(feed_id),
    )


def _post(row) -> Post:
    id_, created, updated, title, description, published, url, feed_id = row
    return Post(
        uuid.UUID(id_),
        _time_from_db(created),
        _time_from_db(updated),
        title,
        description,
        _time_from_db(published),
        url,
        uuid.UUID(feed_id),
    )


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the tables if they do not exist yet."""
    conn.executescript(_SCHEMA)


def connect(path: str) -> sqlite3.Connection:
    """Open a database usable from several threads, with its schema in place."""
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    create_schema(conn)
    return conn


class Queries:
    """The queries the service runs against its database."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.IntegrityError as exc:
                if "UNIQUE" in str(exc):
                    raise DuplicateKeyError(
                        f"duplicate key value violates unique constraint: {exc}"
                    ) from exc
                raise DatabaseError(str(exc)) from exc
            except sqlite3.Error as exc:
                raise DatabaseError(str(exc)) from exc

    @staticmethod
    def _one(conn, sql, params):
        row = conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError("no rows in result set")
        return row

    def create_user(self, id, created_at, updated_at, name) -> User:
        api_key = hashlib.sha256(secrets.token_bytes(32)).hexdigest()
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO users (id, created_at, updated_at, name, api_key) "
                "VALUES (?, ?, ?, ?, ?)",
                (str(id), _time_to_db(created_at), _time_to_db(updated_at), name, api_key),
            )
            row = self._one(conn, f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(id),))
        return _user(row)

    def get_user_by_api_key(self, api_key) -> User:
        with self._transaction() as conn:
            row = self._one(
                conn, f"SELECT {_USER_COLUMNS} FROM users WHERE api_key = ?", (api_key,)
            )
        return _user(row)

    def create_feed(self, id, created_at, updated_at, name, url, user_id) -> Feed:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    str(id),
                    _time_to_db(created_at),
                    _time_to_db(updated_at),
                    name,
                    url,
                    str(user_id),
                ),
            )
            row = self._one(conn, f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(id),))
        return _feed(row)

    def get_feeds(self) -> list[Feed]:
        with self._transaction() as conn:
            rows = conn.execute(f"SELECT {_FEED_COLUMNS} FROM feeds").fetchall()
        return [_feed(row) for row in rows]

    def get_next_feeds_to_fetch(self, limit) -> list[Feed]:
        """Return up to ``limit`` feeds, never-fetched first, then oldest fetch first."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_FEED_COLUMNS} FROM feeds "
                "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC "
                "LIMIT ?",
                (int(limit),),
            ).fetchall()
        return [_feed(row) for row in rows]

    def mark_feed_as_fetched(self, id) -> Feed:
        now = _time_to_db(datetime.now(timezone.utc))
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
                (now, now, str(id)),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("no rows in result set")
            row = self._one(conn, f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(id),))
        return _feed(row)

    def create_feed_follow(self, id, created_at, updated_at, user_id, feed_id) -> FeedFollow:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    str(id),
                    _time_to_db(created_at),
                    _time_to_db(updated_at),
                    str(user_id),
                    str(feed_id),
                ),
            )
            row = self._one(
                conn, f"SELECT {_FOLLOW_COLUMNS} FROM feed_follows WHERE id = ?", (str(id),)
            )
        return _follow(row)

    def get_feed_follows(self, user_id) -> list[FeedFollow]:
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_FOLLOW_COLUMNS} FROM feed_follows WHERE user_id = ?",
                (str(user_id),),
            ).fetchall()
        return [_follow(row) for row in rows]

    def delete_feed_follow(self, id, user_id) -> None:
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM feed_follows WHERE id = ? AND user_id = ?",
                (str(id), str(user_id)),
            )

    def create_post(
        self, id, created_at, updated_at, title, description, published_at, url, feed_id
    ) -> Post:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO posts (id, created_at, updated_at, title, description, "
                "published_at, url, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(id),
                    _time_to_db(created_at),
                    _time_to_db(updated_at),
                    title,
                    description,
                    _time_to_db(published_at),
                    url,
                    str(feed_id),
                ),
            )
            row = self._one(conn, f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?", (str(id),))
        return _post(row)

    def get_posts_for_user(self, user_id, limit) -> list[Post]:
        """Return the newest posts of the feeds the user follows."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_POST_COLUMNS} FROM posts "
                "JOIN feed_follows ON feed_follows.feed_id = posts.feed_id "
                "WHERE feed_follows.user_id = ? "
                "ORDER BY posts.published_at DESC "
                "LIMIT ?",
                (str(user_id), int(limit)),
            ).fetchall()
        return [_post(row) for row in rows]