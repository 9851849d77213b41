# rssagg

An RSS feed aggregator served as a JSON HTTP API, built on Flask and SQLite.
Users register, add feeds, follow them and read the latest posts. A background
scraper fetches the feeds that were fetched least recently and stores their
items as posts.

The package also ships a small, separate service that records heart-rate
(BPM) readings as hash-linked blocks.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Running the aggregator

Settings come from the environment, and from a `.env` file in the working
directory if there is one:

- `PORT`: the port to listen on (required)
- `DB_URL`: the path of the SQLite database file (required); the tables are
  created if they do not exist

```
PORT=8080 DB_URL=rssagg.db rssagg
```

The command stops with a message if either setting is missing. While the
server runs, a background thread scrapes up to 10 feeds at a time, once a
minute. Items whose `pubDate` is not in the RFC 1123 form with a numeric zone
(`Mon, 02 Jan 2006 15:04:05 -0700`) are skipped, and an item whose URL is
already stored is not stored again.

### Endpoints

All routes live under `/v1`. Routes marked *auth* need the header

```
Authorization: ApiKey token
```

where the value after `ApiKey` is the `api_key` returned when the user was
created. A missing or malformed header gives 403; an unknown key gives 400.

| Method | Path                              | Auth | Status | Description                                 |
|--------|-----------------------------------|------|--------|---------------------------------------------|
| GET    | `/v1/healthz`                     |      | 200    | Readiness check, returns `{}`               |
| GET    | `/v1/err`                         |      | 400    | Always answers with an error body           |
| POST   | `/v1/users`                       |      | 201    | Create a user: `{"name": "..."}`            |
| GET    | `/v1/users`                       | yes  | 200    | The authenticated user                      |
| POST   | `/v1/feeds`                       | yes  | 201    | Add a feed: `{"name": "...", "url": "..."}` |
| GET    | `/v1/feeds`                       |      | 201    | All feeds                                   |
| GET    | `/v1/posts`                       | yes  | 200    | Newest 10 posts from followed feeds         |
| POST   | `/v1/feed_follows`                | yes  | 201    | Follow a feed: `{"feed_id": "..."}`         |
| GET    | `/v1/feed_follows`                | yes  | 201    | The user's feed follows                     |
| DELETE | `/v1/feed_follows/{feedFollowID}` | yes  | 200    | Unfollow, returns `{}`                      |

Errors come back as `{"error": "message"}`. In feed objects the feed's URL is
given under the field name `api_key`. Timestamps are RFC 3339 strings in UTC.
Requests with an `Origin` of `http://...` or `https://...` get CORS headers,
and preflight `OPTIONS` requests are answered with a max age of 300 seconds.

Example session:

```
curl -X POST localhost:8080/v1/users -d '{"name": "alice"}'
curl -X POST localhost:8080/v1/feeds \
     -H 'Authorization: ApiKey token' \
     -d '{"name": "Example", "url": "https://example.com/index.xml"}'
curl localhost:8080/v1/posts -H 'Authorization: ApiKey token'
```

### Using it as a library

```python
from rssagg.database import connect, Queries
from rssagg.app import create_app
from rssagg.rss import parse_feed
from rssagg.scraper import scrape_feed

conn = connect("rssagg.db")        # opens the file and creates the tables
queries = Queries(conn)
app = create_app(queries)          # a Flask application

with open("index.xml", "rb") as fh:
    feed = parse_feed(fh.read())
for item in feed.channel.items:
    print(item.title, item.link, item.pub_date)
```

- `rssagg.database`: `connect`, `create_schema`, the `Queries` class, the
  record dataclasses `User`, `Feed`, `FeedFollow`, `Post`, and the errors
  `DatabaseError`, `NotFoundError`, `DuplicateKeyError`.
- `rssagg.rss`: `parse_feed(data)` and `url_to_feed(url, timeout=10.0)`, which
  raise `FeedError` on failure.
- `rssagg.scraper`: `scrape_feed(queries, feed, fetch=url_to_feed)` returns the
  number of posts stored; `start_scraping(queries, concurrency, interval,
  stop_event=None, fetch=url_to_feed)` loops until `stop_event` is set.
- `rssagg.auth`: `get_api_key(headers)`, raising `AuthError`.
- `rssagg.models` and `rssagg.responses`: the JSON shapes and responses the
  API uses.

### What it does not do

There are no endpoints for deleting users or feeds, and no schema migrations:
the tables are created once and left as they are. Only SQLite is supported as
storage.

## Running the blockchain service

The command needs a `.env` file in the working directory (it may be empty) and
stops with "Error loading .env file" otherwise. `PORT` is read from the
environment or that file.

```
PORT=8081 rssagg-blockchain
```

- `GET /` returns the whole chain as indented JSON.
- `POST /` with `{"BPM": 72}` appends a new block and returns it, indented,
  with status 201. A body that is not valid JSON, or a non-integer `BPM`,
  gives status 400 with `{}`.

Each block holds `Index`, `Timestamp`, `BPM`, `Hash` (SHA-256, hex) and
`PrevHash`. The chain starts with a genesis block. The chain is kept in
memory only. From Python, `rssagg.blockchain` offers `Block`, `Chain`,
`calculate_hash`, `generate_block`, `is_block_valid` and `create_app(chain)`.