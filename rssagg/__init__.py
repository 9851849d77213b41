"""RSS feed aggregator with a JSON API, SQLite storage, a feed scraper and a small blockchain service."""

__version__ = "0.1.0"