[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rssagg"
version = "0.1.0"
description = "RSS feed aggregator with a JSON HTTP API, SQLite storage, a background scraper and a small heart-rate blockchain service"
requires-python = ">=3.10"
keywords = ["rss", "feed", "aggregator", "scraper", "flask", "sqlite", "blockchain", "json-api"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content :: News/Diary",
]
dependencies = [
    "flask",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
rssagg = "rssagg.app:main"
rssagg-blockchain = "rssagg.blockchain:main"

[tool.hatch.build.targets.wheel]
packages = ["rssagg"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
