"""A minimal heart-rate blockchain served over HTTP."""

import argparse
import hashlib
import json
import logging
import os
import pprint
import threading
from dataclasses import dataclass
from datetime import datetime

from dotenv import load_dotenv
from flask import Flask, Response, request

logger = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass(frozen=True)
class Block:
    """One block: its position, write time, heart rate and hash links."""

    index: int
    timestamp: str
    bpm: int
    hash: str = ""
    prev_hash: str = ""

    def to_dict(self) -> dict:
        return {
            "Index": self.index,
            "Timestamp": self.timestamp,
            "BPM": self.bpm,
            "Hash": self.hash,
            "PrevHash": self.prev_hash,
        }


def _rune(value: int) -> str:
    """The character with code point ``value``, or U+FFFD when there is none."""
    if 0 <= value <= 0x10FFFF and not 0xD800 <= value <= 0xDFFF:
        return chr(value)
    return "\ufffd"


def calculate_hash(block: Block) -> str:
    """Hex SHA-256 of the block's index, timestamp, BPM and previous hash."""
    record = _rune(block.index) + block.timestamp + _rune(block.bpm) + block.prev_hash
    return hashlib.sha256(record.encode("utf-8")).hexdigest()


def _time_string(moment: datetime) -> str:
    text = moment.strftime("%Y-%m-%d %H:%M:%S")
    fraction = f"{moment.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    return f"{text} {moment.strftime('%z')} {moment.tzname()}"


def _now_string() -> str:
    return _time_string(datetime.now().astimezone())


def generate_block(old_block: Block, bpm: int) -> Block:
    """Build the block that follows ``old_block`` and records ``bpm``."""
    draft = Block(
        index=old_block.index + 1,
        timestamp=_now_string(),
        bpm=bpm,
        prev_hash=old_block.hash,
    )
    return Block(draft.index, draft.timestamp, draft.bpm, calculate_hash(draft), draft.prev_hash)


def is_block_valid(new_block: Block, old_block: Block) -> bool:
    """Whether ``new_block`` correctly follows ``old_block``."""
    return (
        old_block.index + 1 == new_block.index
        and old_block.hash == new_block.prev_hash
        and calculate_hash(new_block) == new_block.hash
    )


class Chain:
    """A thread-safe, replaceable sequence of blocks."""

    def __init__(self, blocks=None):
        self._blocks = list(blocks or [])
        self._lock = threading.Lock()

    @property
    def blocks(self) -> list[Block]:
        with self._lock:
            return list(self._blocks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocks)

    def replace(self, new_blocks) -> bool:
        """Adopt ``new_blocks`` if it is longer than the current chain."""
        new_blocks = list(new_blocks)
        with self._lock:
            if len(new_blocks) > len(self._blocks):
                self._blocks = new_blocks
                return True
            return False

    def last(self) -> Block:
        with self._lock:
            if not self._blocks:
                raise LookupError("the chain is empty")
            return self._blocks[-1]


def _dump(payload) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _reject_constant(name):
    raise ValueError(f"invalid character in literal {name}")


def _decode_bpm(text: str) -> int:
    """Read the BPM field from the first JSON value in ``text``."""
    text = text.lstrip(" \t\r\n")
    if not text:
        raise ValueError("EOF")
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    data, _ = decoder.raw_decode(text)
    if data is None:
        return 0
    if not isinstance(data, dict):
        raise ValueError("cannot unmarshal non-object into Message")
    bpm = 0
    for key, value in data.items():
        if key.lower() != "bpm" or value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"cannot unmarshal {value!r} into field BPM of type int")
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise ValueError(f"number {value} overflows int")
        bpm = value
    return bpm


def _respond(status: int, payload) -> Response:
    return Response(_dump(payload), status=status, content_type=_TEXT_PLAIN)


def create_app(chain: Chain) -> Flask:
    """Serve the chain on ``GET /`` and append blocks on ``POST /``."""
    app = Flask(__name__)

    @app.get("/")
    def get_blockchain():
        blocks = chain.blocks
        payload = [block.to_dict() for block in blocks] if blocks else None
        return Response(_dump(payload), status=200, content_type=_TEXT_PLAIN)

    @app.post("/")
    def write_block():
        try:
            bpm = _decode_bpm(request.get_data(as_text=True))
        except ValueError as exc:
            logger.info("Rejected block request: %s", exc)
            return _respond(400, {})
        try:
            last = chain.last()
        except LookupError:
            return Response(
                "HTTP 500: the chain has no blocks", status=500, content_type=_TEXT_PLAIN
            )
        new_block = generate_block(last, bpm)
        if is_block_valid(new_block, last):
            chain.replace([*chain.blocks, new_block])
            pprint.pprint(chain.blocks)
        return _respond(201, new_block.to_dict())

    return app


def main(argv=None) -> None:
    """Start the blockchain server on $PORT after creating the genesis block."""
    parser = argparse.ArgumentParser(description="Heart-rate blockchain server.")
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    if not os.path.isfile(".env"):
        raise SystemExit("Error loading .env file")
    load_dotenv(".env")

    genesis = Block(index=0, timestamp=_now_string(), bpm=0)
    pprint.pprint(genesis)
    chain = Chain([genesis])

    port = os.environ.get("PORT", "")
    logger.info("Starting the server on port %s", port)
    try:
        create_app(chain).run(host="0.0.0.0", port=int(port) if port else 0)
    except (OSError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc