"""Issue body parsing: data markers, the fenced JSON block, and the link record inside it.

A valid body looks like::

    Anything, any Markdown.

    <!-- DATA_START -->
    ```json
    {"name": "My Blog", "url": "https://myblog.com"}
    ```
    <!-- DATA_END -->

Each stage raises an IssueBodyError subclass on the first problem found.
"""

import json
import re
from typing import Any

import structlog

from flg.errors import (
    DuplicateMarker,
    InvalidFieldType,
    InvalidJson,
    InvalidLanguageTag,
    MarkerOrderError,
    MissingMarker,
    MissingRequiredField,
    MultipleCodeBlocks,
    NoCodeBlock,
    NonEmptyExtraContent,
    NotAnObject,
)
from flg.models import CodeBlock, DelimitedRegion, LinkRecord

logger = structlog.get_logger(__name__)

DATA_START = "<!-- DATA_START -->"
DATA_END = "<!-- DATA_END -->"
JSON_TAG = "json"

REQUIRED_FIELDS = ("name", "url")
OPTIONAL_FIELDS = ("description", "avatar")

# Backtick fences only, indented at most three spaces (CommonMark).
_OPENING_FENCE = re.compile(r"^ {0,3}(?P<fence>`{3,})(?P<info>[^`]*)$")
_CLOSING_FENCE = re.compile(r"^ {0,3}(?P<fence>`{3,})[ \t]*$")

_JSON_TYPE_NAMES = {
    bool: "boolean",
    int: "number",
    float: "number",
    str: "string",
    list: "array",
    type(None): "null",
}


# ---------------------------------------------------------------------------
# Marker scanner
# ---------------------------------------------------------------------------


def scan_markers(body: str) -> DelimitedRegion:
    """Return the text strictly between DATA_START and DATA_END."""
    start = body.find(DATA_START)
    end = body.find(DATA_END)
    if start == -1 or end == -1:
        missing = [marker for marker, index in ((DATA_START, start), (DATA_END, end)) if index == -1]
        raise MissingMarker(f"missing {' and '.join(missing)}")

    for marker in (DATA_START, DATA_END):
        count = body.count(marker)
        if count > 1:
            raise DuplicateMarker(f"{marker} appears {count} times")

    if end <= start:
        raise MarkerOrderError(f"{DATA_END} appears before {DATA_START}")

    region_start = start + len(DATA_START)
    return DelimitedRegion(start_offset=region_start, end_offset=end, content=body[region_start:end])


# ---------------------------------------------------------------------------
# Code block extractor
# ---------------------------------------------------------------------------


def find_code_blocks(text: str) -> list[CodeBlock]:
    """Find every backtick-fenced code block in text.

    A fence left open runs to the end of the text and is reported with
    ``terminated=False``.
    """
    blocks: list[CodeBlock] = []
    opened: tuple[int, str, int, int] | None = None  # fence length, tag, block start, content start
    offset = 0

    for line in text.splitlines(keepends=True):
        bare = line.rstrip("\r\n")
        line_end = offset + len(line)
        if opened is None:
            match = _OPENING_FENCE.match(bare)
            if match:
                opened = (len(match["fence"]), match["info"].strip(), offset, line_end)
        else:
            fence_len, tag, block_start, content_start = opened
            match = _CLOSING_FENCE.match(bare)
            if match and len(match["fence"]) >= fence_len:
                blocks.append(
                    CodeBlock(
                        language_tag=tag,
                        content=text[content_start:offset],
                        span=(block_start, line_end),
                    )
                )
                opened = None
        offset = line_end

    if opened is not None:
        _, tag, block_start, content_start = opened
        blocks.append(
            CodeBlock(
                language_tag=tag,
                content=text[content_start:],
                span=(block_start, len(text)),
                terminated=False,
            )
        )
    return blocks


def extract_code_block(region: str) -> str:
    """Return the inner text of the single ```json block that makes up the region."""
    blocks = find_code_blocks(region)
    if not blocks:
        raise NoCodeBlock("no fenced code block between the data markers")
    if len(blocks) > 1:
        raise MultipleCodeBlocks(f"found {len(blocks)} fenced code blocks between the data markers")

    block = blocks[0]
    if not block.terminated:
        raise NoCodeBlock("the code block between the data markers is never closed")
    if block.language_tag != JSON_TAG:
        raise InvalidLanguageTag(f"code block language is {block.language_tag!r}, expected {JSON_TAG!r}")

    block_start, block_end = block.span
    if region[:block_start].strip() or region[block_end:].strip():
        raise NonEmptyExtraContent("content other than the code block found between the data markers")
    return block.content


# ---------------------------------------------------------------------------
# Record decoder
# ---------------------------------------------------------------------------


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not allowed in JSON")


def _json_type(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    return _JSON_TYPE_NAMES.get(type(value), type(value).__name__)


def decode_record(text: str) -> LinkRecord:
    """Decode the code block text as a strict JSON object."""
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:  # json.JSONDecodeError included
        raise InvalidJson(f"invalid JSON: {exc}") from exc

    if not isinstance(value, dict):
        raise NotAnObject(f"expected a JSON object, got {_json_type(value)}")

    for field in REQUIRED_FIELDS:
        if field not in value:
            raise MissingRequiredField(f"required field {field!r} is missing")
        if not isinstance(value[field], str):
            raise MissingRequiredField(f"required field {field!r} must be a string, got {_json_type(value[field])}")

    for field in OPTIONAL_FIELDS:
        present = value.get(field)
        if present is not None and not isinstance(present, str):
            raise InvalidFieldType(f"field {field!r} must be a string, got {_json_type(present)}")

    # null optional fields fall back to their defaults
    data = {key: item for key, item in value.items() if not (key in OPTIONAL_FIELDS and item is None)}
    return LinkRecord.model_validate(data)


def parse_issue_body(body: str) -> LinkRecord:
    """Run the marker scanner, code block extractor and record decoder over one body."""
    region = scan_markers(body)
    text = extract_code_block(region.content)
    record = decode_record(text)
    logger.debug("Decoded link record", name=record.name, url=record.url)
    return record
