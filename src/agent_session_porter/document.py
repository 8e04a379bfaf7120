"""Generic document model for host-owned session data.

Session records belong to the host application and their schema may change
without notice, so the engine never binds them to a fixed model.  A
document is a plain tree of ``dict`` (insertion ordered), ``list``,
``str``, ``int``, ``float``, ``bool`` and ``None`` values exactly as the
JSON decoder produces them.  Parsing and dumping are lossless: no key,
value or nesting level is dropped or coerced.  A number a ``float`` cannot
hold exactly (``1e400``, ``0.10000000000000000555``) is kept as a
:class:`~decimal.Decimal` and written back with its original digits.

Functions
---------
- parse_document  — JSON text to a document
- dump_document   — document to JSON text
- parse_jsonl     — JSON-lines text (host record files) to a list of documents
- dump_jsonl      — list of documents to JSON-lines text
- iter_strings    — yield every string scalar in a document
"""
from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterator
from decimal import Decimal
from typing import Any, Union
from uuid import uuid4

from agent_session_porter.errors import ParseError

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, Decimal, bool, None]
Document = Union[Scalar, dict[str, "Document"], list["Document"]]


def _reject_constant(name: str) -> float:
    # json accepts NaN / Infinity by default; they are not valid JSON.
    raise ValueError(f"non-standard JSON constant {name!r}")


def _parse_number(text: str) -> float | Decimal:
    value = float(text)
    if math.isfinite(value) and Decimal(repr(value)) == Decimal(text):
        return value
    return Decimal(text)


def _number_text(value: Decimal) -> str:
    if not value.is_finite():
        raise ValueError(f"Out of range number {value!r} is not JSON compliant")
    return str(value)


def parse_document(text: str | bytes) -> Document:
    """Parse JSON text into a document tree.

    Parameters
    ----------
    text:
        JSON text.  ``bytes`` are decoded as UTF-8.

    Returns
    -------
    Document
        The parsed tree.

    Raises
    ------
    ParseError
        If *text* is not valid UTF-8 or not well-formed JSON.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"Content is not valid UTF-8 text: {exc}") from exc
    try:
        return json.loads(text, parse_float=_parse_number, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ParseError(f"Malformed JSON: {exc}") from exc


def dump_document(document: Document, *, indent: int | None = None) -> str:
    """Serialise a document tree to JSON text.

    Key order is preserved as stored and non-ASCII characters are written
    as-is.

    Parameters
    ----------
    document:
        The tree to serialise.
    indent:
        Optional indentation level for pretty output.

    Returns
    -------
    str
        JSON text.

    Raises
    ------
    ValueError
        If the tree holds a non-finite number.
    """
    # Decimals go out as placeholder strings, then are swapped for their digits.
    marker = f"__number_{uuid4().hex}_"
    numbers: list[str] = []

    def _default(value: Any) -> str:
        if isinstance(value, Decimal):
            numbers.append(_number_text(value))
            return f"{marker}{len(numbers) - 1}"
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    separators = None if indent is not None else (",", ":")
    text = json.dumps(
        document,
        ensure_ascii=False,
        indent=indent,
        separators=separators,
        allow_nan=False,
        default=_default,
    )
    for position, number in enumerate(numbers):
        text = text.replace(f'"{marker}{position}"', number, 1)
    return text


def parse_jsonl(text: str, *, strict: bool = True) -> list[Document]:
    """Parse JSON-lines text into a list of documents.

    Blank lines are ignored.

    Parameters
    ----------
    text:
        One JSON document per line.
    strict:
        When True (default) a malformed line raises :class:`ParseError`.
        When False the line is skipped and a warning is logged; the host
        may be appending to the file while it is read.

    Returns
    -------
    list[Document]
        The parsed entries in file order.
    """
    entries: list[Document] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            entries.append(parse_document(line))
        except ParseError as exc:
            if strict:
                raise ParseError(f"Line {line_number}: {exc}") from exc
            logger.warning("Skipping malformed line %d: %s", line_number, exc)
    return entries


def dump_jsonl(entries: list[Document]) -> str:
    """Serialise *entries* as JSON-lines text with a trailing newline."""
    return "".join(dump_document(entry) + "\n" for entry in entries)


def iter_strings(document: Document) -> Iterator[str]:
    """Yield every string scalar in *document*, depth first.

    Map keys are not yielded.
    """
    if isinstance(document, str):
        yield document
    elif isinstance(document, dict):
        for value in document.values():
            yield from iter_strings(value)
    elif isinstance(document, list):
        for item in document:
            yield from iter_strings(item)
