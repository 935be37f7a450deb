"""Decoder for the newspaper-article CSV exports stored as bitstreams.

The exports are comma separated with backslash escapes and *no* quoting: a
``"`` inside an article is plain text. A quote-aware reader would swallow
delimiters and newlines up to the next stray quote, so quoting is disabled.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable

import structlog
from pydantic import ValidationError

from dsreader.errors import DecodeError
from dsreader.models import ArticleRecord

logger = structlog.get_logger(__name__)

ON_ERROR_CHOICES = {"raise", "skip"}


def parse_article_csv(
    raw: str | bytes | Iterable[str],
    *,
    on_error: str = "raise",
    source: str | None = None,
) -> list[ArticleRecord]:
    """Parse an article CSV payload into records.

    ``on_error="raise"`` stops at the first malformed row; ``"skip"`` logs the
    row and moves on. ``source`` (usually the bitstream URL) is attached to any
    error raised.
    """
    if on_error not in ON_ERROR_CHOICES:
        raise ValueError(f"on_error must be one of {sorted(ON_ERROR_CHOICES)}, got {on_error!r}")

    reader = csv.reader(
        _as_lines(raw, source),
        delimiter=",",
        quoting=csv.QUOTE_NONE,
        escapechar="\\",
        strict=False,
    )
    try:
        header = next(reader)
    except StopIteration:
        return []
    except csv.Error as exc:
        raise DecodeError(f"Unreadable CSV header: {exc}", url=source) from exc
    header = [column.strip() for column in header]

    records: list[ArticleRecord] = []
    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            _malformed(on_error, f"Unreadable CSV row: {exc}", reader.line_num, source)
            continue
        if not row or row == [""]:
            continue
        if len(row) != len(header):
            _malformed(
                on_error,
                f"Expected {len(header)} columns, found {len(row)}",
                reader.line_num,
                source,
            )
            continue
        try:
            records.append(ArticleRecord.model_validate(dict(zip(header, row))))
        except ValidationError as exc:
            _malformed(on_error, f"Invalid column value: {exc.errors()[0]['msg']}", reader.line_num, source)
    logger.debug("articles.parsed", rows=len(records), source=source)
    return records


def _malformed(on_error: str, reason: str, line: int, source: str | None) -> None:
    if on_error == "raise":
        raise DecodeError(f"Malformed CSV row at line {line}: {reason}", url=source)
    logger.warning("articles.row_skipped", line=line, reason=reason, source=source)


def _as_lines(raw: str | bytes | Iterable[str], source: str | None) -> Iterable[str]:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"CSV payload is not valid UTF-8: {exc}", url=source) from exc
    if isinstance(raw, str):
        return io.StringIO(raw.lstrip("\ufeff"), newline="")
    return raw
