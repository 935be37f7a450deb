"""Tabular summaries over bitstream listings and decoded article rows."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from dsreader.models import ArticleRecord, Bitstream


def total_size_bytes(bitstreams: Iterable[Bitstream]) -> int:
    return sum(bitstream.size_bytes for bitstream in bitstreams)


def count_by_format(bitstreams: Iterable[Bitstream]) -> Counter[str]:
    return Counter(bitstream.format for bitstream in bitstreams)


def count_articles_by_year(records: Iterable[ArticleRecord]) -> dict[int, int]:
    """Article counts keyed by ``sort_year_asc``, oldest year first."""
    counts = Counter(record.sort_year_asc for record in records if record.sort_year_asc is not None)
    return dict(sorted(counts.items()))


def count_articles_by_edition(records: Iterable[ArticleRecord]) -> Counter[str]:
    return Counter(record.edition_id for record in records if record.edition_id)


def filter_articles_by_year(
    records: Iterable[ArticleRecord],
    start: int | None = None,
    end: int | None = None,
) -> list[ArticleRecord]:
    """Keep records whose year falls within ``start``..``end`` (inclusive)."""
    selected: list[ArticleRecord] = []
    for record in records:
        year = record.sort_year_asc
        if year is None:
            continue
        if start is not None and year < start:
            continue
        if end is not None and year > end:
            continue
        selected.append(record)
    return selected
