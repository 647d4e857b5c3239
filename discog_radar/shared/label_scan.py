"""Label discovery over a batch of Discogs releases.

A scan searches releases matching the caller's filters, groups them by label
name, optionally looks up each top label's catalog-wide release count, then
filters, ranks and paginates the resulting summaries. Nothing is kept between
scans.
"""

import datetime
import logging
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from . import config
from .common_proxy import fetch_discogs_json
from .errors import UpstreamError
from .models import LabelSummary, Pagination, Release, SearchResult
from .task_pool import WavePool

logger = logging.getLogger("label_scan")

NO_RELEASE_LIMIT = 0
DEFAULT_MAX_LABELS = 50
SCAN_BATCH_SIZE = 200
EARLIEST_YEAR = 1900

LabelCountLookup = Callable[[str], Awaitable[int]]


@dataclass
class LabelScanFilters:
    query: Optional[str] = None
    genre: Optional[str] = None
    country: Optional[str] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None

    def is_empty(self) -> bool:
        return not any((self.query, self.genre, self.country, self.year_from, self.year_to))

    def year_bounds(self) -> Optional[Tuple[int, int]]:
        if self.year_from is None and self.year_to is None:
            return None
        low = self.year_from if self.year_from is not None else EARLIEST_YEAR
        high = self.year_to if self.year_to is not None else datetime.date.today().year
        return low, high

    def search_params(self) -> List[Tuple[str, str]]:
        params = [("type", "release"), ("page", "1"), ("per_page", str(SCAN_BATCH_SIZE))]
        if self.query:
            params.append(("q", self.query))
        if self.genre:
            params.append(("genre", self.genre))
        bounds = self.year_bounds()
        if bounds:
            params.append(("year", f"{bounds[0]}-{bounds[1]}"))
        if self.country:
            params.append(("country", self.country))
        return params


def filter_releases(releases: Sequence[Release], filters: LabelScanFilters) -> List[Release]:
    bounds = filters.year_bounds()
    genre = filters.genre.lower() if filters.genre else None
    country = filters.country.lower() if filters.country else None

    kept = []
    for release in releases:
        if genre and genre not in {g.lower() for g in release.genre + release.style}:
            continue
        if bounds:
            year = release.year_as_int()
            if year is None or not bounds[0] <= year <= bounds[1]:
                continue
        if country and (release.country or "").lower() != country:
            continue
        kept.append(release)
    return kept


def aggregate_labels(releases: Sequence[Release]) -> List[LabelSummary]:
    """Group releases by exact label name; every listed label gets +1 per release."""
    by_name: Dict[str, LabelSummary] = {}
    for release in releases:
        for name in release.label:
            summary = by_name.get(name)
            if summary is None:
                summary = LabelSummary(id=f"label-{len(by_name) + 1}", title=name)
                by_name[name] = summary
            summary.matched_count += 1
            if summary.thumb is None:
                summary.thumb = release.thumb or release.cover_image
            if summary.country is None:
                summary.country = release.country
    return list(by_name.values())


def discover_labels(releases: Sequence[Release], filters: LabelScanFilters) -> List[LabelSummary]:
    labels = aggregate_labels(filter_releases(releases, filters))
    if not labels and releases:
        logger.info("filters_removed_all_labels", extra={"releases": len(releases)})
        labels = aggregate_labels(releases)
    return labels


def top_by_matches(labels: Sequence[LabelSummary], limit: int) -> List[LabelSummary]:
    return sorted(labels, key=lambda summary: -summary.matched_count)[:limit]


async def enrich_release_counts(
    labels: Sequence[LabelSummary],
    lookup: LabelCountLookup,
    pool: WavePool,
) -> None:
    async def _one(summary: LabelSummary) -> None:
        try:
            total = int(await lookup(summary.title))
            # A catalog total can never be below what this batch already shows.
            summary.release_count = max(total, summary.matched_count)
        except Exception as exc:
            logger.warning("label_count_fallback", extra={"label": summary.title, "error_type": type(exc).__name__})
            summary.release_count = summary.matched_count

    await pool.run(labels, _one)


def rank_labels(labels: Sequence[LabelSummary], max_releases: int = NO_RELEASE_LIMIT) -> List[LabelSummary]:
    if max_releases != NO_RELEASE_LIMIT:
        labels = [summary for summary in labels if summary.display_count <= max_releases]
    # sorted() is stable, so equal counts keep first-seen order.
    return sorted(labels, key=lambda summary: (-summary.display_count, -summary.matched_count))


def paginate(labels: Sequence[LabelSummary], page: int, per_page: int) -> Tuple[List[LabelSummary], Pagination]:
    items = len(labels)
    pages = math.ceil(items / per_page) if items else 0
    start = (page - 1) * per_page
    return list(labels[start:start + per_page]), Pagination(page=page, pages=pages, per_page=per_page, items=items)


async def lookup_label_release_count(name: str) -> int:
    payload = await fetch_discogs_json(
        "/database/search",
        [("type", "release"), ("label", name), ("per_page", "1")],
    )
    if not isinstance(payload, dict) or not isinstance(payload.get("pagination"), dict):
        raise UpstreamError(f"Discogs returned no pagination for label {name!r}.", 502)
    return SearchResult.from_payload(payload).pagination.items


async def scan_labels(
    filters: LabelScanFilters,
    max_labels: int = DEFAULT_MAX_LABELS,
    max_releases: int = NO_RELEASE_LIMIT,
    enrich: bool = True,
    lookup: LabelCountLookup = lookup_label_release_count,
    pool: Optional[WavePool] = None,
    trace_id: Optional[str] = None,
) -> List[LabelSummary]:
    payload = await fetch_discogs_json("/database/search", filters.search_params(), trace_id=trace_id)
    releases = SearchResult.from_payload(payload).results

    candidates = top_by_matches(discover_labels(releases, filters), max_labels)
    if enrich and candidates:
        if pool is None:
            batch_size, delay_ms = config.scan_wave_settings()
            pool = WavePool(batch_size, delay_ms)
        await enrich_release_counts(candidates, lookup, pool)

    ranked = rank_labels(candidates, max_releases)
    logger.info(
        "label_scan_complete",
        extra={"releases": len(releases), "candidates": len(candidates), "ranked": len(ranked), "trace_id": trace_id},
    )
    return ranked
