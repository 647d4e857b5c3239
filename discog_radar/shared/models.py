from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def as_list(value: Any) -> List[str]:
    """Discogs returns some multi-valued fields as a bare string on certain endpoints."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v) != ""]
    text = str(value)
    return [text] if text else []


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class Release:
    id: int
    title: str
    year: Optional[str] = None
    country: Optional[str] = None
    thumb: Optional[str] = None
    cover_image: Optional[str] = None
    format: List[str] = field(default_factory=list)
    label: List[str] = field(default_factory=list)
    genre: List[str] = field(default_factory=list)
    style: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Release":
        try:
            release_id = int(data.get("id") or 0)
        except (TypeError, ValueError):
            release_id = 0
        return cls(
            id=release_id,
            title=str(data.get("title") or ""),
            year=_optional_text(data.get("year")),
            country=_optional_text(data.get("country")),
            thumb=_optional_text(data.get("thumb")),
            cover_image=_optional_text(data.get("cover_image")),
            format=as_list(data.get("format")),
            label=as_list(data.get("label")),
            genre=as_list(data.get("genre")),
            style=as_list(data.get("style")),
        )

    def year_as_int(self) -> Optional[int]:
        if not self.year:
            return None
        try:
            return int(self.year[:4])
        except ValueError:
            return None


@dataclass
class Pagination:
    page: int = 1
    pages: int = 1
    per_page: int = 0
    items: int = 0
    urls: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Pagination":
        data = data if isinstance(data, dict) else {}

        def _int(key: str, default: int) -> int:
            try:
                return int(data.get(key, default))
            except (TypeError, ValueError):
                return default

        items = max(_int("items", 0), 0)
        page = _int("page", 1)
        pages = _int("pages", 1)
        if items > 0:
            page = max(page, 1)
            pages = max(pages, 1)
        urls = data.get("urls") if isinstance(data.get("urls"), dict) else {}
        return cls(page=page, pages=pages, per_page=_int("per_page", 0), items=items, urls=dict(urls))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"page": self.page, "pages": self.pages, "per_page": self.per_page, "items": self.items}
        if self.urls:
            out["urls"] = dict(self.urls)
        return out


@dataclass
class SearchResult:
    results: List[Release]
    pagination: Pagination

    @classmethod
    def from_payload(cls, payload: Any) -> "SearchResult":
        payload = payload if isinstance(payload, dict) else {}
        raw_results = payload.get("results")
        releases = [Release.from_dict(r) for r in raw_results if isinstance(r, dict)] if isinstance(raw_results, list) else []
        return cls(results=releases, pagination=Pagination.from_dict(payload.get("pagination")))


@dataclass
class LabelSummary:
    """A label discovered in a release batch.

    ``matched_count`` is always tracked; ``release_count`` is only set once the
    label's catalog-wide total is known. Serialized output carries exactly one
    of ``releaseCount`` / ``matchedCount``.
    """

    id: str
    title: str
    matched_count: int = 0
    release_count: Optional[int] = None
    thumb: Optional[str] = None
    country: Optional[str] = None

    @property
    def display_count(self) -> int:
        return self.release_count if self.release_count is not None else self.matched_count

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "title": self.title}
        if self.thumb:
            out["thumb"] = self.thumb
        if self.country:
            out["country"] = self.country
        if self.release_count is not None:
            out["releaseCount"] = self.release_count
        else:
            out["matchedCount"] = self.matched_count
        return out
