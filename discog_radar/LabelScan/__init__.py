import uuid
from typing import Dict, Optional

import azure.functions as func

from ..shared.common_proxy import method_not_allowed, send_error, send_json
from ..shared.errors import ValidationError
from ..shared.label_scan import DEFAULT_MAX_LABELS, NO_RELEASE_LIMIT, LabelScanFilters, paginate, scan_labels
from ..shared.query import QueryValue, read_flag, read_query, read_text, to_positive_integer

MAX_YEAR = 9999


def _read_year(value: Optional[QueryValue]) -> Optional[int]:
    year = to_positive_integer(value, 0, 1, MAX_YEAR)
    return year or None


def read_filters(query: Dict[str, QueryValue]) -> LabelScanFilters:
    filters = LabelScanFilters(
        query=read_text(query.get("q")),
        genre=read_text(query.get("genre")),
        country=read_text(query.get("country")),
        year_from=_read_year(query.get("year_from")),
        year_to=_read_year(query.get("year_to")),
    )
    if filters.is_empty():
        raise ValidationError("At least one label scan filter is required.")
    return filters


async def main(req: func.HttpRequest) -> func.HttpResponse:
    if (req.method or "").upper() != "GET":
        return method_not_allowed(["GET"])

    trace_id = str(uuid.uuid4())
    try:
        query = read_query(req)
        filters = read_filters(query)
        labels = await scan_labels(
            filters,
            max_labels=to_positive_integer(query.get("max_labels"), DEFAULT_MAX_LABELS, 1, 100),
            max_releases=to_positive_integer(query.get("max_releases"), NO_RELEASE_LIMIT, 0),
            enrich=read_flag(query.get("enrich"), True),
            trace_id=trace_id,
        )
        page_items, pagination = paginate(
            labels,
            page=to_positive_integer(query.get("page"), 1, 1, 9999),
            per_page=to_positive_integer(query.get("per_page"), 50, 1, 100),
        )
    except Exception as exc:
        return send_error(exc, trace_id, route="labels/scan")

    body = {"results": [label.to_dict() for label in page_items], "pagination": pagination.to_dict()}
    return send_json(200, body, {"X-Trace-Id": trace_id})
