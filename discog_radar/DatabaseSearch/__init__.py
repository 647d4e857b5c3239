from typing import Dict, List, Tuple

import azure.functions as func

from ..shared.common_proxy import proxy_request
from ..shared.query import QueryValue, read_allowed_string, read_text, to_positive_integer

ALLOWED_TYPES = ("release", "master", "artist", "label")
ALLOWED_SORT = ("year", "title", "artist")
ALLOWED_SORT_ORDER = ("asc", "desc")

TEXT_PARAMS = ("q", "year", "genre", "style", "label", "artist", "format", "country")


def build_search(query: Dict[str, QueryValue]) -> Tuple[str, List[Tuple[str, str]]]:
    params: List[Tuple[str, str]] = []
    # Accept 'query' as an alias for Discogs' 'q'
    if "q" not in query and "query" in query:
        query = dict(query, q=query["query"])
    for name in TEXT_PARAMS:
        value = read_text(query.get(name))
        if value:
            params.append((name, value))

    for name, allowed in (("type", ALLOWED_TYPES), ("sort", ALLOWED_SORT), ("sort_order", ALLOWED_SORT_ORDER)):
        value = read_allowed_string(query.get(name), allowed)
        if value:
            params.append((name, value))

    params.append(("page", str(to_positive_integer(query.get("page"), 1, 1, 9999))))
    params.append(("per_page", str(to_positive_integer(query.get("per_page"), 25, 1, 200))))
    return "/database/search", params


async def main(req: func.HttpRequest) -> func.HttpResponse:
    return await proxy_request(req, build_search, route="search")
