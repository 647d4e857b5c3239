from typing import Dict, List, Tuple

import azure.functions as func

from ..shared.common_proxy import proxy_request
from ..shared.errors import ValidationError
from ..shared.query import QueryValue, read_text, to_positive_integer


def build_artist_search(query: Dict[str, QueryValue]) -> Tuple[str, List[Tuple[str, str]]]:
    text = read_text(query.get("q"))
    if not text:
        raise ValidationError("Artist query is required.")
    per_page = to_positive_integer(query.get("per_page"), 5, 1, 25)
    return "/database/search", [("q", text), ("type", "artist"), ("per_page", str(per_page))]


async def main(req: func.HttpRequest) -> func.HttpResponse:
    return await proxy_request(req, build_artist_search, route="artists/search")
