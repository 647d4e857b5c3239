from typing import Dict, List, Tuple

import azure.functions as func

from ..shared.common_proxy import proxy_request
from ..shared.errors import ValidationError
from ..shared.query import QueryValue, to_positive_integer


def build_release_lookup(query: Dict[str, QueryValue]) -> Tuple[str, List[Tuple[str, str]]]:
    release_id = to_positive_integer(query.get("id"), 0)
    if not release_id:
        raise ValidationError("Invalid release id.")
    return f"/releases/{release_id}", []


async def main(req: func.HttpRequest) -> func.HttpResponse:
    return await proxy_request(req, build_release_lookup, route="releases")
