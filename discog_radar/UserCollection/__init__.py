from typing import Dict, List, Tuple
from urllib.parse import quote

import azure.functions as func

from ..shared.common_proxy import proxy_request
from ..shared.errors import ValidationError
from ..shared.query import QueryValue, read_text, to_positive_integer

# Folder 0 is the "All" folder every Discogs user has.
DEFAULT_FOLDER = 0


def build_collection(query: Dict[str, QueryValue]) -> Tuple[str, List[Tuple[str, str]]]:
    username = read_text(query.get("username"))
    if not username:
        raise ValidationError("Username is required.")
    folder = to_positive_integer(query.get("folder"), DEFAULT_FOLDER, 0)
    page = to_positive_integer(query.get("page"), 1, 1, 9999)
    per_page = to_positive_integer(query.get("per_page"), 50, 1, 100)
    upstream_path = f"/users/{quote(username, safe='')}/collection/folders/{folder}/releases"
    return upstream_path, [("page", str(page)), ("per_page", str(per_page))]


async def main(req: func.HttpRequest) -> func.HttpResponse:
    return await proxy_request(req, build_collection, route="users/collection")
