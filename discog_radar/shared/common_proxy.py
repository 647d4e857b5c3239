import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import azure.functions as func
import httpx

from . import config
from .errors import DiscogsProxyError, UpstreamError
from .query import QueryValue, read_query

logger = logging.getLogger("discogs_proxy")

RETRYABLE_STATUSES = frozenset({429, 503})

FORWARDED_HEADERS = (
    "Link",
    "X-Discogs-Ratelimit",
    "X-Discogs-Ratelimit-Used",
    "X-Discogs-Ratelimit-Remaining",
)

RetryHook = Callable[[int, float, str], None]
RequestBuilder = Callable[[Dict[str, QueryValue]], Tuple[str, Sequence[Tuple[str, str]]]]


@dataclass
class DiscogsResult:
    payload: Any
    headers: Dict[str, str] = field(default_factory=dict)


def _new_client() -> httpx.Client:
    return httpx.Client(timeout=config.http_timeout())


async def _sleep(delay: float) -> None:
    await asyncio.sleep(delay)


async def _send_get(url: str, headers: Dict[str, str]) -> httpx.Response:
    def _do_sync():
        with _new_client() as client:
            return client.get(url, headers=headers)

    return await asyncio.to_thread(_do_sync)


async def fetch_with_retry(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    retries: int = config.DEFAULT_RETRIES,
    delay_ms: int = config.DEFAULT_DELAY_MS,
    on_retry: Optional[RetryHook] = None,
) -> httpx.Response:
    """GET ``url``, retrying 429/503 responses and network errors.

    Waits ``delay_ms * (attempt + 1)`` between attempts. The final attempt's
    response is returned whatever its status; a network error on the final
    attempt is re-raised.
    """
    headers = headers or {}
    last_error: Optional[Exception] = None
    for attempt in range(retries):
        final = attempt == retries - 1
        try:
            resp = await _send_get(url, headers)
        except (httpx.TimeoutException, httpx.RequestError) as rerr:
            last_error = rerr
            if final:
                raise
            reason = type(rerr).__name__
        else:
            if resp.status_code not in RETRYABLE_STATUSES or final:
                return resp
            reason = f"status_{resp.status_code}"
        backoff = delay_ms * (attempt + 1) / 1000
        logger.warning("transient_retry", extra={"attempt": attempt + 1, "backoff_s": backoff, "reason": reason})
        if on_retry is not None:
            on_retry(attempt + 1, backoff, reason)
        await _sleep(backoff)
    if last_error is not None:
        raise last_error
    raise UpstreamError("Discogs request failed after retries.", 500)


def _safe_read_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def read_envelope(resp: httpx.Response) -> Any:
    """Return the JSON payload of a 2xx response or raise ``UpstreamError``."""
    payload = _safe_read_json(resp)
    if resp.is_success:
        return payload
    body = payload if isinstance(payload, dict) else {}
    message = next((body[k] for k in ("error", "message") if isinstance(body.get(k), str) and body[k]), None)
    if message is None:
        message = f"Discogs API error: {resp.status_code} {resp.reason_phrase}".rstrip()
    raise UpstreamError(message, resp.status_code)


def _strip_credentials(obj: Any) -> Any:
    """Drop key/secret from upstream URLs echoed back in payloads (pagination links)."""
    if isinstance(obj, dict):
        return {k: _strip_credentials(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_strip_credentials(v) for v in obj]
    if isinstance(obj, str) and obj.startswith(config.DISCOGS_BASE_URL) and "secret=" in obj:
        parts = urlsplit(obj)
        kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in ("key", "secret")]
        return urlunsplit(parts._replace(query=urlencode(kept)))
    return obj


def _build_url(path: str, params: Iterable[Tuple[str, str]], key: str, secret: str) -> str:
    pairs = [(k, v) for k, v in params if k not in ("key", "secret")]
    pairs.extend([("key", key), ("secret", secret)])
    return f"{config.DISCOGS_BASE_URL}{path}?{urlencode(pairs)}"


async def fetch_discogs(
    path: str,
    params: Iterable[Tuple[str, str]] = (),
    trace_id: Optional[str] = None,
) -> DiscogsResult:
    key, secret = config.get_credentials()
    url = _build_url(path, params, key, secret)
    headers = {"Accept": "application/json", "User-Agent": config.user_agent()}
    retries, delay_ms = config.retry_settings()
    trace_id = trace_id or str(uuid.uuid4())

    retried = []
    started = time.perf_counter()
    resp = await fetch_with_retry(
        url,
        headers,
        retries=retries,
        delay_ms=delay_ms,
        on_retry=lambda attempt, backoff, reason: retried.append(attempt),
    )
    elapsed_ms = (time.perf_counter() - started) * 1000

    telemetry = {
        "event": "discogs_proxy_call",
        "entity": path,
        "status": resp.status_code,
        "elapsed_ms": round(elapsed_ms, 2),
        "attempts": len(retried) + 1,
        "trace_id": trace_id,
    }
    logger.info("discogs_proxy: " + json.dumps(telemetry))

    payload = _strip_credentials(read_envelope(resp))
    hdrs: Dict[str, str] = {}
    for h in FORWARDED_HEADERS:
        v = resp.headers.get(h)
        if v:
            hdrs[h] = v
    return DiscogsResult(payload=payload, headers=hdrs)


async def fetch_discogs_json(path: str, params: Iterable[Tuple[str, str]] = (), trace_id: Optional[str] = None) -> Any:
    result = await fetch_discogs(path, params, trace_id=trace_id)
    return result.payload


def send_json(status_code: int, payload: Any, headers: Optional[Dict[str, str]] = None) -> func.HttpResponse:
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    return func.HttpResponse(body=body, status_code=status_code, mimetype="application/json", headers=headers or {})


def send_error(exc: Exception, trace_id: Optional[str] = None, route: str = "") -> func.HttpResponse:
    hdrs = {"X-Trace-Id": trace_id} if trace_id else {}
    if isinstance(exc, DiscogsProxyError):
        if exc.status >= 500:
            logger.warning("proxy_error", extra={"route": route, "status": exc.status, "error_type": type(exc).__name__})
        return send_json(exc.status, {"error": exc.message}, hdrs)
    if isinstance(exc, httpx.TimeoutException):
        logger.warning("Timeout contacting Discogs", extra={"route": route})
        return send_json(500, {"error": "Discogs request timed out."}, hdrs)
    if isinstance(exc, httpx.RequestError):
        logger.exception("RequestError contacting Discogs", extra={"route": route, "error_type": type(exc).__name__})
        return send_json(500, {"error": "Unable to reach Discogs."}, hdrs)
    logger.exception("Unexpected error handling request", extra={"route": route})
    return send_json(500, {"error": "Unexpected server error."}, hdrs)


def method_not_allowed(allowed_methods: Sequence[str]) -> func.HttpResponse:
    return send_json(405, {"error": "Method not allowed."}, {"Allow": ", ".join(allowed_methods)})


async def proxy_request(req: func.HttpRequest, build_request: RequestBuilder, route: str = "") -> func.HttpResponse:
    """Validate, forward and wrap a GET request to Discogs.

    ``build_request`` turns the normalized query into ``(upstream_path, params)``
    and raises ``ValidationError`` for caller input that must not go upstream.
    """
    if (req.method or "").upper() != "GET":
        return method_not_allowed(["GET"])

    trace_id = str(uuid.uuid4())
    try:
        upstream_path, params = build_request(read_query(req))
        result = await fetch_discogs(upstream_path, params, trace_id=trace_id)
    except Exception as exc:
        return send_error(exc, trace_id, route)

    hdrs = dict(result.headers)
    hdrs["X-Trace-Id"] = trace_id
    return send_json(200, result.payload, hdrs)
