import json
from typing import Any, Dict, Optional
from urllib import error, request


class HttpJsonError(RuntimeError):
    def __init__(self, reason: str, status: Optional[int] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status = status


def join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def http_post_json(
    url: str,
    body: Dict[str, Any],
    timeout_sec: float,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    payload = json.dumps(body, ensure_ascii=False).encode("utf-8")
    all_headers = {"Content-Type": "application/json"}
    all_headers.update(headers or {})
    req = request.Request(url, data=payload, headers=all_headers, method="POST")
    return _read_json(req, timeout_sec)


def http_get_json(url: str, timeout_sec: float) -> Dict[str, Any]:
    req = request.Request(url, method="GET")
    return _read_json(req, timeout_sec)


def _read_json(req: request.Request, timeout_sec: float) -> Dict[str, Any]:
    try:
        with request.urlopen(req, timeout=timeout_sec) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise HttpJsonError(f"http_status_{resp.status}", resp.status)
            raw = resp.read().decode("utf-8") or "{}"
    except error.HTTPError as exc:
        raise HttpJsonError(f"http_status_{exc.code}", exc.code) from exc
    except (error.URLError, TimeoutError, OSError) as exc:
        raise HttpJsonError("connection_error") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HttpJsonError("invalid_json_payload") from exc
    if not isinstance(data, dict):
        raise HttpJsonError("invalid_json_payload")
    return data
