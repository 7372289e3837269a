"""URL helpers shared by the request builder, the callback server and manual entry."""
from __future__ import annotations

import ipaddress
from typing import Any, Dict, Mapping
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

DEFAULT_CALLBACK_PATH = "/callback"
_DEFAULT_PORTS = {"http": 80, "https": 443}


def is_http_url(value: str | None) -> bool:
    """True for an absolute http(s) URL with a host."""
    if not value:
        return False
    try:
        parsed = urlsplit(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def is_loopback_redirect_uri(uri: str) -> bool:
    try:
        host = urlsplit(uri).hostname
    except ValueError:
        return False
    if not host:
        return False
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def extract_port_from_redirect_uri(uri: str) -> int | None:
    """Port the browser will hit for a loopback redirect URI, else None."""
    if not is_loopback_redirect_uri(uri):
        return None
    parsed = urlsplit(uri)
    try:
        port = parsed.port
    except ValueError:
        return None
    if port is not None:
        return port
    return _DEFAULT_PORTS.get(parsed.scheme)


def extract_callback_path(redirect_uri: str) -> str:
    """Decoded path of the redirect URI, the form the router matches against."""
    try:
        parsed = urlsplit(redirect_uri)
    except ValueError:
        return DEFAULT_CALLBACK_PATH
    if not parsed.scheme or not parsed.netloc:
        return DEFAULT_CALLBACK_PATH
    return unquote(parsed.path) or "/"


def replace_port(uri: str, port: int) -> str:
    parsed = urlsplit(uri)
    host = parsed.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    userinfo = parsed.netloc.rpartition("@")[0]
    netloc = f"{userinfo}@{host}:{port}" if userinfo else f"{host}:{port}"
    return urlunsplit(parsed._replace(netloc=netloc))


def parse_query_params(query: str) -> Dict[str, str]:
    """Decode an x-www-form-urlencoded query; the first occurrence of a key wins."""
    params: Dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, value)
    return params


def append_query(url: str, params: Mapping[str, Any]) -> str:
    parsed = urlsplit(url)
    overridden = {str(k) for k, v in params.items() if v is not None}
    query_params = [
        (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k not in overridden
    ]
    query_params.extend((str(k), str(v)) for k, v in params.items() if v is not None)
    return urlunsplit(parsed._replace(query=urlencode(query_params)))
