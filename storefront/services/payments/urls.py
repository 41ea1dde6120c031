"""Externally reachable storefront and backend URLs.

Every callback URL and storefront redirect is derived here, from the inbound
request and the deployment settings:

1. an explicit ``CLIENT_URL`` / ``SERVER_URL`` (anything but ``auto``) wins;
2. otherwise scheme and host come from ``X-Forwarded-Proto`` /
   ``X-Forwarded-Host``, then from the raw request;
3. loopback hosts swap the frontend dev port for the backend one (or the
   reverse), other hosts drop their port;
4. in the live environment the scheme is always ``https``, since the gateway
   rejects plain-http callbacks there.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlsplit

from ...config import Settings
from ...core.constants import LOOPBACK_HOSTS
from .credentials import Environment


@dataclass(frozen=True)
class RequestContext:
    scheme: str
    host: str
    forwarded_proto: str | None = None
    forwarded_host: str | None = None

    @classmethod
    def from_request(cls, request) -> "RequestContext":
        headers: Mapping[str, str] = request.headers
        return cls(
            scheme=request.url.scheme,
            host=headers.get("host") or request.url.netloc,
            forwarded_proto=headers.get("x-forwarded-proto"),
            forwarded_host=headers.get("x-forwarded-host"),
        )


@dataclass(frozen=True)
class CallbackUrls:
    return_url: str
    notify_url: str


def _first(value: str | None) -> str:
    # Proxy chains append comma separated values, the client-facing one comes first
    return (value or "").split(",")[0].strip()


def split_host(host: str) -> tuple[str, int | None]:
    if host.startswith("["):
        name, _, rest = host.partition("]")
        name += "]"
        port = rest[1:] if rest.startswith(":") else ""
    else:
        name, _, port = host.partition(":")
    return name.lower(), int(port) if port.isascii() and port.isdigit() else None


def force_https(url: str) -> str:
    return urlsplit(url)._replace(scheme="https").geturl()


class UrlResolver:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _detect(self, ctx: RequestContext, *, swap_from: int, swap_to: int) -> str:
        scheme = (_first(ctx.forwarded_proto) or ctx.scheme or "http").lower()
        host = _first(ctx.forwarded_host) or ctx.host
        if not host:
            return f"{scheme}://localhost:{swap_to}"
        name, port = split_host(host)
        if name in LOOPBACK_HOSTS:
            if port == swap_from:
                port = swap_to
            netloc = f"{name}:{port}" if port else name
        else:
            netloc = name
        return f"{scheme}://{netloc}"

    def _finish(self, url: str, environment: Environment | None) -> str:
        url = url.rstrip("/")
        if environment == Environment.live:
            url = force_https(url)
        return url

    def resolve_client_url(self, ctx: RequestContext, environment: Environment | None = None) -> str:
        configured = self._settings.client_url.strip()
        if configured and configured != "auto":
            return self._finish(configured, environment)
        url = self._detect(
            ctx,
            swap_from=self._settings.server_dev_port,
            swap_to=self._settings.client_dev_port,
        )
        return self._finish(url, environment)

    def resolve_server_url(self, ctx: RequestContext, environment: Environment | None = None) -> str:
        configured = self._settings.server_url.strip()
        if configured and configured != "auto":
            return self._finish(configured, environment)
        url = self._detect(
            ctx,
            swap_from=self._settings.client_dev_port,
            swap_to=self._settings.server_dev_port,
        )
        return self._finish(url, environment)

    def callback_urls(self, ctx: RequestContext, environment: Environment) -> CallbackUrls:
        server_url = self.resolve_server_url(ctx, environment)
        return CallbackUrls(
            return_url=f"{server_url}{self._settings.payment_return_path}",
            notify_url=f"{server_url}{self._settings.payment_webhook_path}",
        )


__all__ = [
    "RequestContext",
    "CallbackUrls",
    "UrlResolver",
    "force_https",
    "split_host",
]
