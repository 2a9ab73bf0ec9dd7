import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import requests

from ..core.errors import FetchExhausted
from ..core.interfaces import Collector
from ..core.models import BODY_METHODS, FetchOptions, FetchResult, RequestSpec

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept-Language": "zh-CN,zh;q=0.9",
}


@dataclass(frozen=True)
class ClientConfig:
    default_headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    options: FetchOptions = field(default_factory=FetchOptions)


def merge_headers(defaults: Dict[str, str], headers: Dict[str, str]) -> Dict[str, str]:
    # o header da requisição vence o default
    return {**defaults, **(headers or {})}


class HttpCollector(Collector):
    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or ClientConfig()
        self.session = session or requests.Session()
        self.sleep = sleep

    def fetch(self, spec: RequestSpec, options: Optional[FetchOptions] = None) -> FetchResult:
        opts = options or self.config.options
        failures = 0
        while True:
            try:
                return self._send(spec, opts)
            except requests.RequestException as exc:
                failures += 1
                logger.debug("%s %s falhou (%d/%d): %s", spec.method, spec.url, failures, opts.retry_times, exc)
                if failures >= opts.retry_times:
                    raise FetchExhausted(spec.url, failures, exc) from exc
                self.sleep(opts.retry_delay)

    def _send(self, spec: RequestSpec, opts: FetchOptions) -> FetchResult:
        method = spec.method.upper()
        kwargs = {
            "headers": merge_headers(self.config.default_headers, spec.headers),
            "timeout": opts.timeout,
        }
        if spec.body is not None and method in BODY_METHODS:
            if isinstance(spec.body, (str, bytes)):
                kwargs["data"] = spec.body
            else:
                kwargs["json"] = spec.body

        resp = self.session.request(method, spec.url, **kwargs)
        resp.raise_for_status()

        meta = {"status": resp.status_code, "url": resp.url, "content_type": resp.headers.get("Content-Type", "")}
        if "json" in meta["content_type"].lower():
            return FetchResult(text=None, data=resp.json(), meta=meta)
        return FetchResult(text=resp.text, meta=meta)
