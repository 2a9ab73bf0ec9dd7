import threading

import pytest

from lyric_crawler.core.interfaces import Collector
from lyric_crawler.core.models import FetchResult


class FakeCollector(Collector):
    """Respostas por URL; uma Exception como resposta é levantada."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, spec, options=None):
        with self._lock:
            self.calls.append(spec)
        response = self.responses[spec.url]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def html():
    return lambda text: FetchResult(text=text, meta={"status": 200})


@pytest.fixture
def json_body():
    return lambda data: FetchResult(text=None, data=data, meta={"status": 200})
