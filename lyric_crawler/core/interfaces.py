from abc import ABC, abstractmethod
from typing import Optional

from .models import FetchOptions, FetchResult, RequestSpec


class Collector(ABC):
    @abstractmethod
    def fetch(self, spec: RequestSpec, options: Optional[FetchOptions] = None) -> FetchResult:
        ...
