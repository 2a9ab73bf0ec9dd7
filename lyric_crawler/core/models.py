from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

BODY_METHODS = ("POST", "PUT", "PATCH")


class ParseMode(str, Enum):
    HTML = "html"   # tree-markup
    JSON = "json"   # structured-data
    AUTO = "auto"


@dataclass(frozen=True)
class RequestSpec:
    url: str
    method: str = "GET"       # GET, POST, PUT, PATCH
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass(frozen=True)
class FetchOptions:
    timeout: float = 30.0
    retry_times: int = 3
    retry_delay: float = 1.0  # segundos, fixo


@dataclass
class FetchResult:
    text: Optional[str]       # html/texto
    data: Any = None          # corpo JSON já decodificado
    meta: Dict[str, Any] = field(default_factory=dict)


# ---- regras de campo (variantes fechadas) ----

@dataclass(frozen=True)
class PathRule:
    path: str


@dataclass(frozen=True)
class PathTransformRule:
    path: str
    transform: Callable[..., Any]


@dataclass(frozen=True)
class SelectorRule:
    selector: Optional[str] = None
    attribute: Optional[str] = None
    transform: Optional[Callable[..., Any]] = None


FieldRule = Union[PathRule, PathTransformRule, SelectorRule]
Record = Dict[str, Any]


@dataclass(frozen=True)
class ExtractionRules:
    fields: Dict[str, FieldRule]
    root: Optional[str] = None  # seletor css (html) ou caminho "a.b.c" (json)
    # html: um único registro avaliado sobre o documento inteiro, sem root
    whole_document: bool = False


@dataclass(frozen=True)
class PersistConfig:
    filename: str = "crawled-data-{timestamp}"


@dataclass
class Task:
    name: str
    request: RequestSpec
    rules: ExtractionRules
    parse_mode: ParseMode = ParseMode.AUTO
    persist: Optional[PersistConfig] = None


@dataclass
class TaskResult:
    name: str
    records: List[Record]
    saved_path: Optional[str] = None

    @property
    def artifact(self) -> Optional[str]:
        return self.saved_path


@dataclass
class BatchFailure:
    item: Any
    error: str


@dataclass
class BatchSummary:
    total: int
    succeeded: int
    failed: int
    derived_artifacts: int = 0
    saved_to: Optional[str] = None


@dataclass
class BatchOutcome:
    successes: List[Any]
    failures: List[BatchFailure]
    summary: BatchSummary
