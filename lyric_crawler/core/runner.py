# lyric_crawler/core/runner.py
import logging
from typing import Any, Optional

from .errors import AmbiguousParseMode, CrawlerError, TaskFailed
from .extraction import coerce_mode, extract
from .interfaces import Collector
from .models import FetchOptions, FetchResult, ParseMode, Task, TaskResult
from .storage import OutputStore

logger = logging.getLogger(__name__)


def resolve_parse_mode(declared: ParseMode, response: FetchResult) -> ParseMode:
    if declared != ParseMode.AUTO:
        return declared
    if response.text:
        return ParseMode.HTML
    if response.data is not None:
        return ParseMode.JSON
    raise AmbiguousParseMode("não foi possível determinar o tipo de parse da resposta")


def raw_body(mode: ParseMode, response: FetchResult) -> Any:
    return response.text if mode == ParseMode.HTML else response.data


class Runner:
    def __init__(
        self,
        collector: Collector,
        store: Optional[OutputStore] = None,
        fetch_options: Optional[FetchOptions] = None,
    ):
        self.collector = collector
        self.store = store or OutputStore()
        self.fetch_options = fetch_options

    def run_task(self, task: Task) -> TaskResult:
        try:
            declared = coerce_mode(task.parse_mode)
            response = self.collector.fetch(task.request, self.fetch_options)
            mode = resolve_parse_mode(declared, response)
            records = extract(raw_body(mode, response), task.rules, mode)

            saved_path = None
            if task.persist is not None:
                saved_path = str(self.store.save_records(records, task.persist.filename))
                logger.info("[%s] dados salvos em: %s", task.name, saved_path)
        except CrawlerError as exc:
            logger.error("[%s] falha: %s", task.name, exc)
            raise TaskFailed(task.name, exc) from exc

        return TaskResult(name=task.name, records=records, saved_path=saved_path)
