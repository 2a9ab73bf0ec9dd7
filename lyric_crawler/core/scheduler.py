import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from .models import BatchFailure, BatchOutcome, BatchSummary
from .storage import OutputStore

logger = logging.getLogger(__name__)


def has_artifact(result: Any) -> bool:
    return getattr(result, "artifact", None) is not None


@dataclass(frozen=True)
class BatchSettings:
    max_concurrent: int = 3
    inter_item_delay: float = 1.0
    inter_window_delay: float = 2.0


def windows(items: Sequence[Any], size: int) -> List[Sequence[Any]]:
    if size < 1:
        raise ValueError("max_concurrent deve ser >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchScheduler:
    """
    Executa itens em janelas de tamanho ``max_concurrent``.

    Dentro da janela o item k espera ``k * inter_item_delay`` antes de começar;
    a janela seguinte só começa quando todos os itens da anterior terminaram.
    Falhas de um item vão para ``failures`` e não afetam os demais.
    """

    def __init__(
        self,
        settings: Optional[BatchSettings] = None,
        store: Optional[OutputStore] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or BatchSettings()
        self.store = store
        self.sleep = sleep

    def _staggered(self, worker: Callable[[Any], Any], item: Any, index: int) -> Any:
        if index > 0 and self.settings.inter_item_delay > 0:
            self.sleep(self.settings.inter_item_delay * index)
        return worker(item)

    def run_batch(
        self,
        items: Sequence[Any],
        worker: Callable[[Any], Any],
        save_as: Optional[str] = None,
        describe: Callable[[Any], str] = str,
    ) -> BatchOutcome:
        items = list(items)
        successes: List[Any] = []
        failures: List[BatchFailure] = []
        size = self.settings.max_concurrent
        batches = windows(items, size)

        logger.info("iniciando lote de %d item(ns) em %d janela(s)", len(items), len(batches))

        with ThreadPoolExecutor(max_workers=size) as executor:
            for n, window in enumerate(batches):
                futures = {
                    executor.submit(self._staggered, worker, item, index): item
                    for index, item in enumerate(window)
                }
                for future in as_completed(futures):
                    item = futures[future]
                    try:
                        successes.append(future.result())
                        logger.info("[%d/%d] concluído: %s", len(successes) + len(failures), len(items), describe(item))
                    except Exception as exc:
                        failures.append(BatchFailure(item=item, error=str(exc)))
                        logger.warning("falha em %s: %s", describe(item), exc)

                if n < len(batches) - 1 and self.settings.inter_window_delay > 0:
                    self.sleep(self.settings.inter_window_delay)

        saved_to = None
        if save_as and successes:
            store = self.store or OutputStore()
            saved_to = str(store.save_records(successes, save_as))
            logger.info("resultados salvos em: %s", saved_to)

        summary = BatchSummary(
            total=len(successes) + len(failures),
            succeeded=len(successes),
            failed=len(failures),
            derived_artifacts=sum(1 for result in successes if has_artifact(result)),
            saved_to=saved_to,
        )
        logger.info("lote concluído: sucesso %d, falha %d", summary.succeeded, summary.failed)
        return BatchOutcome(successes=successes, failures=failures, summary=summary)
