"""
Fluxo completo: arquivos de música -> URLs de busca -> letras -> .lrc
com o mesmo nome do arquivo original.
"""
import logging
import time
from pathlib import Path
from typing import Optional, Union

from .core.config import AppConfig
from .core.models import BatchOutcome, BatchSummary
from .core.runner import Runner
from .core.scheduler import BatchScheduler
from .factory import create_custom_runner
from .sites.gequbao import GequbaoCrawler
from .sources.audio_files import export_music_list, parse_folder
from .sources.url_generator import generate_detailed_urls

logger = logging.getLogger(__name__)

MUSIC_LIST_FILE = "music_list.json"
BATCH_RESULTS_FILE = "lyrics-batch-{timestamp}.json"


def build_crawler(config: AppConfig, runner: Optional[Runner] = None, sleep=time.sleep) -> GequbaoCrawler:
    runner = runner or create_custom_runner(config)
    scheduler = BatchScheduler(config.batch, store=runner.store, sleep=sleep)
    return GequbaoCrawler(runner, settings=config.gequbao, scheduler=scheduler, sleep=sleep)


def process_full_pipeline(
    music_folder: Union[str, Path],
    config: Optional[AppConfig] = None,
    recursive: bool = True,
    limit: Optional[int] = None,
    save_intermediate_files: bool = True,
    crawler: Optional[GequbaoCrawler] = None,
) -> BatchOutcome:
    config = config or AppConfig()
    crawler = crawler or build_crawler(config)

    logger.info("[1] escaneando %s", music_folder)
    music_files = parse_folder(music_folder, recursive=recursive)
    logger.info("%d arquivo(s) de música encontrados", len(music_files))
    if not music_files:
        return BatchOutcome(successes=[], failures=[], summary=BatchSummary(total=0, succeeded=0, failed=0))

    if save_intermediate_files:
        export_music_list(music_files, Path(config.output_dir) / MUSIC_LIST_FILE)

    logger.info("[2] gerando URLs de busca")
    items = generate_detailed_urls(music_files, crawler.search_base_url)
    logger.info("%d URL(s) de busca geradas", len(items))

    logger.info("[3] buscando letras")
    return crawler.crawl_batch_with_file_names(
        items,
        limit=limit,
        save_results=save_intermediate_files,
        output_file=BATCH_RESULTS_FILE,
    )
