"""
Crawler do Gequbao (歌曲宝): busca -> primeiro resultado -> página de detalhe -> .lrc

Os seletores do site ficam em conjuntos de regras trocáveis; o motor de
extração não conhece nada deste site.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import unquote, urljoin

from ..core.config import GequbaoSettings
from ..core.extraction import element_text
from ..core.lyrics import (
    first_match,
    lrc_file_name,
    render_lrc,
    selector_group,
    timestamp_scan,
)
from ..core.models import (
    BatchOutcome,
    ExtractionRules,
    ParseMode,
    Record,
    RequestSpec,
    SelectorRule,
    Task,
)
from ..core.runner import Runner
from ..core.scheduler import BatchScheduler
from ..core.storage import OutputStore
from ..sources.url_generator import SearchItem, generate_detailed_urls, load_music_list

logger = logging.getLogger(__name__)

LRC_SUBDIR = "lrc"
DEFAULT_RESULTS_FILE = "gequbao-results-{timestamp}.json"

SEARCH_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Referer": "https://www.gequbao.com/",
}
DETAIL_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Referer": "https://www.gequbao.com/",
}

SEARCH_RESULT_SELECTOR = (
    "body > div.container > div:nth-child(4) > div > div.card-text"
    " > div:nth-child(2) > div.col-8.col-content"
)

LYRIC_STRATEGIES = (
    selector_group(["#content-lrc"]),
    selector_group(["#lrc, .lrc, .lyrics", ".lyric-content", ".song-lyrics",
                    "pre.lyrics", "#lyrics-container", ".lrc-content"]),
    timestamp_scan(),
)


def first_text(selector: str) -> Callable[..., Optional[str]]:
    # primeiro elemento do documento inteiro, não do elemento casado
    def transform(_value, soup, _element):
        return element_text(soup.select_one(selector)) or None
    return transform


def joined_text(selector: str) -> Callable[..., Optional[str]]:
    # texto de todos os elementos casados, concatenado
    def transform(_value, soup, _element):
        return "".join(el.get_text() for el in soup.select(selector)).strip() or None
    return transform


def search_rules(base_url: str) -> ExtractionRules:
    return ExtractionRules(
        root=SEARCH_RESULT_SELECTOR,
        fields={
            "detail_url": SelectorRule(
                selector="a",
                attribute="href",
                transform=lambda href, _soup, _el: urljoin(base_url, href) if href else None,
            ),
        },
    )


def detail_rules(strategies: Sequence = LYRIC_STRATEGIES) -> ExtractionRules:
    return ExtractionRules(
        whole_document=True,
        fields={
            "title": SelectorRule(transform=first_text(".song-title, h1, .title")),
            "artist": SelectorRule(transform=first_text(".artist, .singer")),
            "album": SelectorRule(transform=joined_text(".album")),
            "lyrics": SelectorRule(transform=lambda _v, soup, _el: first_match(strategies, soup)),
        },
    )


def title_from_url(url: str) -> Optional[str]:
    last = url.rstrip("/").rsplit("/", 1)[-1]
    return unquote(last).replace("-", " ") if last else None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SongDetail:
    detail_url: str
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    lyrics: str = ""
    lrc_file: Optional[str] = None

    @property
    def has_lyrics(self) -> bool:
        return bool(self.lyrics)


@dataclass
class SearchOutcome:
    url: str
    search_keyword: str
    total_results: int
    results: List[Record] = field(default_factory=list)
    detail: Optional[SongDetail] = None
    original_file: Optional[str] = None
    crawled_at: str = field(default_factory=_now)

    @property
    def artifact(self) -> Optional[str]:
        return self.detail.lrc_file if self.detail else None


class GequbaoCrawler:
    def __init__(
        self,
        runner: Runner,
        settings: Optional[GequbaoSettings] = None,
        scheduler: Optional[BatchScheduler] = None,
        search: Optional[ExtractionRules] = None,
        detail: Optional[ExtractionRules] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.runner = runner
        self.settings = settings or GequbaoSettings()
        self.store: OutputStore = runner.store
        self.scheduler = scheduler or BatchScheduler(store=self.store)
        self.search_rules = search or search_rules(self.settings.base_url)
        self.detail_rules = detail or detail_rules()
        self.sleep = sleep

    # ---------------------- uma busca ----------------------
    def crawl_search_url(self, url: str, original_file: Optional[str] = None) -> SearchOutcome:
        logger.info("buscando: %s", unquote(url))
        task = Task(
            name=f"search:{url}",
            request=RequestSpec(url=url, headers=SEARCH_HEADERS),
            rules=self.search_rules,
            parse_mode=ParseMode.HTML,
        )
        results = self.runner.run_task(task).records
        if not results:
            logger.info("nenhum resultado para %s", unquote(url))

        detail = None
        first = results[0] if results else {}
        if first.get("detail_url"):
            self.sleep(self.settings.detail_delay)
            detail = self.crawl_song_detail(first["detail_url"], original_file=original_file)

        keyword = url.split("/s/", 1)[1] if "/s/" in url else ""
        return SearchOutcome(
            url=url,
            search_keyword=unquote(keyword),
            total_results=len(results),
            results=results,
            detail=detail,
            original_file=original_file,
        )

    def crawl_song_detail(self, detail_url: str, original_file: Optional[str] = None, save_lrc: bool = True) -> SongDetail:
        logger.info("  detalhe: %s", detail_url)
        task = Task(
            name=f"detail:{detail_url}",
            request=RequestSpec(url=detail_url, headers=DETAIL_HEADERS),
            rules=self.detail_rules,
            parse_mode=ParseMode.HTML,
        )
        records = self.runner.run_task(task).records
        record: Dict[str, Any] = records[0] if records else {}

        song = SongDetail(
            detail_url=detail_url,
            title=record.get("title") or title_from_url(detail_url),
            artist=record.get("artist"),
            album=record.get("album"),
            lyrics=record.get("lyrics") or "",
        )
        if song.has_lyrics and save_lrc:
            song.lrc_file = self.save_lrc_file(song, original_file)
        elif not song.has_lyrics:
            logger.info("  letra não encontrada: %s", detail_url)
        return song

    def save_lrc_file(self, song: SongDetail, original_file: Optional[str] = None) -> str:
        name = lrc_file_name(original_file, song.artist, song.title)
        self.store.write_text(LRC_SUBDIR, name, render_lrc(song, self.settings.engine_id))
        logger.info("  letra salva: %s", name)
        return name

    # ---------------------- lotes ----------------------
    def crawl_batch(
        self,
        urls: Sequence[str],
        limit: Optional[int] = None,
        save_results: bool = False,
        output_file: str = DEFAULT_RESULTS_FILE,
    ) -> BatchOutcome:
        urls = list(urls)[:limit] if limit is not None else list(urls)
        return self.scheduler.run_batch(
            urls,
            self.crawl_search_url,
            save_as=output_file if save_results else None,
            describe=unquote,
        )

    def crawl_batch_with_file_names(
        self,
        items: Sequence[SearchItem],
        limit: Optional[int] = None,
        save_results: bool = False,
        output_file: str = DEFAULT_RESULTS_FILE,
    ) -> BatchOutcome:
        items = list(items)[:limit] if limit is not None else list(items)
        return self.scheduler.run_batch(
            items,
            lambda item: self.crawl_search_url(item.url, original_file=item.original_file),
            save_as=output_file if save_results else None,
            describe=lambda item: item.original_file or item.title or unquote(item.url),
        )

    def crawl_from_music_list(self, music_list_file: str, **options) -> BatchOutcome:
        items = generate_detailed_urls(load_music_list(music_list_file), self.search_base_url)
        logger.info("%d URL(s) geradas a partir de %s", len(items), music_list_file)
        return self.crawl_batch_with_file_names(items, **options)

    @property
    def search_base_url(self) -> str:
        return urljoin(self.settings.base_url + "/", "s/")
