"""Tarefas prontas para alguns sites e montagem de runners a partir da config."""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .collectors.http_requests import HttpCollector
from .core.config import AppConfig
from .core.models import (
    ExtractionRules,
    ParseMode,
    PathRule,
    PathTransformRule,
    PersistConfig,
    RequestSpec,
    SelectorRule,
    Task,
)
from .core.runner import Runner
from .core.scheduler import BatchScheduler
from .core.storage import OutputStore

JSON_ACCEPT = "application/json, text/plain, */*"
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def epoch_to_date(value) -> Optional[str]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value)).date().isoformat()


def link(prefix: str) -> Callable[[Any, Any], Optional[str]]:
    return lambda id_, _entry: f"{prefix}{id_}" if id_ is not None else None


def create_custom_runner(config: AppConfig, collector: Optional[HttpCollector] = None) -> Runner:
    return Runner(
        collector=collector or HttpCollector(config.client),
        store=OutputStore(config.output_dir),
    )


def create_scheduler(config: AppConfig, store: Optional[OutputStore] = None) -> BatchScheduler:
    return BatchScheduler(config.batch, store=store or OutputStore(config.output_dir))


def geekpark_tasks() -> List[Task]:
    return [
        Task(
            name="GeekPark-7Days-Hot",
            request=RequestSpec(
                url="https://mainssl.geekpark.net/api/v1/posts/hot_in_week?per=7",
                headers={"Accept": JSON_ACCEPT},
            ),
            parse_mode=ParseMode.JSON,
            rules=ExtractionRules(
                root="posts",
                fields={
                    "title": PathRule("title"),
                    "coverimg": PathRule("cover_url"),
                    "infomsg": PathRule("abstract"),
                    "url": PathTransformRule("id", link("https://www.geekpark.net/news/")),
                    "date": PathTransformRule("published_timestamp", lambda ts, _entry: epoch_to_date(ts)),
                    "readcount": PathRule("views"),
                },
            ),
            persist=PersistConfig(filename="TopArticlesGeekParkSevenDays-{timestamp}"),
        ),
        Task(
            name="GeekPark-Homepage",
            request=RequestSpec(url="https://www.geekpark.net/", headers={"Accept": HTML_ACCEPT}),
            parse_mode=ParseMode.HTML,
            rules=ExtractionRules(
                root="#index > div.main-content > div > div.article-list > article",
                fields={
                    "title": SelectorRule(selector="div.article-info > a:nth-child(3)"),
                    "url": SelectorRule(selector="div.article-info > a:nth-child(3)", attribute="href"),
                },
            ),
            persist=PersistConfig(filename="GeekParkHomeArticle-{timestamp}"),
        ),
    ]


def juejin_tasks() -> List[Task]:
    return [
        Task(
            name="Juejin-Recommend",
            request=RequestSpec(
                url="https://api.juejin.cn/recommend_api/v1/article/recommend_cate_feed?aid=2608&spider=0",
                method="POST",
                headers={"Content-Type": "application/json"},
                body={
                    "cate_id": "6809637767543259144",
                    "cursor": "0",
                    "id_type": 2,
                    "limit": 20,
                    "sort_type": 200,
                },
            ),
            parse_mode=ParseMode.JSON,
            rules=ExtractionRules(
                root="data",
                fields={
                    "url": PathTransformRule("article_id", link("https://juejin.cn/post/")),
                    "title": PathRule("article_info.title"),
                    "infomsg": PathRule("article_info.brief_content"),
                    "readcount": PathRule("article_info.view_count"),
                    "coverimg": PathRule("article_info.cover_image"),
                    "date": PathTransformRule("article_info.ctime", lambda ts, _entry: epoch_to_date(ts)),
                },
            ),
            persist=PersistConfig(filename="juejinRecommendPosts-{timestamp}"),
        ),
    ]


PRESETS: Dict[str, Callable[[], List[Task]]] = {
    "geekpark": geekpark_tasks,
    "juejin": juejin_tasks,
}
