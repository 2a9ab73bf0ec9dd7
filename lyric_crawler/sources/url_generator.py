import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from .audio_files import UNKNOWN_ARTIST

logger = logging.getLogger(__name__)

SEARCH_BASE_URL = "https://www.gequbao.com/s/"
_BRACKETS_RE = re.compile(r"[《》【】\[\]()（）]")
_SEPARATORS_RE = re.compile(r"[-_]")
# o que encodeURIComponent deixa intacto além dos não reservados
_URI_SAFE = "!~*'()"


@dataclass
class SearchItem:
    url: str
    title: str = ""
    artist: str = ""
    search_keyword: str = ""
    original_file: Optional[str] = None


def clean_string(value: str) -> str:
    value = _BRACKETS_RE.sub("", value)
    value = _SEPARATORS_RE.sub(" ", value)
    return re.sub(r"\s+", " ", value).strip()


def build_search_keyword(title: str, artist: str) -> str:
    return f"{clean_string(title)} {clean_string(artist)}"


def search_url(keyword: str, base_url: str = SEARCH_BASE_URL) -> str:
    return base_url + quote(keyword, safe=_URI_SAFE)


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name, None)


def is_searchable(entry: Any) -> bool:
    return bool(_field(entry, "title")) and _field(entry, "artist") not in (None, "", UNKNOWN_ARTIST)


def generate_detailed_urls(music_list: Iterable[Any], base_url: str = SEARCH_BASE_URL) -> List[SearchItem]:
    items = []
    for entry in music_list:
        if not is_searchable(entry):
            logger.warning("pulando %s (informação incompleta)", _field(entry, "file_name") or _field(entry, "title"))
            continue
        title, artist = _field(entry, "title"), _field(entry, "artist")
        keyword = build_search_keyword(title, artist)
        items.append(
            SearchItem(
                url=search_url(keyword, base_url),
                title=title,
                artist=artist,
                search_keyword=keyword,
                original_file=_field(entry, "original_file") or _field(entry, "file_name"),
            )
        )
    return items


def generate_urls(music_list: Iterable[Any], base_url: str = SEARCH_BASE_URL) -> List[str]:
    return [item.url for item in generate_detailed_urls(music_list, base_url)]


def load_music_list(path: Union[str, Path]) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        music_list = json.load(f)
    if not isinstance(music_list, list):
        raise ValueError(f"{path}: esperado um array JSON")
    return music_list
