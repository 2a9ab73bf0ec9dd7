import logging
import re
from pathlib import PurePath
from typing import Callable, Iterable, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import NavigableString

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = (".mp3", ".wav", ".flac", ".m4a", ".aac", ".ogg", ".wma")
LRC_EXTENSION = ".lrc"
TIMESTAMP_RE = re.compile(r"\[\d{1,2}:\d{2}(?:[.:]\d{1,3})?\]")
_ILLEGAL_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
_SPACES_RE = re.compile(r"\s+")
_DOCUMENT_LEVEL = ("body", "html", "[document]")

Strategy = Callable[[BeautifulSoup], Optional[str]]


# ---------------------- estratégias de fallback ----------------------

def selector_group(selectors: Sequence[str]) -> Strategy:
    """Primeiro seletor do grupo com texto não vazio."""
    def strategy(soup: BeautifulSoup) -> Optional[str]:
        for selector in selectors:
            el = soup.select_one(selector)
            text = el.get_text().strip() if el is not None else ""
            if text:
                logger.debug("letra extraída de %s", selector)
                return text
        return None
    return strategy


def _marker_count(el) -> int:
    return len(TIMESTAMP_RE.findall(el.get_text()))


def timestamp_scan(pattern: re.Pattern = TIMESTAMP_RE) -> Strategy:
    """Procura o menor bloco que reúne as linhas com marcação [mm:ss]."""
    def strategy(soup: BeautifulSoup) -> Optional[str]:
        hit = soup.find(string=lambda s: isinstance(s, NavigableString) and pattern.search(s))
        if hit is None or hit.parent is None:
            return None
        block = hit.parent
        count = _marker_count(block)
        while block.parent is not None:
            parent = block.parent
            parent_count = _marker_count(parent)
            if parent_count <= count:
                break
            if parent.name in _DOCUMENT_LEVEL:
                # linhas soltas direto no body: junta só os filhos marcados
                lines = [
                    child.get_text().strip()
                    for child in parent.find_all(recursive=False)
                    if pattern.search(child.get_text())
                ]
                return "\n".join(lines) or None
            block, count = parent, parent_count
        text = block.get_text().strip()
        return text or None
    return strategy


def first_match(strategies: Iterable[Strategy], soup: BeautifulSoup) -> Optional[str]:
    for strategy in strategies:
        text = strategy(soup)
        if text:
            return text
    return None


# ---------------------- arquivo LRC ----------------------

def render_lrc(detail, engine_id: Optional[str] = None) -> str:
    """
    Tags de cabeçalho (só as preenchidas), uma linha em branco e a letra.
    ``detail`` precisa de title, artist, album, lyrics e detail_url.
    """
    tags = [
        ("ti", detail.title),
        ("ar", detail.artist),
        ("al", detail.album),
        ("by", engine_id),
        ("from", detail.detail_url),
    ]
    header = "".join(f"[{tag}:{value}]\n" for tag, value in tags if value)
    return f"{header}\n{detail.lyrics}"


def sanitize_file_name(name: str) -> str:
    return _SPACES_RE.sub(" ", _ILLEGAL_CHARS_RE.sub("", name)).strip()


def lrc_file_name(original_file: Optional[str], artist: Optional[str], title: Optional[str]) -> str:
    if original_file:
        name = PurePath(original_file).name
        stem, dot, ext = name.rpartition(".")
        if dot and f".{ext.lower()}" in AUDIO_EXTENSIONS:
            name = stem
        return f"{name}{LRC_EXTENSION}"
    slug = sanitize_file_name(f"{artist or 'unknown'} - {title or 'unknown'}")
    return f"{slug}{LRC_EXTENSION}"
