import json
import logging
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from mutagen import File as MutagenFile
from mutagen import MutagenError

from ..core.errors import PersistFailure
from ..core.lyrics import AUDIO_EXTENSIONS

logger = logging.getLogger(__name__)

UNKNOWN_ARTIST = "unknown"

# (padrão, grupo do artista, grupo do título)
SEPARATOR_PATTERNS = [
    (re.compile(r"^(.+?)\s*-\s*(.+?)$"), 1, 2),        # artista - título
    (re.compile(r"^(.+?)\s*－\s*(.+?)$"), 1, 2),       # travessão largo
    (re.compile(r"^(.+?)\s*_\s*(.+?)$"), 1, 2),        # artista _ título
    (re.compile(r"^(.+?)\s*【(.+?)】$"), 2, 1),         # título【artista】
    (re.compile(r"^(.+?)\s*\[(.+?)\]$"), 2, 1),        # título[artista]
    (re.compile(r"^(.+?)\s*\((.+?)\)$"), 2, 1),        # título(artista)
    (re.compile(r"^(.+?)\s*by\s*(.+?)$", re.I), 2, 1),  # título by artista
]
_TRACK_NUMBER_RE = re.compile(r"^\d+[.\-\s]*")


@dataclass
class AudioFile:
    file_path: str
    file_name: str
    file_size: int
    file_extension: str
    title: str
    artist: str
    album: Optional[str] = None
    year: Optional[str] = None
    genre: Optional[str] = None
    duration: Optional[float] = None


def parse_file_name(stem: str) -> dict:
    clean = re.sub(r"\s+", " ", _TRACK_NUMBER_RE.sub("", stem)).strip()
    for pattern, artist_idx, title_idx in SEPARATOR_PATTERNS:
        m = pattern.match(clean)
        if m:
            return {
                "title": m.group(title_idx).strip() or clean,
                "artist": m.group(artist_idx).strip() or UNKNOWN_ARTIST,
            }
    return {"title": clean, "artist": UNKNOWN_ARTIST}


def scan_audio_files(folder: Union[str, Path], recursive: bool = False) -> List[Path]:
    folder = Path(folder)
    if not folder.exists():
        raise FileNotFoundError(f"Pasta não encontrada: {folder}")
    if not folder.is_dir():
        raise NotADirectoryError(f"O caminho não é uma pasta: {folder}")
    candidates = folder.rglob("*") if recursive else folder.iterdir()
    return sorted(p for p in candidates if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS)


def _first_tag(tags, *keys: str) -> Optional[str]:
    for key in keys:
        values = tags.get(key)
        if values:
            if isinstance(values, list):
                return ", ".join(str(v) for v in values)
            return str(values)
    return None


def read_tags(path: Union[str, Path]) -> Dict[str, Any]:
    """Tags embutidas (title, artist, album, year, genre, duration); vazio se ilegível."""
    try:
        audio = MutagenFile(path, easy=True)
    except (MutagenError, OSError) as exc:
        logger.debug("sem tags em %s: %s", path, exc)
        return {}
    if audio is None:
        return {}
    meta: Dict[str, Any] = {}
    if audio.tags:
        meta = {
            "title": _first_tag(audio.tags, "title"),
            "artist": _first_tag(audio.tags, "artist", "albumartist"),
            "album": _first_tag(audio.tags, "album"),
            "year": _first_tag(audio.tags, "date", "year"),
            "genre": _first_tag(audio.tags, "genre"),
        }
    info = getattr(audio, "info", None)
    if info is not None and getattr(info, "length", None):
        meta["duration"] = info.length
    return meta


def parse_audio_file(path: Path, include_metadata: bool = True) -> AudioFile:
    parsed = parse_file_name(path.stem)
    meta = read_tags(path) if include_metadata else {}
    artist = parsed["artist"]
    if artist == UNKNOWN_ARTIST:
        artist = meta.get("artist") or UNKNOWN_ARTIST
    return AudioFile(
        file_path=str(path),
        file_name=path.name,
        file_size=path.stat().st_size,
        file_extension=path.suffix.lower(),
        title=parsed["title"] or meta.get("title") or path.stem,
        artist=artist,
        album=meta.get("album"),
        year=meta.get("year"),
        genre=meta.get("genre"),
        duration=meta.get("duration"),
    )


def parse_folder(folder: Union[str, Path], recursive: bool = False, include_metadata: bool = True) -> List[AudioFile]:
    files = []
    for path in scan_audio_files(folder, recursive):
        try:
            files.append(parse_audio_file(path, include_metadata=include_metadata))
        except OSError as exc:
            logger.warning("falha ao ler %s: %s", path, exc)
    return files


def export_music_list(files: List[AudioFile], output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump([asdict(item) for item in files], f, ensure_ascii=False, indent=2)
    except OSError as exc:
        raise PersistFailure(output_path, exc) from exc
    logger.info("lista de músicas exportada para %s", output_path)
    return output_path
