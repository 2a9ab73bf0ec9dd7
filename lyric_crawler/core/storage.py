import dataclasses
import json
import logging
import time
from pathlib import Path
from typing import Any, Optional, Union

from .errors import PersistFailure

logger = logging.getLogger(__name__)

TIMESTAMP_TOKEN = "{timestamp}"


def epoch_millis() -> str:
    return str(int(time.time() * 1000))


def resolve_filename(template: str, timestamp: Optional[str] = None) -> str:
    timestamp = timestamp or epoch_millis()
    if TIMESTAMP_TOKEN in template:
        return template.replace(TIMESTAMP_TOKEN, timestamp)
    return f"{template}-{timestamp}.json"


def to_jsonable(data: Any) -> Any:
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.asdict(data)
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    return data


class OutputStore:
    """Raiz de saída compartilhada; cada gravação é um arquivo independente."""

    def __init__(self, root: Union[str, Path] = "./result"):
        self.root = Path(root)

    def _write(self, path: Path, content: str) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise PersistFailure(path, exc) from exc
        logger.debug("gravado %s", path)
        return path

    def save_records(self, data: Any, template: str, timestamp: Optional[str] = None) -> Path:
        path = self.root / resolve_filename(template, timestamp)
        content = json.dumps(to_jsonable(data), ensure_ascii=False, indent=2, default=str)
        return self._write(path, content)

    def write_text(self, subdir: Optional[str], filename: str, content: str) -> Path:
        base = self.root / subdir if subdir else self.root
        return self._write(base / filename, content)
