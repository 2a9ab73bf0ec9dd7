import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from ..collectors.http_requests import DEFAULT_HEADERS, ClientConfig
from .errors import ConfigError
from .models import (
    ExtractionRules,
    FetchOptions,
    FieldRule,
    ParseMode,
    PathRule,
    PersistConfig,
    RequestSpec,
    SelectorRule,
    Task,
)
from .scheduler import BatchSettings

ENV_OUTPUT_DIR = "LYRIC_CRAWLER_OUTPUT_DIR"
ENV_TIMEOUT = "LYRIC_CRAWLER_TIMEOUT"
ENV_RETRY_TIMES = "LYRIC_CRAWLER_RETRY_TIMES"


@dataclass(frozen=True)
class GequbaoSettings:
    base_url: str = "https://www.gequbao.com"
    detail_delay: float = 1.0
    engine_id: str = "GequbaoCrawler"


@dataclass(frozen=True)
class AppConfig:
    output_dir: str = "./result"
    client: ClientConfig = field(default_factory=ClientConfig)
    batch: BatchSettings = field(default_factory=BatchSettings)
    gequbao: GequbaoSettings = field(default_factory=GequbaoSettings)
    tasks: List[Dict[str, Any]] = field(default_factory=list)


def _section(cfg: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    node: Any = cfg
    for key in keys:
        node = (node or {}).get(key) if isinstance(node, dict) else None
    if node is None:
        return {}
    if not isinstance(node, dict):
        raise ConfigError(f"A chave '{'.'.join(keys)}' deve ser um objeto.")
    return node


def _number(raw: Any, key: str, kind=float):
    try:
        return kind(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Valor inválido para '{key}': {raw!r}") from exc


def build_config(cfg: Optional[Dict[str, Any]], environ: Optional[Dict[str, str]] = None) -> AppConfig:
    if cfg is None:
        cfg = {}
    if not isinstance(cfg, dict):
        raise ConfigError("Config YAML deve ser um objeto no nível raiz.")
    environ = os.environ if environ is None else environ

    http = _section(cfg, "collectors", "http")
    headers = _section(cfg, "collectors", "http", "default_headers")
    options = FetchOptions(
        timeout=_number(environ.get(ENV_TIMEOUT, http.get("timeout", 30)), "collectors.http.timeout"),
        retry_times=_number(environ.get(ENV_RETRY_TIMES, http.get("retry_times", 3)), "collectors.http.retry_times", int),
        retry_delay=_number(http.get("retry_delay", 1.0), "collectors.http.retry_delay"),
    )
    if options.retry_times < 1:
        raise ConfigError("'collectors.http.retry_times' deve ser >= 1.")

    batch = _section(cfg, "batch")
    batch_settings = BatchSettings(
        max_concurrent=_number(batch.get("max_concurrent", 3), "batch.max_concurrent", int),
        inter_item_delay=_number(batch.get("inter_item_delay", 1.0), "batch.inter_item_delay"),
        inter_window_delay=_number(batch.get("inter_window_delay", 2.0), "batch.inter_window_delay"),
    )
    if batch_settings.max_concurrent < 1:
        raise ConfigError("'batch.max_concurrent' deve ser >= 1.")

    site = _section(cfg, "gequbao")
    gequbao = GequbaoSettings(
        base_url=site.get("base_url", GequbaoSettings.base_url),
        detail_delay=_number(site.get("detail_delay", 1.0), "gequbao.detail_delay"),
        engine_id=site.get("engine_id", GequbaoSettings.engine_id),
    )

    tasks = cfg.get("tasks") or []
    if not isinstance(tasks, list):
        raise ConfigError("A chave 'tasks' deve ser uma lista de tarefas.")

    return AppConfig(
        output_dir=environ.get(ENV_OUTPUT_DIR, cfg.get("output_dir", "./result")),
        client=ClientConfig(
            default_headers={**DEFAULT_HEADERS, **{str(k): str(v) for k, v in headers.items()}},
            options=options,
        ),
        batch=batch_settings,
        gequbao=gequbao,
        tasks=tasks,
    )


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Lê o YAML (quando existir) e aplica overrides do ambiente / .env.
    Sem arquivo, devolve a configuração padrão.
    """
    load_dotenv()
    if path is None or not Path(path).exists():
        return build_config({})
    with open(path, "r", encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Falha ao parsear YAML do config: {e}") from e
    return build_config(cfg)


# ---------------------- tarefas declarativas ----------------------

def rule_from_config(name: str, raw: Any) -> FieldRule:
    if isinstance(raw, str):
        return PathRule(path=raw)
    if isinstance(raw, dict):
        if "path" in raw:
            return PathRule(path=raw["path"])
        if "selector" in raw or "attr" in raw or "attribute" in raw:
            return SelectorRule(selector=raw.get("selector"), attribute=raw.get("attr", raw.get("attribute")))
    raise ConfigError(f"Regra inválida para o campo '{name}': {raw!r}")


def load_tasks(cfg: Dict[str, Any]) -> List[Task]:
    """
    Constrói a lista de Tasks a partir do YAML.
    'parse' é opcional (default: auto) e 'save' só existe quando a tarefa
    deve gravar o resultado.
    """
    if cfg is None:
        raise ConfigError("Arquivo YAML vazio ou inválido (yaml.safe_load retornou None).")

    if "tasks" not in cfg:
        raise ConfigError("A chave obrigatória 'tasks' não foi encontrada no config.yaml.")

    if not isinstance(cfg["tasks"], list):
        raise ConfigError("A chave 'tasks' deve ser uma lista de tarefas.")

    tasks: List[Task] = []

    for idx, t in enumerate(cfg["tasks"], start=1):
        if not isinstance(t, dict):
            raise ConfigError(f"Tarefa #{idx} não é um objeto YAML (dict).")

        for req_key in ("name", "request", "rules"):
            if req_key not in t:
                raise ConfigError(f"Tarefa '{t.get('name', f'#{idx}')}' sem a chave obrigatória: {req_key}")

        request = t["request"]
        if not isinstance(request, dict) or "url" not in request:
            raise ConfigError(f"Tarefa '{t['name']}': 'request.url' é obrigatório.")

        rules = t["rules"]
        if not isinstance(rules, dict) or not isinstance(rules.get("fields"), dict) or not rules["fields"]:
            raise ConfigError(f"Tarefa '{t['name']}': 'rules.fields' deve ser um objeto não vazio.")

        try:
            mode = ParseMode(t.get("parse", "auto"))
        except ValueError as exc:
            raise ConfigError(f"Tarefa '{t['name']}': parse desconhecido {t.get('parse')!r}") from exc

        save = t.get("save")
        persist = PersistConfig(filename=save.get("filename", f"{t['name']}-{{timestamp}}")) if isinstance(save, dict) else None

        tasks.append(
            Task(
                name=t["name"],
                request=RequestSpec(
                    url=request["url"],
                    method=str(request.get("method", "GET")).upper(),
                    headers=dict(request.get("headers") or {}),
                    body=request.get("body"),
                ),
                rules=ExtractionRules(
                    root=rules.get("root"),
                    fields={key: rule_from_config(key, raw) for key, raw in rules["fields"].items()},
                ),
                parse_mode=mode,
                persist=persist,
            )
        )

    return tasks
