import argparse
import json
import logging
import os
import sys
from typing import List

from lyric_crawler.core.config import AppConfig, ConfigError, load_config, load_tasks
from lyric_crawler.core.errors import PersistFailure
from lyric_crawler.core.models import BatchOutcome, Task
from lyric_crawler.core.storage import to_jsonable
from lyric_crawler.factory import PRESETS, create_custom_runner, create_scheduler
from lyric_crawler.pipeline import process_full_pipeline


def describe_failure(item) -> str:
    original = getattr(item, "original_file", None)
    if original:
        return original
    if isinstance(item, Task):
        return f"{item.name} ({item.request.url})"
    return getattr(item, "url", None) or str(item)


def print_summary(outcome: BatchOutcome) -> None:
    s = outcome.summary
    print(f"[INFO] Total processado: {s.total}")
    print(f"[INFO] Sucesso: {s.succeeded} | Falha: {s.failed} | Artefatos: {s.derived_artifacts}")
    if s.saved_to:
        print(f"[INFO] Resultados salvos em: {s.saved_to}")
    for idx, failure in enumerate(outcome.failures, start=1):
        print(f"[ERRO] {idx}. {describe_failure(failure.item)}: {failure.error}", file=sys.stderr)


def run_tasks(config: AppConfig, tasks: List[Task]) -> BatchOutcome:
    runner = create_custom_runner(config)
    scheduler = create_scheduler(config, store=runner.store)
    outcome = scheduler.run_batch(tasks, runner.run_task, describe=lambda t: t.name)
    for result in outcome.successes:
        print(json.dumps(to_jsonable(result), ensure_ascii=False, indent=2))
    return outcome


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Lyric Crawler")
    default_cfg = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config.yaml")
    ap.add_argument(
        "--config",
        "-c",
        default=default_cfg,
        help=f"Caminho para o arquivo config.yaml (default: {default_cfg})",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="log em nível DEBUG")
    sub = ap.add_subparsers(dest="command", required=True)

    lyrics = sub.add_parser("lyrics", help="busca letras para os arquivos de uma pasta")
    lyrics.add_argument("folder")
    lyrics.add_argument("--limit", type=int, default=None)
    lyrics.add_argument("--no-recursive", action="store_true")
    lyrics.add_argument("--no-save", action="store_true", help="não grava arquivos intermediários")

    sub.add_parser("tasks", help="executa as tarefas declaradas no config.yaml")

    preset = sub.add_parser("preset", help="executa um conjunto de tarefas pronto")
    preset.add_argument("name", choices=sorted(PRESETS))
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg_path = os.path.abspath(args.config)
    if not os.path.exists(cfg_path):
        print(f"[ERRO] config.yaml não encontrado em: {cfg_path}", file=sys.stderr)
        return 2

    try:
        config = load_config(cfg_path)
        print(f"[INFO] Usando config: {cfg_path}")
        if args.command == "tasks":
            tasks = load_tasks({"tasks": config.tasks})
    except ConfigError as e:
        print(f"[ERRO] Config inválido: {e}", file=sys.stderr)
        return 2

    try:
        if args.command == "lyrics":
            outcome = process_full_pipeline(
                args.folder,
                config=config,
                recursive=not args.no_recursive,
                limit=args.limit,
                save_intermediate_files=not args.no_save,
            )
        elif args.command == "tasks":
            outcome = run_tasks(config, tasks)
        else:
            outcome = run_tasks(config, PRESETS[args.name]())
    except (FileNotFoundError, NotADirectoryError) as e:
        print(f"[ERRO] {e}", file=sys.stderr)
        return 2
    except (PersistFailure, OSError) as e:
        print(f"[ERRO] Falha ao gravar resultados: {e}", file=sys.stderr)
        return 1

    print_summary(outcome)
    return 1 if outcome.failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
