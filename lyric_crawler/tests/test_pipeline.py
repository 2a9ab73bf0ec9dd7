import json

from conftest import FakeCollector
from lyric_crawler.core.config import AppConfig
from lyric_crawler.core.errors import FetchExhausted
from lyric_crawler.core.models import BatchFailure, BatchOutcome, BatchSummary
from lyric_crawler.core.runner import Runner
from lyric_crawler.core.storage import OutputStore
from lyric_crawler.factory import geekpark_tasks
from lyric_crawler.main import main, print_summary
from lyric_crawler.pipeline import build_crawler, process_full_pipeline
from lyric_crawler.sources.url_generator import SearchItem
from test_gequbao import DETAIL_PAGE, DETAIL_URL, SEARCH_URL, search_page


def test_full_pipeline(tmp_path, html):
    music = tmp_path / "music"
    music.mkdir()
    (music / "周杰伦 - 星晴.mp3").write_bytes(b"id3")
    (music / "untitled.mp3").write_bytes(b"id3")  # sem artista: pulado
    config = AppConfig(output_dir=str(tmp_path / "result"))
    runner = Runner(
        FakeCollector({SEARCH_URL: html(search_page("/music/1234")), DETAIL_URL: html(DETAIL_PAGE)}),
        OutputStore(config.output_dir),
    )
    crawler = build_crawler(config, runner=runner, sleep=lambda _s: None)

    outcome = process_full_pipeline(music, config=config, crawler=crawler)

    assert outcome.summary.total == 1
    assert outcome.summary.derived_artifacts == 1
    assert (tmp_path / "result" / "lrc" / "周杰伦 - 星晴.lrc").exists()
    music_list = json.loads((tmp_path / "result" / "music_list.json").read_text(encoding="utf-8"))
    assert len(music_list) == 2
    assert outcome.summary.saved_to.startswith(str(tmp_path / "result" / "lyrics-batch-"))


def test_empty_folder(tmp_path):
    outcome = process_full_pipeline(tmp_path, config=AppConfig(output_dir=str(tmp_path / "r")))

    assert outcome.summary.total == 0
    assert not (tmp_path / "r").exists()


def test_summary_lists_failures_by_original_file(capsys):
    outcome = BatchOutcome(
        successes=[],
        failures=[BatchFailure(item=SearchItem(url="http://x/s/a", original_file="a.mp3"), error="boom")],
        summary=BatchSummary(total=1, succeeded=0, failed=1),
    )

    print_summary(outcome)

    captured = capsys.readouterr()
    assert "Total processado: 1" in captured.out
    assert "a.mp3: boom" in captured.err


def write_config(tmp_path, body=""):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        f"output_dir: {tmp_path / 'result'}\nbatch:\n  inter_item_delay: 0\n  inter_window_delay: 0\n{body}",
        encoding="utf-8",
    )
    return str(cfg)


def test_cli_missing_folder(tmp_path, capsys):
    code = main(["-c", write_config(tmp_path), "lyrics", str(tmp_path / "nope")])

    assert code == 2
    assert "[ERRO]" in capsys.readouterr().err


def test_cli_invalid_config(tmp_path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("tasks: {oops: 1}\n", encoding="utf-8")

    assert main(["-c", str(cfg), "tasks"]) == 2


def test_cli_missing_config_file(tmp_path, capsys):
    assert main(["-c", str(tmp_path / "none.yaml"), "tasks"]) == 2
    assert "não encontrado" in capsys.readouterr().err


def fake_runner(tmp_path, responses):
    return lambda config: Runner(FakeCollector(responses), OutputStore(config.output_dir))


def test_cli_runs_yaml_tasks(tmp_path, capsys, monkeypatch, json_body):
    cfg = write_config(tmp_path, """tasks:
  - name: posts
    request: {url: "http://example.test/api"}
    parse: json
    rules: {root: items, fields: {title: title}}
""")
    monkeypatch.setattr(
        "lyric_crawler.main.create_custom_runner",
        fake_runner(tmp_path, {"http://example.test/api": json_body({"items": [{"title": "星晴"}]})}),
    )

    assert main(["-c", cfg, "tasks"]) == 0
    out = capsys.readouterr().out
    assert '"title": "星晴"' in out
    assert "Sucesso: 1 | Falha: 0" in out


def test_cli_preset_reports_failures(tmp_path, capsys, monkeypatch, json_body):
    hot, home = geekpark_tasks()
    monkeypatch.setattr(
        "lyric_crawler.main.create_custom_runner",
        fake_runner(tmp_path, {
            hot.request.url: json_body({"posts": [{"id": 1, "title": "a"}]}),
            home.request.url: FetchExhausted(home.request.url, 3, ConnectionError("down")),
        }),
    )

    assert main(["-c", write_config(tmp_path), "preset", "geekpark"]) == 1
    captured = capsys.readouterr()
    assert "Sucesso: 1 | Falha: 1" in captured.out
    assert "GeekPark-Homepage" in captured.err and "down" in captured.err


def test_cli_unwritable_output_dir(tmp_path, capsys):
    music = tmp_path / "music"
    music.mkdir()
    (music / "Band - Song.mp3").write_bytes(b"id3")
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    cfg = tmp_path / "config.yaml"
    cfg.write_text(f"output_dir: {blocker / 'result'}\n", encoding="utf-8")

    assert main(["-c", str(cfg), "lyrics", str(music)]) == 1
    assert "[ERRO] Falha ao gravar" in capsys.readouterr().err
