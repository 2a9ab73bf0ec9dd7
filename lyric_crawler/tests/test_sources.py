import json
from types import SimpleNamespace

import pytest
from mutagen import MutagenError

from lyric_crawler.core.errors import PersistFailure
from lyric_crawler.sources import audio_files
from lyric_crawler.sources.audio_files import export_music_list, parse_file_name, parse_folder, scan_audio_files
from lyric_crawler.sources.url_generator import (
    build_search_keyword,
    clean_string,
    generate_urls,
    load_music_list,
    search_url,
)


def test_clean_string_strips_brackets_and_separators():
    assert clean_string("《七里香》 (Live)") == "七里香 Live"
    assert clean_string("【晴天】_demo-mix") == "晴天 demo mix"
    assert clean_string("  a   b ") == "a b"


def test_search_keyword_and_encoding():
    assert build_search_keyword("星晴", "周杰伦") == "星晴 周杰伦"
    assert search_url("a b!", base_url="http://x/s/") == "http://x/s/a%20b!"


def test_generate_urls_skips_incomplete_entries():
    urls = generate_urls([
        {"title": "Song", "artist": "Band"},
        {"title": "", "artist": "Band"},
        {"title": "Other", "artist": "unknown"},
    ], base_url="http://x/s/")

    assert urls == ["http://x/s/Song%20Band"]


def test_load_music_list_requires_array(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps({"title": "x"}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_music_list(path)


@pytest.mark.parametrize("stem, expected", [
    ("01. 周杰伦 - 晴天", {"artist": "周杰伦", "title": "晴天"}),
    ("Band _ Song", {"artist": "Band", "title": "Song"}),
    ("晴天【周杰伦】", {"artist": "周杰伦", "title": "晴天"}),
    ("Song (Band)", {"artist": "Band", "title": "Song"}),
    ("Song by Band", {"artist": "Band", "title": "Song"}),
    ("01-星晴", {"artist": "unknown", "title": "星晴"}),
])
def test_parse_file_name(stem, expected):
    assert parse_file_name(stem) == expected


def test_scan_and_parse_folder(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "Band - Song.MP3").write_bytes(b"x")
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "sub" / "Other - Tune.flac").write_bytes(b"xy")

    assert [p.name for p in scan_audio_files(tmp_path)] == ["Band - Song.MP3"]
    files = parse_folder(tmp_path, recursive=True)

    assert {(f.artist, f.title, f.file_extension) for f in files} == {
        ("Band", "Song", ".mp3"),
        ("Other", "Tune", ".flac"),
    }
    out = export_music_list(files, tmp_path / "out" / "music_list.json")
    assert len(json.loads(out.read_text(encoding="utf-8"))) == 2


def test_scan_missing_folder(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_audio_files(tmp_path / "nope")
    (tmp_path / "file.mp3").write_bytes(b"")
    with pytest.raises(NotADirectoryError):
        scan_audio_files(tmp_path / "file.mp3")


class FakeTagged:
    def __init__(self, tags, length=None):
        self.tags = tags
        self.info = SimpleNamespace(length=length)


def test_tags_fill_in_missing_artist(tmp_path, monkeypatch):
    song = tmp_path / "01-星晴.mp3"
    song.write_bytes(b"id3")
    tags = {"artist": ["周杰伦"], "title": ["Xing Qing"], "album": ["叶惠美"], "date": ["2003"], "genre": ["Pop"]}
    monkeypatch.setattr(audio_files, "MutagenFile", lambda path, easy=True: FakeTagged(tags, 261.5))

    parsed = audio_files.parse_audio_file(song)

    assert parsed.artist == "周杰伦"
    assert parsed.title == "星晴"
    assert (parsed.album, parsed.year, parsed.genre, parsed.duration) == ("叶惠美", "2003", "Pop", 261.5)
    assert generate_urls([parsed], base_url="http://x/s/") == ["http://x/s/%E6%98%9F%E6%99%B4%20%E5%91%A8%E6%9D%B0%E4%BC%A6"]


def test_file_name_artist_wins_over_tags(tmp_path, monkeypatch):
    song = tmp_path / "Band - Song.mp3"
    song.write_bytes(b"id3")
    monkeypatch.setattr(audio_files, "MutagenFile", lambda path, easy=True: FakeTagged({"artist": ["Other"]}))

    parsed = audio_files.parse_audio_file(song)

    assert (parsed.artist, parsed.title, parsed.duration) == ("Band", "Song", None)


def test_unreadable_tags_keep_unknown_artist(tmp_path, monkeypatch):
    song = tmp_path / "01-星晴.mp3"
    song.write_bytes(b"id3")

    def broken(path, easy=True):
        raise MutagenError("can't sync to MPEG frame")

    monkeypatch.setattr(audio_files, "MutagenFile", broken)

    assert audio_files.read_tags(song) == {}
    assert audio_files.parse_audio_file(song).artist == "unknown"
    assert audio_files.parse_audio_file(song, include_metadata=False).album is None


def test_export_music_list_failure(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(PersistFailure):
        export_music_list([], blocker / "music_list.json")
