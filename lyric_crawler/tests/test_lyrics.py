from bs4 import BeautifulSoup

from lyric_crawler.core.lyrics import (
    first_match,
    lrc_file_name,
    render_lrc,
    sanitize_file_name,
    selector_group,
    timestamp_scan,
)
from lyric_crawler.sites.gequbao import SongDetail


def test_render_lrc_omits_missing_tags():
    detail = SongDetail(detail_url="http://x", title="T", artist=None, album="", lyrics="[00:01]la")

    text = render_lrc(detail, "E")

    assert text == "[ti:T]\n[by:E]\n[from:http://x]\n\n[00:01]la"


def test_lrc_file_name():
    assert lrc_file_name("01-星晴.mp3", "a", "t") == "01-星晴.lrc"
    assert lrc_file_name("music/Song.FLAC", None, None) == "Song.lrc"
    assert lrc_file_name("notes.v2", None, None) == "notes.v2.lrc"
    assert lrc_file_name(None, 'AC/DC', 'What?  "Now"') == "ACDC - What Now.lrc"
    assert lrc_file_name(None, None, None) == "unknown - unknown.lrc"


def test_sanitize_file_name():
    assert sanitize_file_name(' a:b  |c* ') == "ab c"


def test_selector_group_takes_first_non_empty():
    soup = BeautifulSoup('<p class="a"></p><p class="b">B</p><p class="c">C</p>', "html.parser")

    assert selector_group([".a", ".b", ".c"])(soup) == "B"
    assert selector_group([".z"])(soup) is None


def test_timestamp_scan_finds_lyric_block():
    soup = BeautifulSoup(
        "<html><body><div id='wrap'><h2>Song</h2><div class='l'>"
        "<p>[00:01.00]one</p><p>[00:02.00]two</p></div></div></body></html>",
        "html.parser",
    )

    text = timestamp_scan()(soup)

    assert "[00:01.00]one" in text and "[00:02.00]two" in text
    assert "Song" not in text


def test_first_match_stops_at_first_success():
    calls = []

    def strategy(name, value):
        def run(_soup):
            calls.append(name)
            return value
        return run

    result = first_match([strategy("a", None), strategy("b", "hit"), strategy("c", "late")], None)

    assert result == "hit"
    assert calls == ["a", "b"]


def test_timestamp_scan_joins_lines_directly_under_body():
    soup = BeautifulSoup(
        "<body><h1>Song</h1><p>[00:01]one</p><p>[00:02]two</p><p>[00:03]three</p></body>",
        "html.parser",
    )

    assert timestamp_scan()(soup) == "[00:01]one\n[00:02]two\n[00:03]three"


def test_timestamp_scan_on_bare_fragment():
    soup = BeautifulSoup("<p>[00:01]one</p><p>[00:02]two</p>", "html.parser")

    assert timestamp_scan()(soup) == "[00:01]one\n[00:02]two"
    assert timestamp_scan()(BeautifulSoup("<p>no markers</p>", "html.parser")) is None
