import pytest

from flowstate_ide.paths import decode_uri


def test_drive_letter_uri_becomes_windows_path() -> None:
    assert decode_uri("file:///C:/foo/bar.txt", windows=True) == "C:\\foo\\bar.txt"


def test_posix_uri_keeps_absolute_path() -> None:
    assert decode_uri("file:///home/u/bar.txt", windows=False) == "/home/u/bar.txt"


def test_percent_escapes_are_decoded() -> None:
    assert decode_uri("file:///home/u/my%20project/caf%C3%A9.md", windows=False) == "/home/u/my project/café.md"


def test_encoded_drive_colon_is_rewritten() -> None:
    assert decode_uri("file:///c%3A/Users/dev/app", windows=True) == "c:\\Users\\dev\\app"


def test_drive_rewrite_only_applies_to_windows_targets() -> None:
    assert decode_uri("file:///C:/foo", windows=False) == "/C:/foo"


def test_localhost_authority_is_dropped() -> None:
    assert decode_uri("file://localhost/etc/hosts", windows=False) == "/etc/hosts"


def test_remote_host_becomes_unc_share_on_windows() -> None:
    assert decode_uri("file://server/share/notes.txt", windows=True) == "\\\\server\\share\\notes.txt"


def test_plain_paths_pass_through() -> None:
    assert decode_uri("/srv/project", windows=False) == "/srv/project"


@pytest.mark.parametrize(
    "uri",
    [
        "",
        "   ",
        "file:///bad%zzescape",
        "file:///truncated%E0%A4%A",
        "file:///tmp/%FF",
        "trailing percent %",
        "https://example.com/index.html",
        "vscode-remote://ssh-remote+host/home/u/project",
        "file:///nul%00byte",
        None,
        42,
    ],
)
def test_undecodable_input_returns_empty_string(uri) -> None:
    assert decode_uri(uri, windows=False) == ""
    assert decode_uri(uri, windows=True) == ""


def test_decode_never_raises_on_odd_text() -> None:
    samples = ["file://", "file:///", "%", "%%", "file:///%2", "\x00", "C:", "::::", "file:////double"]
    for sample in samples:
        assert isinstance(decode_uri(sample, windows=True), str)
        assert isinstance(decode_uri(sample, windows=False), str)
