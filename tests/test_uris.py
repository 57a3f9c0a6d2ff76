from pathlib import Path

import pytest

from ra_mcp.uris import path_to_uri, uri_display_path, uri_path, uri_to_path


def test_path_to_uri_percent_encodes_spaces():
    assert path_to_uri("/tmp/a b.rs") == "file:///tmp/a%20b.rs"


def test_path_to_uri_rejects_relative_path():
    with pytest.raises(ValueError):
        path_to_uri("src/main.rs")


def test_round_trip_through_uri(tmp_path):
    target = tmp_path / "src dir" / "main.rs"
    uri = path_to_uri(target)
    assert uri.startswith("file://")
    assert uri_to_path(uri) == target


def test_uri_to_path_rejects_other_schemes():
    with pytest.raises(ValueError):
        uri_to_path("https://example.com/main.rs")


def test_uri_to_path_rejects_remote_host():
    with pytest.raises(ValueError):
        uri_to_path("file://buildhost/tmp/main.rs")


def test_uri_to_path_accepts_localhost(tmp_path):
    target = tmp_path / "lib.rs"
    local = path_to_uri(target).replace("file://", "file://localhost", 1)
    assert uri_to_path(local) == target


def test_display_path_falls_back_to_uri():
    uri = "untitled:Untitled-1"
    assert uri_display_path(uri) == uri


def test_display_path_of_file_uri(tmp_path):
    target = tmp_path / "mod.rs"
    assert uri_display_path(path_to_uri(target)) == str(target)


def test_uri_path_keeps_encoding():
    assert uri_path("file:///tmp/a%20b.rs") == "/tmp/a%20b.rs"


def test_uri_path_matches_encoded_uri_tail(tmp_path):
    uri = path_to_uri(tmp_path / "x y.rs")
    assert uri == "file://" + uri_path(uri)
    assert uri_path(uri).endswith("x%20y.rs")
    assert Path(uri_to_path(uri)).name == "x y.rs"