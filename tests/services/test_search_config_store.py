import logging

import pytest

from placecrawl.exceptions import SearchConfigError
from placecrawl.services.search_config_store import SearchConfigFileStore


def test_list_and_load_all(tmp_path):
    (tmp_path / "b.yaml").write_text("search_string: bars\n")
    (tmp_path / "a.yml").write_text("search_string: cafes\nexport_place_urls: true\n")
    (tmp_path / "notes.txt").write_text("ignored")
    (tmp_path / "empty.yaml").write_text("")

    store = SearchConfigFileStore(configs_dir=str(tmp_path))
    assert store.list_config_files() == ["a.yml", "b.yaml", "empty.yaml"]

    configs = store.load_all()
    assert [c.search_key for c in configs] == ["cafes", "bars"]
    assert configs[0].export_place_urls


def test_missing_dir_and_file(tmp_path):
    store = SearchConfigFileStore(configs_dir=str(tmp_path / "nope"))
    assert store.list_config_files() == []
    assert store.load_config("missing.yaml") is None


def test_unreadable_yaml_is_skipped_with_warning(tmp_path, caplog):
    (tmp_path / "broken.yaml").write_text("search_string: [unclosed\n")
    store = SearchConfigFileStore(configs_dir=str(tmp_path))
    with caplog.at_level(logging.WARNING):
        assert store.load_config("broken.yaml") is None
    assert "Could not read search config" in caplog.text


def test_invalid_config_raises(tmp_path):
    (tmp_path / "bad.yaml").write_text("geofence: null\n")
    store = SearchConfigFileStore(configs_dir=str(tmp_path))
    with pytest.raises(SearchConfigError):
        store.load_config("bad.yaml")


def test_absolute_path(tmp_path):
    path = tmp_path / "abs.yaml"
    path.write_text("start_url: https://www.google.com/maps/search/pubs\n")
    store = SearchConfigFileStore(configs_dir="/does/not/matter")
    assert store.load_config(str(path)).config_path == "abs.yaml"
