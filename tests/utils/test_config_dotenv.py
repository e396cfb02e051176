import importlib
import sys
import builtins
import types
import logging
import os
from pathlib import Path

import pytest


def _reload_config():
    sys.modules.pop("placecrawl.config", None)
    return importlib.import_module("placecrawl.config")


def test_missing_dotenv_logs_warning(monkeypatch, caplog):
    orig_import = builtins.__import__

    def fake_import(name, globals=None, locals=None, fromlist=(), level=0):
        if name == "dotenv" or name.startswith("dotenv."):
            raise ImportError
        return orig_import(name, globals, locals, fromlist, level)

    monkeypatch.setattr(builtins, "__import__", fake_import)
    caplog.set_level(logging.WARNING)
    cfg = _reload_config()
    assert "python-dotenv not available" in caplog.text

    # environment fallback works
    monkeypatch.setenv("PLACECRAWL_MAX_CRAWLED_PLACES", "25")
    cfg = _reload_config()
    assert cfg.max_crawled_places() == 25


def test_dotenv_present_but_fails_to_load(monkeypatch, tmp_path):
    tmp_path.joinpath(".env").write_text("USER_AGENT=FromFile")
    monkeypatch.chdir(tmp_path)

    fake = types.SimpleNamespace(load_dotenv=lambda: False)
    monkeypatch.setitem(sys.modules, "dotenv", fake)
    with pytest.raises(RuntimeError):
        _reload_config()


def test_dotenv_loads_sets_variables(monkeypatch, tmp_path):
    tmp_path.joinpath(".env").write_text("PLACECRAWL_WIRE_LAYOUT= 2024-06 \nPLACECRAWL_MAX_PLACES_PER_PAGE=80")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PLACECRAWL_WIRE_LAYOUT", raising=False)
    monkeypatch.delenv("PLACECRAWL_MAX_PLACES_PER_PAGE", raising=False)

    def fake_load():
        # emulate dotenv behavior: read .env and set os.environ
        p = Path(".env")
        for line in p.read_text().splitlines():
            if "=" in line:
                k, v = line.split("=", 1)
                os.environ[k] = v
        return True

    fake = types.SimpleNamespace(load_dotenv=fake_load)
    monkeypatch.setitem(sys.modules, "dotenv", fake)
    cfg = _reload_config()
    try:
        assert cfg.wire_layout_name() == "2024-06"
        assert cfg.max_places_per_page() == 80
    finally:
        os.environ.pop("PLACECRAWL_WIRE_LAYOUT", None)
        os.environ.pop("PLACECRAWL_MAX_PLACES_PER_PAGE", None)


def test_env_helpers_fall_back_on_bad_values(monkeypatch):
    cfg = _reload_config()
    monkeypatch.setenv("PLACECRAWL_MAX_PLACES_PER_PAGE", "lots")
    assert cfg.max_places_per_page() == 120
    monkeypatch.setenv("PLACECRAWL_MAX_CRAWLED_PLACES", "")
    assert cfg.max_crawled_places() is None
    monkeypatch.setenv("FLAG", " Yes ")
    assert cfg.get_bool_env("FLAG", False) is True
    monkeypatch.setenv("RATE", "0.25")
    assert cfg.get_float_env("RATE", 1.0) == 0.25
