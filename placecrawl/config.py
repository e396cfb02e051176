import os
import logging
from pathlib import Path
from typing import Optional

try:
	from dotenv import load_dotenv
except ImportError:
	logging.warning("python-dotenv not available; using environment variables only")
else:
	loaded = load_dotenv()
	if not loaded and Path(".env").exists():
		raise RuntimeError(".env file present but failed to load")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def get_str_env(name: str, default: str) -> str:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return default
	return raw


def get_optional_str_env(name: str) -> Optional[str]:
	raw = os.getenv(name)
	if raw is None or raw.strip() == "":
		return None
	return raw


def get_int_env(name: str, default: int) -> int:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return default
	try:
		return int(raw)
	except Exception:
		logging.exception("Invalid %s: %r", name, raw)
		return default


def get_optional_int_env(name: str) -> Optional[int]:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return None
	try:
		return int(raw)
	except Exception:
		logging.exception("Invalid %s: %r", name, raw)
		return None


def get_float_env(name: str, default: float) -> float:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return default
	try:
		return float(raw)
	except Exception:
		logging.exception("Invalid %s: %r", name, raw)
		return default


def get_bool_env(name: str, default: bool) -> bool:
	raw = os.getenv(name)
	if raw is None or raw.strip() == "":
		return default
	return raw.strip().lower() in _TRUE_VALUES


USER_AGENT = get_str_env("USER_AGENT", "PlaceCrawl/0.1")
DIAGNOSTICS_DIR = get_str_env("PLACECRAWL_DIAGNOSTICS_DIR", "./diagnostics")


def max_crawled_places() -> Optional[int]:
	return get_optional_int_env("PLACECRAWL_MAX_CRAWLED_PLACES")


def max_crawled_places_per_search() -> Optional[int]:
	return get_optional_int_env("PLACECRAWL_MAX_CRAWLED_PLACES_PER_SEARCH")


def wire_layout_name() -> str:
	return (get_str_env("PLACECRAWL_WIRE_LAYOUT", "2024-06") or "2024-06").strip()


def max_places_per_page() -> int:
	return get_int_env("PLACECRAWL_MAX_PLACES_PER_PAGE", 120)
