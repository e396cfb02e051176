import logging
import os
from typing import Optional

import yaml

from placecrawl.domain.search_config import SearchConfig
from placecrawl.services.search_config_parser import SearchConfigParser

logger = logging.getLogger(__name__)


class SearchConfigFileStore:
    """Filesystem/YAML IO for search config files.

    Responsibility: locate, read, and parse YAML files on disk.
    """

    def __init__(self, *, configs_dir: str, parser: Optional[SearchConfigParser] = None):
        self.configs_dir = configs_dir
        self.parser = parser or SearchConfigParser()

    def list_config_files(self) -> list[str]:
        if not os.path.isdir(self.configs_dir):
            return []
        return sorted(
            fname
            for fname in os.listdir(self.configs_dir)
            if fname.endswith(".yml") or fname.endswith(".yaml")
        )

    def _resolve_path(self, config_path: str) -> str:
        return config_path if os.path.isabs(config_path) else os.path.join(self.configs_dir, config_path)

    def load_yaml_dict(self, config_path: str) -> Optional[dict]:
        """Return parsed YAML dict for `config_path`, or None if missing/invalid."""
        full_path = self._resolve_path(config_path)
        if not os.path.isfile(full_path):
            return None
        try:
            with open(full_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not read search config %s: %s", full_path, e)
            return None
        return data if isinstance(data, dict) else None

    def load_config(self, config_path: str) -> Optional[SearchConfig]:
        """Load and validate one search config; None when the file is missing or not YAML.

        Raises SearchConfigError when the YAML is readable but invalid.
        """
        data = self.load_yaml_dict(config_path)
        if data is None:
            return None
        return self.parser.parse(config_path=config_path, data=data)

    def load_all(self) -> list[SearchConfig]:
        configs = []
        for fname in self.list_config_files():
            cfg = self.load_config(fname)
            if cfg is not None:
                configs.append(cfg)
        return configs
