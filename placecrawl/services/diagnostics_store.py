import logging
import mimetypes
import re
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileDiagnosticsStore:
    """Stores diagnostic blobs (raw bodies, screenshots) as files in one directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def save(self, key: str, value: Union[bytes, str], content_type: str = "application/octet-stream") -> str:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key).strip("._") or "diagnostic"
        extension = mimetypes.guess_extension(content_type.split(";")[0].strip()) or ""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{safe_key}{extension}"
        if isinstance(value, str):
            value = value.encode("utf-8")
        path.write_bytes(value or b"")
        logger.debug("Stored diagnostic %s (%s bytes) at %s", key, len(value or b""), path)
        return str(path)
