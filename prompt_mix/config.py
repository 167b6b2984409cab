"""
Runtime configuration for the Prompt Mix Library.

All values come from environment variables; nothing is read from disk.

  PROMPT_MIX_DATA_DIR      directory holding the storage slot file (default: <repo>/.data)
  PROMPT_MIX_STORAGE_FILE  slot file name inside the data dir (default: local_storage.json)
  PROMPT_MIX_HOST          HTTP bind address (default: 127.0.0.1)
  PROMPT_MIX_PORT          HTTP port (default: 8888)
  PROMPT_MIX_LOG_LEVEL     loguru level for the CLI (default: WARNING)
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

_REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = _REPO_ROOT / ".data"
DEFAULT_STORAGE_FILE = "local_storage.json"


class Settings(BaseModel):
    data_dir: Path = Field(DEFAULT_DATA_DIR, description="Directory for the storage slot file")
    storage_file: str = Field(DEFAULT_STORAGE_FILE, description="Slot file name")
    host: str = "127.0.0.1"
    port: int = Field(8888, ge=1, le=65535)
    log_level: str = "WARNING"

    @property
    def storage_path(self) -> Path:
        return self.data_dir / self.storage_file

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        values = {}
        if env.get("PROMPT_MIX_DATA_DIR"):
            values["data_dir"] = Path(env["PROMPT_MIX_DATA_DIR"]).expanduser()
        if env.get("PROMPT_MIX_STORAGE_FILE"):
            values["storage_file"] = env["PROMPT_MIX_STORAGE_FILE"]
        if env.get("PROMPT_MIX_HOST"):
            values["host"] = env["PROMPT_MIX_HOST"]
        if env.get("PROMPT_MIX_PORT"):
            values["port"] = int(env["PROMPT_MIX_PORT"])
        if env.get("PROMPT_MIX_LOG_LEVEL"):
            values["log_level"] = env["PROMPT_MIX_LOG_LEVEL"].upper()
        return cls(**values)
