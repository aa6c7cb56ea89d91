"""User configuration for godotup."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError

from .exceptions import ConfigError

CONFIG_FILENAME = "config.yml"
REGISTRY_FILENAME = "versions.yml"


def default_data_dir() -> Path:
    """Application data directory, ``$GODOTUP_HOME`` or ``~/.godotup``."""
    override = os.environ.get("GODOTUP_HOME")
    return Path(override) if override else Path.home() / ".godotup"


class Config(BaseModel):
    versionlist_proxy_url: str = "https://github.com/"
    versionlist_path: str = "godotup/versionlist/raw/main/versions.yml"
    download_proxy_url: str = "https://downloads.tuxfamily.org/godotengine/"
    set_godot_bin: bool = True
    set_godot4_bin: bool = True
    data_dir: Optional[Path] = None
    install_root: Optional[Path] = None
    request_timeout: float = 60
    chunk_size: int = 64 * 1024

    def model_post_init(self, __context) -> None:
        self.data_dir = (self.data_dir or default_data_dir()).expanduser()
        self.install_root = (self.install_root or self.data_dir / "versions").expanduser()

    @property
    def versionlist_url(self) -> str:
        return self.versionlist_proxy_url.rstrip("/") + "/" + self.versionlist_path.lstrip("/")

    @property
    def registry_path(self) -> Path:
        return self.data_dir / REGISTRY_FILENAME

    @property
    def downloads_dir(self) -> Path:
        return self.data_dir / "downloads"


def load_config(data_dir: Optional[Path] = None) -> Config:
    """Load ``config.yml`` from the data directory; defaults when it does not exist."""
    data_dir = data_dir or default_data_dir()
    path = data_dir / CONFIG_FILENAME
    if not path.exists():
        return Config(data_dir=data_dir)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(path, str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError(path, "expected a mapping at the top level")

    data.setdefault("data_dir", data_dir)
    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigError(path, str(e)) from e
