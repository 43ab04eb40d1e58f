# infrastructure/config/yaml_config_loader.py
"""
YAML config file (--config). Keys are long option names with "_" instead
of "-"; command line values win over the file.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from domain.exceptions import ConfigError


class ConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_agent: Optional[str] = None
    referer: Optional[str] = None
    header: List[str] = Field(default_factory=list)
    user: Optional[str] = None
    location: Optional[bool] = None
    location_trusted: Optional[bool] = None
    max_redirs: Optional[int] = Field(default=None, ge=0)
    compressed: Optional[bool] = None
    fail: Optional[bool] = None
    fail_with_body: Optional[bool] = None
    include: Optional[bool] = None
    retry: Optional[int] = Field(default=None, ge=0)
    retry_delay: Optional[float] = Field(default=None, ge=0)
    retry_max_time: Optional[float] = Field(default=None, ge=0)
    retry_all_errors: Optional[bool] = None
    retry_connrefused: Optional[bool] = None
    max_time: Optional[float] = Field(default=None, gt=0)
    connect_timeout: Optional[float] = Field(default=None, gt=0)
    limit_rate: Optional[Union[int, str]] = None
    max_filesize: Optional[Union[int, str]] = None
    cookie: List[str] = Field(default_factory=list)
    cookie_jar: Optional[str] = None
    junk_session_cookies: Optional[bool] = None
    proxy: Optional[str] = None
    insecure: Optional[bool] = None
    cacert: Optional[str] = None
    output_dir: Optional[str] = None
    create_dirs: Optional[bool] = None
    remove_on_error: Optional[bool] = None
    verbose: Optional[bool] = None
    silent: Optional[bool] = None


class YamlConfigLoader:
    def load_from_file(self, path: str) -> ConfigFile:
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"Config file not found: {path}")

        with p.open("r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Config file is not valid YAML: {path}: {e}") from e

        if data is None:
            return ConfigFile()
        if not isinstance(data, dict):
            raise ConfigError(f"Config file is invalid: {path}")
        return self.load_from_dict(data)

    def load_from_dict(self, data: Dict[str, Any]) -> ConfigFile:
        normalized = {str(k).replace("-", "_"): v for k, v in data.items()}
        try:
            return ConfigFile(**normalized)
        except ValidationError as e:
            raise ConfigError(f"Invalid config: {e}") from e
