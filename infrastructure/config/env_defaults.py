# infrastructure/config/env_defaults.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values

ENV_PREFIX = "WEBFETCH_"
KNOWN_KEYS = ("USER_AGENT", "PROXY", "USER", "CACERT")


class EnvDefaultsProvider:
    """
    Option defaults from the environment and a .env file in the working
    directory. Real environment variables win over the .env file.
    """

    def __init__(self, env_file: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        path = env_file if env_file is not None else Path.cwd() / ".env"
        values: Dict[str, Optional[str]] = dict(dotenv_values(path)) if path.exists() else {}
        values.update(os.environ if environ is None else environ)
        self._values = values

    def get(self) -> Dict[str, str]:
        """{"user_agent": ..., "proxy": ...} for the WEBFETCH_* keys that are set."""
        out: Dict[str, str] = {}
        for key in KNOWN_KEYS:
            value = self._values.get(ENV_PREFIX + key)
            if value:
                out[key.lower()] = value
        return out
