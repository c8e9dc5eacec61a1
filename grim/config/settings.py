"""Process-level settings read from the environment.

Usage
-----
>>> import os
>>> os.environ["GRIM_CONFIG_ROOT"] = "/srv/grim"
>>> RuntimeSettings.from_env().config_root
PosixPath('/srv/grim')

"""

from __future__ import annotations

import dataclasses as dc
import os
from pathlib import Path

DEFAULT_CONFIG_ROOT = Path("/etc/grim")


@dc.dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Settings that apply to the whole dispatcher process.

    Attributes
    ----------
    config_root
        Directory holding the global ``config.json`` and repository overlays.
    log_level
        Raw log level name; normalized by :func:`grim.logging.configure_logging`.

    """

    config_root: Path = DEFAULT_CONFIG_ROOT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> RuntimeSettings:
        """Create settings from ``GRIM_CONFIG_ROOT`` and ``GRIM_LOG_LEVEL``."""
        raw_root = os.environ.get("GRIM_CONFIG_ROOT", "").strip()
        config_root = Path(raw_root) if raw_root else DEFAULT_CONFIG_ROOT
        log_level = os.environ.get("GRIM_LOG_LEVEL", "INFO")
        return cls(config_root=config_root, log_level=log_level)
