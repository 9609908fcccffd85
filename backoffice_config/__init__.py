"""
backoffice_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_settings()`` is the only way services, scripts and tests
    obtain configuration.  It loads the bundled ``defaults/settings.yaml``
    (or the file named by ``BACKOFFICE_SETTINGS``) and applies the
    ``DATABASE_URL`` environment override.

Architecture position:
    Configuration layer.  Sits beside ``backoffice_kernel``; module services
    receive parsed sections through their constructors.

Failure modes:
    - ``FileNotFoundError`` -- ``BACKOFFICE_SETTINGS`` points at a missing file.
    - ``ConfigurationError`` -- a section holds values of the wrong type.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Mapping

from backoffice_config.loader import load_yaml_file, parse_settings
from backoffice_config.schema import (
    AccessSettings,
    AssetSettings,
    BackOfficeSettings,
    DatabaseSettings,
    DepreciationSettings,
    LeaveSettings,
    MaterialRequestSettings,
)
from backoffice_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults" / "settings.yaml"

SETTINGS_PATH_ENV = "BACKOFFICE_SETTINGS"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BackOfficeSettings:
    """The ONLY public configuration entrypoint.

    Resolution order for the YAML file: ``config_path`` argument, then
    ``BACKOFFICE_SETTINGS``, then the bundled defaults.  ``DATABASE_URL``
    always wins over ``database.url``.
    """
    env = os.environ if environ is None else environ
    path = config_path or Path(env.get(SETTINGS_PATH_ENV) or DEFAULT_SETTINGS_PATH)

    settings = parse_settings(load_yaml_file(path), source=str(path))

    database_url = env.get(DATABASE_URL_ENV)
    if database_url:
        settings = replace(settings, database=replace(settings.database, url=database_url))

    _logger.info(
        "settings_loaded",
        extra={
            "source": settings.source,
            "database_backend": settings.database.url.split(":", 1)[0],
            "database_url_from_env": bool(database_url),
        },
    )
    return settings


__all__ = [
    "get_active_settings",
    "BackOfficeSettings",
    "DatabaseSettings",
    "MaterialRequestSettings",
    "DepreciationSettings",
    "AssetSettings",
    "LeaveSettings",
    "AccessSettings",
]
