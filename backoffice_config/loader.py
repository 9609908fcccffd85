"""
Settings Loader (``backoffice_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen dataclasses of
``backoffice_config.schema``.  Runtime callers go through
``backoffice_config.get_active_settings()`` instead of calling this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong value types (non-list where a list is expected, non-numeric
  limits)  -> ``ConfigurationError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from backoffice_config.schema import (
    AccessSettings,
    AssetSettings,
    BackOfficeSettings,
    DatabaseSettings,
    DepreciationSettings,
    LeaveSettings,
    MaterialRequestSettings,
)
from backoffice_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _tuple(data: dict[str, Any], key: str, default: tuple, section: str) -> tuple:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"{section}.{key} must be a list")
    return tuple(value)


def _decimal(value: Any, where: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"{where} must be numeric, got {value!r}")


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    defaults = DatabaseSettings()
    return DatabaseSettings(
        url=data.get("url", defaults.url),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
    )


def parse_material_requests(data: dict[str, Any]) -> MaterialRequestSettings:
    d = MaterialRequestSettings()
    s = "material_requests"
    return MaterialRequestSettings(
        default_series=data.get("default_series", d.default_series),
        document_number_width=int(data.get("document_number_width", d.document_number_width)),
        cross_unit_approver_ids=tuple(
            str(v) for v in _tuple(data, "cross_unit_approver_ids", d.cross_unit_approver_ids, s)
        ),
        cancellable_by_roles=_tuple(data, "cancellable_by_roles", d.cancellable_by_roles, s),
        receive_roles=_tuple(data, "receive_roles", d.receive_roles, s),
        default_page_size=int(data.get("default_page_size", d.default_page_size)),
    )


def parse_depreciation(data: dict[str, Any]) -> DepreciationSettings:
    d = DepreciationSettings()
    s = "depreciation"
    window_days = tuple(int(v) for v in _tuple(data, "window_days", d.window_days, s))
    for day in window_days:
        if not 1 <= day <= 31:
            raise ConfigurationError(f"depreciation.window_days contains invalid day {day}")
    execution_day = int(data.get("default_execution_day", d.default_execution_day))
    if not 1 <= execution_day <= 31:
        raise ConfigurationError(
            f"depreciation.default_execution_day must be 1-31, got {execution_day}"
        )
    return DepreciationSettings(
        window_days=window_days,
        calculation_roles=_tuple(data, "calculation_roles", d.calculation_roles, s),
        override_roles=_tuple(data, "override_roles", d.override_roles, s),
        eligible_statuses=_tuple(data, "eligible_statuses", d.eligible_statuses, s),
        default_execution_day=execution_day,
    )


def parse_assets(data: dict[str, Any]) -> AssetSettings:
    d = AssetSettings()
    return AssetSettings(
        require_deployment_approval=bool(
            data.get("require_deployment_approval", d.require_deployment_approval)
        ),
        transmittal_width=int(data.get("transmittal_width", d.transmittal_width)),
    )


def parse_leave(data: dict[str, Any]) -> LeaveSettings:
    d = LeaveSettings()
    s = "leave"
    allocations = data.get("default_allocations") or {}
    if not isinstance(allocations, dict):
        raise ConfigurationError("leave.default_allocations must be a mapping")
    return LeaveSettings(
        carry_over_limit=_decimal(
            data.get("carry_over_limit", d.carry_over_limit), "leave.carry_over_limit",
        ),
        carry_over_keywords=tuple(
            str(k).upper() for k in _tuple(data, "carry_over_keywords", d.carry_over_keywords, s)
        ),
        managed_keywords=tuple(
            str(k).upper() for k in _tuple(data, "managed_keywords", d.managed_keywords, s)
        ),
        excluded_employee_ids=tuple(
            str(v) for v in _tuple(data, "excluded_employee_ids", d.excluded_employee_ids, s)
        ),
        default_allocations={
            str(name).upper(): _decimal(days, f"leave.default_allocations.{name}")
            for name, days in allocations.items()
        },
        admin_roles=_tuple(data, "admin_roles", d.admin_roles, s),
        hr_approver_roles=_tuple(data, "hr_approver_roles", d.hr_approver_roles, s),
        allow_negative_balance=bool(
            data.get("allow_negative_balance", d.allow_negative_balance)
        ),
    )


def parse_access(data: dict[str, Any]) -> AccessSettings:
    d = AccessSettings()
    rounds = int(data.get("bcrypt_rounds", d.bcrypt_rounds))
    if not 4 <= rounds <= 31:
        raise ConfigurationError(f"access.bcrypt_rounds must be 4-31, got {rounds}")
    return AccessSettings(
        bcrypt_rounds=rounds,
        min_password_length=int(data.get("min_password_length", d.min_password_length)),
    )


def parse_settings(data: dict[str, Any], source: str | None = None) -> BackOfficeSettings:
    """Parse a full settings document. Missing sections fall back to defaults."""
    return BackOfficeSettings(
        database=parse_database(data.get("database") or {}),
        material_requests=parse_material_requests(data.get("material_requests") or {}),
        depreciation=parse_depreciation(data.get("depreciation") or {}),
        assets=parse_assets(data.get("assets") or {}),
        leave=parse_leave(data.get("leave") or {}),
        access=parse_access(data.get("access") or {}),
        source=source,
    )
