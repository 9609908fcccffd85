"""Tests for backoffice_config: bundled defaults, overrides and validation."""

from decimal import Decimal

import pytest
import yaml

from backoffice_config import get_active_settings
from backoffice_config.loader import parse_settings
from backoffice_config.schema import BackOfficeSettings
from backoffice_kernel.exceptions import ConfigurationError


class TestBundledDefaults:
    def test_loads_without_environment(self):
        settings = get_active_settings(environ={})
        assert settings.source.endswith("settings.yaml")
        assert settings.database.url.startswith("postgresql://")

    def test_material_request_section(self):
        mr = get_active_settings(environ={}).material_requests
        assert mr.default_series == "MRS"
        assert mr.cross_unit_approver_ids == ("C-002",)
        assert "STOCKROOM" in mr.receive_roles

    def test_leave_section(self):
        leave = get_active_settings(environ={}).leave
        assert leave.carry_over_limit == Decimal("20")
        assert leave.excluded_employee_ids == ("T-123", "admin")
        assert leave.default_allocations["EMERGENCY LEAVE"] == Decimal("3")

    def test_depreciation_section(self):
        dep = get_active_settings(environ={}).depreciation
        assert dep.window_days == (30, 31)
        assert dep.default_execution_day == 30


class TestOverrides:
    def test_database_url_env_wins(self):
        settings = get_active_settings(environ={"DATABASE_URL": "sqlite://"})
        assert settings.database.url == "sqlite://"
        assert settings.database.pool_size == 10

    def test_settings_path_env(self, tmp_path):
        path = tmp_path / "site.yaml"
        path.write_text(yaml.safe_dump({
            "material_requests": {"default_series": "REQ"},
            "assets": {"require_deployment_approval": True},
        }))
        settings = get_active_settings(environ={"BACKOFFICE_SETTINGS": str(path)})
        assert settings.source == str(path)
        assert settings.material_requests.default_series == "REQ"
        assert settings.assets.require_deployment_approval is True
        # sections absent from the file take schema defaults
        assert settings.database.url == "sqlite://"

    def test_explicit_path_beats_env(self, tmp_path):
        chosen = tmp_path / "chosen.yaml"
        chosen.write_text("leave:\n  carry_over_limit: 5\n")
        ignored = tmp_path / "ignored.yaml"
        ignored.write_text("leave:\n  carry_over_limit: 99\n")
        settings = get_active_settings(
            config_path=chosen, environ={"BACKOFFICE_SETTINGS": str(ignored)},
        )
        assert settings.leave.carry_over_limit == Decimal("5")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings(config_path=tmp_path / "nope.yaml", environ={})

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        settings = get_active_settings(config_path=path, environ={})
        assert settings.leave == BackOfficeSettings().leave


class TestParseSettings:
    def test_keywords_uppercased(self):
        settings = parse_settings({
            "leave": {
                "carry_over_keywords": ["vacation"],
                "managed_keywords": ["cto"],
                "default_allocations": {"sick leave": 10},
            },
        })
        assert settings.leave.carry_over_keywords == ("VACATION",)
        assert settings.leave.managed_keywords == ("CTO",)
        assert settings.leave.default_allocations == {"SICK LEAVE": Decimal("10")}

    @pytest.mark.parametrize(
        "data",
        [
            {"material_requests": {"receive_roles": "ADMIN"}},
            {"depreciation": {"window_days": [0]}},
            {"depreciation": {"window_days": [32]}},
            {"depreciation": {"default_execution_day": 0}},
            {"leave": {"default_allocations": ["VACATION"]}},
            {"leave": {"carry_over_limit": "lots"}},
            {"access": {"bcrypt_rounds": 3}},
            {"access": {"bcrypt_rounds": 32}},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ConfigurationError):
            parse_settings(data)

    def test_error_message_names_setting(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_settings({"access": {"bcrypt_rounds": 2}})
        assert "access.bcrypt_rounds" in str(exc_info.value)
        assert str(exc_info.value).startswith("Invalid configuration:")
