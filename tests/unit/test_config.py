import dataclasses
from pathlib import Path

import pytest
import yaml

from salescheck.config import ConfigLoader, Settings, load_settings
from salescheck.constants import Role


class TestConfigLoader:
    def test_load_config_missing_file_returns_empty(self) -> None:
        loader = ConfigLoader()
        assert loader.load_config("/nonexistent/path/salescheck.yaml") == {}

    def test_load_config_reads_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "salescheck.yaml"
        config_file.write_text(
            yaml.dump({"base_url": "http://staging:9000", "headless": False})
        )

        config = ConfigLoader().load_config(str(config_file))

        assert config["base_url"] == "http://staging:9000"
        assert config["headless"] is False

    def test_load_config_from_env_variable(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(yaml.dump({"api_sell": "/api/v2/sales"}))
        monkeypatch.setenv("SALESCHECK_CONFIG", str(config_file))

        config = ConfigLoader().load_config()

        assert config["api_sell"] == "/api/v2/sales"

    def test_load_config_resolves_interpolation(self, tmp_path: Path) -> None:
        config_file = tmp_path / "salescheck.yaml"
        config_file.write_text(
            "api_sales_all: /api/sales\napi_sales_page: ${api_sales_all}/page\n"
        )

        config = ConfigLoader().load_config(str(config_file))

        assert config["api_sales_page"] == "/api/sales/page"

    def test_load_config_undefined_interpolation_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "salescheck.yaml"
        config_file.write_text("api_sales_page: ${missing}/page\n")

        with pytest.raises(ValueError, match="resolution"):
            ConfigLoader().load_config(str(config_file))

    def test_merge_uses_built_in_defaults(self) -> None:
        merged = ConfigLoader().merge({}, environ={})

        assert merged["base_url"] == "http://localhost:8080"
        assert merged["api_login"] == "/api/auth/login"
        assert merged["api_get_plant"] == "/api/plants/{id}"
        assert merged["api_sales_page"] == "/api/sales/page"
        assert merged["headless"] is True

    def test_env_overrides_file_values(self) -> None:
        merged = ConfigLoader().merge(
            {"base_url": "http://from-file:8080"},
            environ={"BASE_URL": "http://from-env:8080", "API_SALES_PAGE": "/p"},
        )

        assert merged["base_url"] == "http://from-env:8080"
        assert merged["api_sales_page"] == "/p"

    def test_empty_env_value_is_ignored(self) -> None:
        merged = ConfigLoader().merge({}, environ={"BASE_URL": ""})
        assert merged["base_url"] == "http://localhost:8080"

    def test_headless_env_is_coerced(self) -> None:
        merged = ConfigLoader().merge({}, environ={"PLAYWRIGHT_HEADLESS": "false"})
        assert merged["headless"] is False

    def test_request_timeout_env_must_be_numeric(self) -> None:
        with pytest.raises(ValueError, match="request_timeout"):
            ConfigLoader().merge({}, environ={"SALESCHECK_REQUEST_TIMEOUT": "soon"})

    def test_unknown_keys_are_ignored(self) -> None:
        merged = ConfigLoader().merge({"colour": "green"}, environ={})
        assert "colour" not in merged

    def test_validate_rejects_non_http_base_url(self) -> None:
        loader = ConfigLoader()
        config = loader.merge({"base_url": "localhost:8080"}, environ={})

        with pytest.raises(ValueError, match="base_url"):
            loader.validate_config(config)

    def test_validate_requires_id_placeholder(self) -> None:
        loader = ConfigLoader()
        config = loader.merge({"api_sale_by_id": "/api/sales"}, environ={})

        with pytest.raises(ValueError, match="api_sale_by_id"):
            loader.validate_config(config)

    def test_validate_rejects_other_template_fields(self) -> None:
        loader = ConfigLoader()
        config = loader.merge(
            {}, environ={"API_GET_PLANT": "/api/plants/{plantId}/stock/{id}"}
        )

        with pytest.raises(ValueError, match=r"only use the \{id\} placeholder"):
            loader.validate_config(config)

    def test_validate_rejects_malformed_template(self) -> None:
        loader = ConfigLoader()
        config = loader.merge({"api_sale_by_id": "/api/sales/{id"}, environ={})

        with pytest.raises(ValueError, match="api_sale_by_id"):
            loader.validate_config(config)

    def test_load_config_missing_mandatory_value_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "salescheck.yaml"
        config_file.write_text("api_sell: ???\n")

        with pytest.raises(ValueError, match="resolution"):
            ConfigLoader().load_config(str(config_file))

    def test_validate_rejects_non_positive_timeout(self) -> None:
        loader = ConfigLoader()
        config = loader.merge({"request_timeout": 0}, environ={})

        with pytest.raises(ValueError, match="positive"):
            loader.validate_config(config)


class TestSettings:
    def test_load_settings_builds_paths(self, tmp_path: Path) -> None:
        settings = load_settings(str(tmp_path / "missing.yaml"), environ={})

        assert isinstance(settings, Settings)
        assert settings.plant_path("7") == "/api/plants/7"
        assert settings.sale_path("abc") == "/api/sales/abc"
        assert settings.url("/ui/sales") == "http://localhost:8080/ui/sales"
        assert settings.screenshot_dir == Path("tests/screenshots")

    def test_url_strips_trailing_slash(self, settings: Settings) -> None:
        trailing = dataclasses.replace(settings, base_url="http://shop.test/")
        assert trailing.url("/api/sales") == "http://shop.test/api/sales"

    def test_paths_substitute_only_id(self, settings: Settings) -> None:
        braced = dataclasses.replace(settings, api_get_plant="/api/plants/{plantId}/{id}")
        assert braced.plant_path("7") == "/api/plants/{plantId}/7"

    def test_credentials_per_role(self, settings: Settings) -> None:
        assert settings.credentials(Role.ADMIN) == ("admin", "admin123")
        assert settings.credentials(Role.USER) == ("testuser", "test123")


class TestRole:
    def test_parse_is_case_insensitive(self) -> None:
        assert Role.parse(" Admin ") is Role.ADMIN
        assert Role.parse("user") is Role.USER

    def test_parse_unknown_role(self) -> None:
        with pytest.raises(ValueError, match="Unknown role"):
            Role.parse("guest")
