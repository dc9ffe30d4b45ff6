import logging
from unittest import mock

import pytest

from heapgrid import logging_config
from heapgrid.config import ConfigManager
from heapgrid.core.models.grid_config import DEFAULT_GRID_SETTINGS, GridSettings


@pytest.fixture
def user_config_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("HEAPGRID_CONFIG_DIR", str(tmp_path))
    ConfigManager().reload()
    yield tmp_path
    monkeypatch.delenv("HEAPGRID_CONFIG_DIR")
    ConfigManager().reload()


def test_config_manager_is_a_singleton():
    assert ConfigManager() is ConfigManager()


def test_packaged_defaults_are_loaded(user_config_dir):
    grid = ConfigManager().get_grid_config()
    assert grid["guard_zone_height"] == 40
    assert grid["hysteresis_height"] == 500
    assert ConfigManager().get_logging_config()["version"] == 1


def test_user_overrides_are_merged(user_config_dir):
    (user_config_dir / "grid.yml").write_text("hysteresis_height: 250\n", encoding="utf-8")
    ConfigManager().reload()
    grid = ConfigManager().get_grid_config()
    assert grid["hysteresis_height"] == 250
    assert grid["guard_zone_height"] == 40


def test_broken_user_override_is_ignored(user_config_dir, caplog):
    (user_config_dir / "grid.yml").write_text("hysteresis_height: [unclosed\n", encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="heapgrid.config.manager"):
        ConfigManager().reload()
    assert ConfigManager().get_grid_config()["hysteresis_height"] == 500
    assert "Could not parse user config" in caplog.text


def test_grid_settings_from_mapping_ignores_unknown_keys():
    settings = GridSettings.from_mapping({"guard_zone_height": "10", "colour": "blue", "reveal_scroll_gap": None})
    assert settings.guard_zone_height == 10.0
    assert settings.reveal_scroll_gap == DEFAULT_GRID_SETTINGS.reveal_scroll_gap


def test_grid_settings_from_config(user_config_dir):
    (user_config_dir / "grid.yml").write_text("default_row_height: 24\n", encoding="utf-8")
    ConfigManager().reload()
    assert GridSettings.from_config().default_row_height == 24.0


def test_setup_logging_points_file_handler_at_log_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("HEAPGRID_LOG_DIR", str(tmp_path / "logs"))
    with mock.patch("logging.config.dictConfig") as dict_config:
        logging_config.setup_logging()
    applied = dict_config.call_args[0][0]
    assert applied["handlers"]["file"]["filename"] == str(tmp_path / "logs" / "app.log")
    assert (tmp_path / "logs").is_dir()


def test_setup_logging_falls_back_to_console_config(tmp_path, monkeypatch):
    monkeypatch.setenv("HEAPGRID_LOG_DIR", str(tmp_path))
    calls = []

    def fake_dict_config(config):
        calls.append(config)
        if len(calls) == 1:
            raise ValueError("bad handler")

    with mock.patch("logging.config.dictConfig", side_effect=fake_dict_config):
        logging_config.setup_logging()
    assert len(calls) == 2
    assert list(calls[1]["handlers"]) == ["console"]


def test_debug_overrides_raise_culling_loggers_to_debug(monkeypatch):
    monkeypatch.setenv("HEAPGRID_DEBUG_CULLING", "true")
    monkeypatch.setenv("HEAPGRID_DEBUG_MODULES", "heapgrid.ui.coordinators.base, ")
    names = ["heapgrid.core.services.viewport_culler", "heapgrid.ui.controllers.grid_controller",
             "heapgrid.ui.coordinators.base"]
    saved = {name: (logging.getLogger(name).level, list(logging.getLogger(name).handlers)) for name in names}
    try:
        logging_config._apply_debug_overrides()
        for name in names:
            assert logging.getLogger(name).level == logging.DEBUG
    finally:
        for name, (level, handlers) in saved.items():
            logger = logging.getLogger(name)
            logger.setLevel(level)
            logger.handlers[:] = handlers
