"""Unit tests for utility helpers."""

import logging
import tempfile
from pathlib import Path

import pytest

from src.utils.config import load_config
from src.utils.formatting import format_number
from src.utils.logging import get_logger, set_verbosity


class TestFormatNumber:
    """Test suite for format_number."""

    @pytest.mark.parametrize("num, expected", [
        (0, "0"),
        (999, "999"),
        (1000, "1 K"),
        (1500, "1.5 K"),
        (10000, "10 K"),
        (123456, "123 K"),
        (1234567, "1.2 M"),
        (2500000000, "2.5 B"),
    ])
    def test_format_number(self, num, expected):
        assert format_number(num) == expected


class TestLoadConfig:
    """Test suite for load_config."""

    def test_load_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cfg.yaml"
            path.write_text("flatten:\n  section_len: 15\n", encoding="utf-8")

            assert load_config(str(path)) == {"flatten": {"section_len": 15}}

    def test_missing_file(self):
        assert load_config("/nonexistent/cfg.yaml") == {}

    def test_empty_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cfg.yaml"
            path.write_text("", encoding="utf-8")

            assert load_config(str(path)) == {}

    def test_non_mapping(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cfg.yaml"
            path.write_text("- 1\n- 2\n", encoding="utf-8")

            with pytest.raises(ValueError):
                load_config(str(path))

    def test_project_defaults_match_dataclass(self):
        """The shipped YAML mirrors the built-in defaults."""
        from src.flattening.flattener import FlattenConfig

        path = Path(__file__).resolve().parents[2] / "configs" / "flatten.yaml"
        values = load_config(str(path))

        assert FlattenConfig.from_dict(values["flatten"]) == FlattenConfig()


class TestLogging:
    """Test suite for the logging helpers."""

    def test_get_logger_single_handler(self):
        logger = get_logger("src.test_logger")
        again = get_logger("src.test_logger")

        assert logger is again
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO

    def test_set_verbosity(self):
        logger = get_logger("src.test_verbosity")

        set_verbosity(True)
        assert logger.level == logging.DEBUG
        set_verbosity(False)
        assert logger.level == logging.INFO
