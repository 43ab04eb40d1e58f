from __future__ import annotations

from pathlib import Path

import pytest

from domain.exceptions import ConfigError
from infrastructure.config import YamlConfigLoader


def test_loader_reads_dashed_keys(tmp_path: Path) -> None:
    path = tmp_path / "webfetch.yaml"
    path.write_text(
        """
user-agent: "custom/2.0"
location: true
max-redirs: 5
retry: 3
retry-delay: 1.5
header:
  - "X-One: 1"
  - "X-Two: 2"
limit-rate: 100k
""",
        encoding="utf-8",
    )

    config = YamlConfigLoader().load_from_file(str(path))

    assert config.user_agent == "custom/2.0"
    assert config.location is True
    assert config.max_redirs == 5
    assert config.retry == 3
    assert config.retry_delay == 1.5
    assert config.header == ["X-One: 1", "X-Two: 2"]
    assert config.limit_rate == "100k"
    assert config.fail is None


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    config = YamlConfigLoader().load_from_file(str(path))

    assert config.model_dump(exclude_defaults=True) == {}


def test_unknown_key_is_rejected() -> None:
    with pytest.raises(ConfigError, match="Invalid config"):
        YamlConfigLoader().load_from_dict({"no-such-option": 1})


def test_wrong_type_is_rejected() -> None:
    with pytest.raises(ConfigError):
        YamlConfigLoader().load_from_dict({"max_redirs": "many"})


def test_negative_retry_is_rejected() -> None:
    with pytest.raises(ConfigError):
        YamlConfigLoader().load_from_dict({"retry": -1})


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        YamlConfigLoader().load_from_file(str(tmp_path / "nope.yaml"))


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("key: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigError, match="not valid YAML"):
        YamlConfigLoader().load_from_file(str(path))


def test_top_level_must_be_a_mapping(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        YamlConfigLoader().load_from_file(str(path))
