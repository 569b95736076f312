from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from islandrecon.config import (
    ConfigurationError,
    configure_logging,
    env_flag,
    get_database_config,
    get_reconciliation_config,
    get_storage_config,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("yes", True), ("FALSE", False), ("off", False), ("", True)],
)
def test_env_flag_parses_booleans(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool  # noqa: FBT001
) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", raw)

    assert env_flag("EXAMPLE_FLAG", default=True) is expected


def test_env_flag_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", "maybe")

    with pytest.raises(ConfigurationError):
        env_flag("EXAMPLE_FLAG", default=False)


def test_reconciliation_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ISLANDRECON_BLOCK_ON_CONFLICTS", raising=False)
    monkeypatch.delenv("ISLANDRECON_MISSING_MARKERS", raising=False)

    config = get_reconciliation_config()

    assert config.block_on_conflicts is True
    assert config.missing_markers == frozenset({"", "NA"})


def test_reconciliation_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ISLANDRECON_BLOCK_ON_CONFLICTS", "false")
    monkeypatch.setenv("ISLANDRECON_MISSING_MARKERS", "NA, n/a ,-")

    options = get_reconciliation_config().pipeline_options()

    assert options.block_on_conflicts is False
    assert options.missing_markers == frozenset({"", "NA", "n/a", "-"})


def test_storage_config_uses_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ISLANDRECON_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URI", raising=False)

    storage = get_storage_config()
    uri = get_database_config(storage=storage).uri

    assert uri == f"sqlite+pysqlite:///{(tmp_path / 'data').resolve() / 'islandrecon.db'}"
    assert (tmp_path / "data").is_dir()


def test_database_uri_overrides_storage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"
    assert os.getenv("DATABASE_URI") == "sqlite+pysqlite:///:memory:"


def test_configure_logging_keeps_sql_statements_quiet() -> None:
    engine_log = logging.getLogger("sqlalchemy.engine")
    previous = engine_log.level
    try:
        configure_logging(verbose=True)

        assert engine_log.level == logging.WARNING
    finally:
        engine_log.setLevel(previous)
