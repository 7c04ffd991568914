"""Settings resolution from the environment and the local secrets file."""
import os
from pathlib import Path

import pytest

import ro_intake.core.config as config
from ro_intake.core.config import Settings
from ro_intake.core.utils import load_env_file

ENV_KEYS = [
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "RO_STORAGE_BUCKET",
    "RO_RECORDS_TABLE",
    "RO_AUTO_SEGMENT",
    "RO_HTTP_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    # env files write straight into os.environ
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("RO_INTAKE_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setattr(config, "_ENV_LOADED", False)


def test_from_env_reads_required_and_optional_values(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co/")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "secret")
    monkeypatch.setenv("RO_AUTO_SEGMENT", "0")
    monkeypatch.setenv("RO_HTTP_TIMEOUT", "12.5")

    settings = Settings.from_env()

    assert settings.supabase_url == "https://proj.supabase.co"
    assert settings.service_role_key == "secret"
    assert settings.storage_bucket == "repair-orders"
    assert settings.records_table == "repair_orders"
    assert settings.auto_segment is False
    assert settings.http_timeout == 12.5


def test_from_env_requires_credentials():
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        Settings.from_env()


def test_env_file_fills_missing_values(monkeypatch, tmp_path: Path):
    env_file = tmp_path / "supabase.env"
    env_file.write_text(
        "# local credentials\nSUPABASE_URL=https://file.supabase.co\nSUPABASE_SERVICE_ROLE_KEY='from-file'\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("RO_INTAKE_ENV_FILE", str(env_file))
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")

    settings = Settings.from_env()

    assert settings.supabase_url == "https://env.supabase.co"
    assert settings.service_role_key == "from-file"


def test_load_env_file_ignores_missing_paths(tmp_path: Path):
    load_env_file(tmp_path / "nope.env")


def test_auto_segment_defaults_on(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "secret")

    assert Settings.from_env().auto_segment is True
