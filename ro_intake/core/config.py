"""Runtime settings for the Supabase-backed collaborators."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ro_intake.core.utils import get_config_value, load_env_file

DEFAULT_ENV_FILE = Path("secrets/supabase.env")
_ENV_LOADED = False


def _ensure_env() -> None:
    """Load Supabase credentials from a local secrets file once per process."""

    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True

    env_path = Path(os.getenv("RO_INTAKE_ENV_FILE", DEFAULT_ENV_FILE)).expanduser()
    load_env_file(env_path)


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    service_role_key: str
    storage_bucket: str = "repair-orders"
    records_table: str = "repair_orders"
    auto_segment: bool = True
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Collect settings from Streamlit secrets, the env file, or the environment."""

        _ensure_env()
        supabase_url = get_config_value("SUPABASE_URL").rstrip("/")
        service_role_key = get_config_value("SUPABASE_SERVICE_ROLE_KEY")
        if not supabase_url or not service_role_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required; set them in the "
                f"environment or in {DEFAULT_ENV_FILE}"
            )

        return cls(
            supabase_url=supabase_url,
            service_role_key=service_role_key,
            storage_bucket=get_config_value("RO_STORAGE_BUCKET", "repair-orders"),
            records_table=get_config_value("RO_RECORDS_TABLE", "repair_orders"),
            auto_segment=get_config_value("RO_AUTO_SEGMENT", "1") == "1",
            http_timeout=float(get_config_value("RO_HTTP_TIMEOUT", "30")),
        )
