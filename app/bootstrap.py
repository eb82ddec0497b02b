from __future__ import annotations
from pathlib import Path
import os
from platformdirs import user_data_dir

APP_NAME = "LlamaControlCenter"
APP_ORG = "LlamaControlCenter"

# Determines where the app data should live
# APP_DATA_DIR wins; in dev mode uses .appdata in the project;
# otherwise the OS-standard user data directory.
def get_app_base_dir(app_name: str = APP_NAME, org: str = APP_ORG) -> Path:
    override = os.getenv("APP_DATA_DIR")
    if override:
        return Path(override).expanduser().resolve()

    # Dev mode -> store inside the repo
    if os.getenv("DEV_MODE", "").strip() in {"1", "true", "True", "yes", "YES"}:
        project_root = Path(__file__).resolve().parents[1]
        return (project_root / ".appdata").resolve()

    # Prod mode -> OS-standard user data dir
    return Path(user_data_dir(app_name, org)).resolve()
