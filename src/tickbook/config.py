import os
import tomllib
from pathlib import Path
from typing import Annotated, Literal

import tomlkit
from pydantic import Field, PlainSerializer, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tickbook.constants import TICK_ARRAY_SIZE

CONFIG_DIR = Path(os.environ.get("TICKBOOK_CONFIG_DIR", Path.home() / ".config" / "tickbook"))
CONFIG_FILE = CONFIG_DIR / "config.toml"
LEDGER_SNAPSHOT_PATH = CONFIG_DIR / "ledger.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TICKBOOK_")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    tick_array_size: Annotated[int, Field(gt=0)] = TICK_ARRAY_SIZE

    # Upper bound on the number of tick arrays a single position range may span. `None` disables
    # the check.
    max_tick_arrays_per_position: Annotated[int, Field(gt=0)] | None = None

    # Serialize the path as a string representation of the absolute path
    ledger_snapshot: Annotated[
        Path,
        PlainSerializer(lambda path: str(path.absolute()), return_type=str),
    ] = LEDGER_SNAPSHOT_PATH

    @field_validator("ledger_snapshot", mode="after")
    def validate_snapshot_path(cls, path: Path) -> Path:  # noqa: N805
        return path.expanduser().absolute()


def load_config_from_file(config_path: Path) -> Settings:
    # Keyword construction keeps the environment variable source active for unset fields
    return Settings(
        **tomllib.loads(
            config_path.read_text(),
        ),
    )


def save_config_to_file(config: Settings, config_path: Path = CONFIG_FILE) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        tomlkit.dumps(
            config.model_dump(exclude_none=True),
        ),
    )


settings = load_config_from_file(CONFIG_FILE) if CONFIG_FILE.exists() else Settings()
