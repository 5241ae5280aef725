"""Parser configuration: settings schema and mdwiki.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError


CONFIG_FILE = "mdwiki.yaml"
ENV_PREFIX = "MDWIKI_"


class Settings(BaseModel):
    preset:         str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    front_matter:   bool = Field(default=True,  description="Parse a leading --- block as metadata")
    math:           bool = Field(default=True,  description="Parse $inline$ and $$display$$ math")
    wikilinks:      bool = Field(default=True,  description="Expand [[target|alias]] into link events")
    wikilink_title: str = Field(default="wiki", description="Title attached to synthesized wikilinks")


def load_config(overrides: dict[str, Any] = None, path: Path = None) -> Settings:
    """Load Settings from mdwiki.yaml, then MDWIKI_<FIELD> env vars, then non-None overrides."""
    config_path = Path(path) if path is not None else Path(CONFIG_FILE)
    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {config_path.name}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {config_path.name}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid settings: {e}") from e
