import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "store": "sqlite",  # memory | sqlite | gist
    "store_path": ".decisionlog.db",
    "gist_id": None,
    "team_path": "",  # shown on every decision record, e.g. "Platform > Backend"
    "target": "main",
    "digest": None,  # None = no generated digest; "anthropic" or "openai" to enable
    "digest_model": None,  # provider default when unset
    "actor": None,
    "names": None,  # optional {actor id: display name} used on decision records
}


def load_config(config_path: str = ".decisionlog.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .decisionlog.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path, encoding="utf-8") as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # The actor can also come from the environment; an explicit value wins.
    if not config.get("actor"):
        config["actor"] = os.environ.get("DECISIONLOG_ACTOR")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def build_digester(config: dict):
    """Return the configured digest provider, or None when digests are off."""
    provider = config.get("digest")
    if not provider:
        return None
    if provider == "anthropic":
        from decisionlog_core.providers.anthropic import AnthropicDigester

        return AnthropicDigester(api_key=config["anthropic_api_key"], model=config.get("digest_model"))
    if provider == "openai":
        from decisionlog_core.providers.openai import OpenAIDigester

        return OpenAIDigester(api_key=config["openai_api_key"], model=config.get("digest_model"))
    raise ValueError(f"Unknown digest provider: {provider!r}. Choose 'anthropic' or 'openai'.")
