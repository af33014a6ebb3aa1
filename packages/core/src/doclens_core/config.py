import os
from pathlib import Path
from typing import Optional

import yaml

from doclens_store.models import DEFAULT_TARGET_SCORES

# Operations that may pick their own provider and model.
OPERATIONS = ("review", "improve")

DEFAULT_CONFIG: dict = {
    "provider": "anthropic",
    "model": None,  # None = the provider's default model
    "providers": {},  # per-operation provider, e.g. {"improve": "openai"}
    "models": {},  # per-operation model, e.g. {"review": "claude-3-5-haiku-20241022"}
    "content_dir": "content",
    "extensions": [".md", ".mdx"],
    "db_path": ".doclens/content-db.json",
    "store": "json",  # "json" (durable) or "memory" (dry run, nothing persisted)
    "batch_size": 3,
    "review_delay": 1.0,  # seconds between review groups
    "improve_delay": 2.0,  # seconds between improve groups
    "improve_count": 1,
    "target_scores": dict(DEFAULT_TARGET_SCORES),
}


def load_config(config_path: str = ".doclens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .doclens.yml in the current directory
      3. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "providers": {},
        "models": {},
        "extensions": list(DEFAULT_CONFIG["extensions"]),
        "target_scores": dict(DEFAULT_CONFIG["target_scores"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        # Partial target overrides keep the defaults for unnamed dimensions.
        targets = file_config.pop("target_scores", None) or {}
        config["target_scores"].update({k: float(v) for k, v in targets.items()})
        for key in ("providers", "models"):
            config[key] = _operation_map(key, file_config.pop(key, None))
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def _operation_map(key: str, value) -> dict:
    if not value:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a mapping of operation to name, got {type(value).__name__}")
    unknown = sorted(set(value) - set(OPERATIONS))
    if unknown:
        raise ValueError(f"Unknown operation(s) in {key}: {', '.join(unknown)}. Choose from {', '.join(OPERATIONS)}.")
    return {op: name for op, name in value.items() if name}


def resolve_model_options(config: dict, operation: Optional[str] = None) -> tuple[str, Optional[str]]:
    """Return the ``(provider, model)`` pair an operation should use.

    Per-operation entries win over the global ``provider``/``model``. When an
    operation switches provider without naming a model, the global model is
    not carried over, since it belongs to the other provider; that
    provider's default is used instead.
    """
    provider = config["provider"]
    model = config.get("model")
    if operation is None:
        return provider, model

    op_provider = (config.get("providers") or {}).get(operation)
    op_model = (config.get("models") or {}).get(operation)
    if op_provider and op_provider != provider:
        return op_provider, op_model
    return provider, op_model or model
