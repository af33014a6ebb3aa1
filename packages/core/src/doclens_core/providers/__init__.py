"""Quality Assessor providers."""

from __future__ import annotations

from doclens_core.providers.base import (
    ApiResponse,
    Assessment,
    BaseAssessor,
    CostEstimator,
    DimensionAnalysis,
    Improvement,
    QualityAssessor,
)

__all__ = [
    "ApiResponse",
    "Assessment",
    "BaseAssessor",
    "CostEstimator",
    "DimensionAnalysis",
    "Improvement",
    "QualityAssessor",
    "get_assessor",
]


def get_assessor(config: dict, operation: str | None = None) -> BaseAssessor:
    """Build the provider an operation should use.

    ``operation`` ("review" or "improve") selects the per-operation
    ``providers``/``models`` entries from the config; without it the global
    ``provider`` and ``model`` are used. Provider modules are imported lazily
    so that only the selected SDK needs to be installed.
    """
    from doclens_core.config import resolve_model_options

    provider, model = resolve_model_options(config, operation)
    if provider == "anthropic":
        from doclens_core.providers.anthropic import AnthropicAssessor

        return AnthropicAssessor(api_key=config["anthropic_api_key"], model=model)
    if provider == "openai":
        from doclens_core.providers.openai import OpenAIAssessor

        return OpenAIAssessor(api_key=config["openai_api_key"], model=model)
    raise ValueError(f"Unknown model provider: {provider!r}. Choose 'anthropic' or 'openai'.")
