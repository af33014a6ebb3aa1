from __future__ import annotations

try:
    from openai import AsyncOpenAI as _AsyncOpenAI
except ImportError:
    _AsyncOpenAI = None  # type: ignore[assignment,misc]

from doclens_core.providers.base import ApiResponse, BaseAssessor


class OpenAIAssessor(BaseAssessor):
    PROVIDER = "openai"
    MODEL = "gpt-4o"
    # Lower than Anthropic's 0.3 to lean toward structured JSON output.
    TEMPERATURE = 0.2
    PRICING = {
        "gpt-4o": (2.5, 10.0),
        "gpt-4o-mini": (0.15, 0.6),
        "gpt-4.1": (2.0, 8.0),
        "gpt-4.1-mini": (0.4, 1.6),
    }

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(model)
        if _AsyncOpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install 'doclens[openai]'"
            )
        self.client = _AsyncOpenAI(api_key=api_key)

    async def _call_api(self, system_prompt: str, user_prompt: str) -> ApiResponse:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        usage = response.usage
        return ApiResponse(
            text=response.choices[0].message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )
