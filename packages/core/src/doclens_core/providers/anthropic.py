from __future__ import annotations

from doclens_core.providers.base import ApiResponse, BaseAssessor


class AnthropicAssessor(BaseAssessor):
    PROVIDER = "anthropic"
    MODEL = "claude-sonnet-4-20250514"
    # Used for both scoring and rewriting.
    TEMPERATURE = 0.3
    PRICING = {
        "claude-sonnet-4-20250514": (3.0, 15.0),
        "claude-3-5-sonnet-20241022": (3.0, 15.0),
        "claude-3-5-haiku-20241022": (0.8, 4.0),
        "claude-opus-4-20250514": (15.0, 75.0),
    }

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(model)
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'doclens[anthropic]'"
            )
        self.client = AsyncAnthropic(api_key=api_key)

    async def _call_api(self, system_prompt: str, user_prompt: str) -> ApiResponse:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        response = await self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return ApiResponse(
            text="".join(text_blocks).strip(),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
