"""OpenRouter API Client Wrapper

This module provides an OpenRouterClient wrapper around the official openai Python
SDK, pointed at OpenRouter's OpenAI-compatible endpoint. Includes bearer token
authentication, token usage tracking, and structured error logging.
"""

import os
from typing import Any, Dict, Optional

import openai
import structlog
from openai import APIConnectionError, InternalServerError

from hn_sentiment.config import DEFAULT_INFERENCE_BASE_URL, DEFAULT_MODEL, DEFAULT_TEMPERATURE


def _get_logger():
    """Get logger instance (allows for easier mocking in tests)."""
    return structlog.get_logger()


class OpenRouterClient:
    """Async chat completion client with authentication and token tracking.

    The API key is passed through to the provider unchanged. Token counts are
    accumulated for the lifetime of the client; no pricing is applied.

    Attributes:
        client: AsyncOpenAI SDK client instance
        prompt_tokens: Total prompt tokens used by this client
        completion_tokens: Total completion tokens used by this client

    Example:
        >>> client = OpenRouterClient()
        >>> result = await client.send_chat_completion("Say hello")
        >>> print(result['content'])
        'Hello!'
        >>> print(result['usage'])
        {'prompt_tokens': 9, 'completion_tokens': 3, 'total_tokens': 12}
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        """Initialize the client.

        Args:
            api_key: Provider API key (default: OPENROUTER_API_KEY from environment)
            base_url: OpenAI-compatible base URL (default: OpenRouter)

        Raises:
            ValueError: If no API key is supplied and OPENROUTER_API_KEY is missing or empty
        """
        if api_key is None:
            api_key = os.environ.get("OPENROUTER_API_KEY", "").strip()

        if not api_key:
            raise ValueError(
                "OPENROUTER_API_KEY environment variable is required but not set. "
                "Please set OPENROUTER_API_KEY to your OpenRouter API key."
            )

        self.base_url = base_url or DEFAULT_INFERENCE_BASE_URL
        self.client = openai.AsyncOpenAI(api_key=api_key, base_url=self.base_url)
        self.prompt_tokens = 0
        self.completion_tokens = 0

        _get_logger().info("openrouter_client_initialized", base_url=self.base_url)

    @property
    def total_tokens(self) -> int:
        """Total tokens used by this client."""
        return self.prompt_tokens + self.completion_tokens

    async def send_chat_completion(
        self,
        prompt: str,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Send a single-message chat completion request.

        Args:
            prompt: Rendered prompt, sent as the only user message
            model: Model identifier (default: anthropic/claude-haiku-4.5)
            temperature: Sampling temperature (default: 0.3)
            max_tokens: Max completion tokens (None to omit)

        Returns:
            Dictionary with:
                - content (str): Raw response content from the assistant
                - usage (dict): Token usage with prompt_tokens, completion_tokens, total_tokens

        Raises:
            APIConnectionError: Network/connection failures
            InternalServerError: 5xx server errors from the provider
            APIError: Other API errors (authentication, rate limits, etc.)
        """
        try:
            create_kwargs: Dict[str, Any] = {
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": temperature,
            }
            if max_tokens is not None:
                create_kwargs["max_tokens"] = max_tokens

            response = await self.client.chat.completions.create(**create_kwargs)

            content = response.choices[0].message.content or ""

            usage = getattr(response, "usage", None)
            prompt_tokens = getattr(usage, "prompt_tokens", 0)
            completion_tokens = getattr(usage, "completion_tokens", 0)
            # Some providers omit usage entirely
            if not isinstance(prompt_tokens, int):
                prompt_tokens = 0
            if not isinstance(completion_tokens, int):
                completion_tokens = 0
            total_tokens = prompt_tokens + completion_tokens

            self.prompt_tokens += prompt_tokens
            self.completion_tokens += completion_tokens

            _get_logger().info(
                "chat_completion_success",
                model=model,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=total_tokens,
                cumulative_tokens=self.total_tokens
            )

            return {
                "content": content,
                "usage": {
                    "prompt_tokens": prompt_tokens,
                    "completion_tokens": completion_tokens,
                    "total_tokens": total_tokens
                }
            }

        except (APIConnectionError, InternalServerError) as e:
            # Connection errors and 5xx server errors
            _get_logger().error(
                "chat_completion_api_error",
                error_type=type(e).__name__,
                error_message=str(e),
                model=model,
                prompt_length=len(prompt)
            )
            raise

        except Exception as e:
            _get_logger().error(
                "chat_completion_api_error",
                error_type=type(e).__name__,
                error_message=str(e),
                model=model,
                prompt_length=len(prompt)
            )
            raise
