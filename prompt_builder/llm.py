"""LLM provider integration for refining rendered prompts."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    OpenAIError,
)

from .errors import GenerationTimeoutError, ProviderError
from .formats import get_format

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert prompt engineer. You rewrite prompt specifications so "
    "they are clear, specific and unambiguous while keeping their intent."
)

FENCE_PATTERN = re.compile(r"\A\s*```[\w+-]*[ \t]*\r?\n(.*?)\r?\n?```\s*\Z", re.DOTALL)
THINK_PATTERN = re.compile(r"<think>.*?</think>", re.DOTALL)


@dataclass
class GenerationRequest:
    """Everything the provider needs for one refinement call."""
    instruction: str
    format_hint: str
    model: str
    temperature: float = 0.7
    top_p: float = 1.0
    max_tokens: int = 1024

    def to_messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self.instruction},
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert request to the chat completions payload."""
        return {
            "model": self.model,
            "messages": self.to_messages(),
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
        }


def build_instruction(format_key: str, rendered: str) -> str:
    """Wrap a rendered prompt in the refinement instruction for its format."""
    output_format = get_format(format_key)
    return (
        f"Improve the following prompt specification written in {output_format.label} "
        f"notation. Tighten the wording, fill obvious gaps, and keep every section "
        f"that is present. Reply with the complete improved document in the same "
        f"{output_format.label} notation and nothing else.\n\n"
        f"{rendered}"
    )


def strip_code_fence(text: str) -> str:
    """Remove a single code fence wrapping the whole text, if there is one."""
    match = FENCE_PATTERN.match(text)
    if match:
        return match.group(1)
    return text.strip()


def strip_thinking(content: str) -> str:
    """Drop <think>...</think> sections emitted by reasoning models."""
    without_think = THINK_PATTERN.sub("", content).strip()
    return without_think if without_think else content


def initialize_client(api_key: str, base_url: Optional[str] = None, timeout: Optional[float] = None) -> AsyncOpenAI:
    """Initialize OpenAI-compatible async client."""
    kwargs: Dict[str, Any] = {"api_key": api_key or "not-needed"}
    if base_url:
        kwargs["base_url"] = base_url
    if timeout:
        kwargs["timeout"] = timeout
    return AsyncOpenAI(**kwargs)


def _error_payload(error: APIStatusError) -> Any:
    if error.body is not None:
        return error.body
    return error.response.text


async def generate_text(
    request: GenerationRequest,
    api_key: str,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Call the provider and return the refined text.

    Raises:
        ProviderError: For non-success responses, carrying the raw body
        GenerationTimeoutError: If the provider does not answer in time
    """
    client = initialize_client(api_key, base_url, timeout)

    try:
        response = await client.chat.completions.create(**request.to_dict())
    except APITimeoutError as e:
        raise GenerationTimeoutError(f"Provider did not answer in time: {e}") from e
    except APIStatusError as e:
        raise ProviderError(e.response.text or str(e), status_code=e.status_code, payload=_error_payload(e)) from e
    except APIConnectionError as e:
        raise ProviderError(f"Unable to reach {base_url or 'OpenAI API'}: {e}") from e
    except OpenAIError as e:
        raise ProviderError(f"Error calling API: {e}") from e
    finally:
        await client.close()

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise ProviderError("Provider returned an empty response")

    return strip_thinking(content)
