"""
Generation overlay.

Caches provider-refined text per output format. An overlay entry shadows the
live rendering of its own format only, and is replaced only by another
successful generation for that format.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from .document import PromptDocument
from .errors import BusyError, GenerationTimeoutError, PromptBuilderError
from .formats import get_format, render
from .llm import GenerationRequest, build_instruction, strip_code_fence

logger = logging.getLogger(__name__)

Generator = Callable[[GenerationRequest], Awaitable[str]]


class GenerationState(str, Enum):
    """Lifecycle of a generation request."""
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class GenerationOverlay:
    """Per-format overlay cache with a single in-flight request."""

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout
        self.state = GenerationState.IDLE
        self.last_error: Optional[str] = None
        self._entries: Dict[str, str] = {}
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def get(self, format_key: str) -> Optional[str]:
        return self._entries.get(format_key)

    def store(self, format_key: str, text: str):
        get_format(format_key)
        self._entries[format_key] = text

    def clear(self):
        self._entries.clear()
        self.state = GenerationState.IDLE
        self.last_error = None

    def preview(self, format_key: str, document: PromptDocument) -> str:
        """Overlay text for the format, or the live rendering when there is none."""
        overlay = self._entries.get(format_key)
        if overlay is not None:
            return overlay
        return render(format_key, document)

    async def request(
        self,
        format_key: str,
        document: PromptDocument,
        generator: Generator,
        model: str = "",
    ) -> str:
        """
        Refine the rendering of one format through the generator.

        The in-flight flag is taken before the first await, so a second call
        made while this one is pending fails immediately.

        Raises:
            BusyError: If another request is still in flight
            GenerationTimeoutError: If the generator exceeds the timeout
            ProviderError: If the provider rejected the request
        """
        if self._in_flight:
            raise BusyError("A generation request is already in progress")

        params = document.parameters
        request = GenerationRequest(
            instruction=build_instruction(format_key, render(format_key, document)),
            format_hint=format_key,
            model=model,
            temperature=params.temperature,
            top_p=params.top_p,
            max_tokens=params.max_tokens,
        )

        self._in_flight = True
        self.state = GenerationState.REQUESTING
        self.last_error = None
        logger.info("Requesting %s refinement (model=%s)", format_key, model or "default")

        try:
            raw = await asyncio.wait_for(generator(request), timeout=self.timeout)
        except PromptBuilderError as e:
            self._fail(str(e))
            raise
        except asyncio.TimeoutError as e:
            self._fail(f"Generation timed out after {self.timeout:g}s")
            raise GenerationTimeoutError(self.last_error) from e
        except Exception as e:
            self._fail(str(e))
            raise
        finally:
            self._in_flight = False

        text = strip_code_fence(raw)
        self.store(format_key, text)
        self.state = GenerationState.SUCCEEDED
        logger.info("Stored %s overlay (%d chars)", format_key, len(text))
        return text

    def _fail(self, message: str):
        self.state = GenerationState.FAILED
        self.last_error = message
        logger.warning("Generation failed: %s", message)
