"""
Text Generation Capability

Thin async wrapper around the OpenAI chat completions API. Every call is
bounded by a timeout and every failure surfaces as GenerationError, so callers
only ever have one exception family to route into their fallback chain.

Structured (JSON) output is parsed with `parse_json_payload` and validated
against pydantic models by `generate_structured`; both raise ParseError.
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional, Type, TypeVar

from dotenv import load_dotenv
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from .errors import GenerationError, ParseError

load_dotenv()

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_TIMEOUT_SECONDS = 15.0


class TextGenerator:
    """
    Generates text with an OpenAI chat model.

    Without an API key the generator stays offline: `generate` raises
    GenerationError immediately and every workflow degrades to its static tier.
    Any object with a compatible `generate` coroutine can stand in for this
    class (tests use a scripted fake).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.timeout = timeout or float(os.getenv("GENERATION_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
        self.client: Optional[AsyncOpenAI] = client

        if self.client is None:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if api_key:
                self.client = AsyncOpenAI(api_key=api_key)
            else:
                logger.warning("⚠️ [TextGenerator] OPENAI_API_KEY not set, running offline")

    @property
    def available(self) -> bool:
        return self.client is not None

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """
        Generate a completion for `prompt`.

        Raises:
            GenerationError: offline, timeout, API error, or empty completion
        """
        if not self.client:
            raise GenerationError("Text generation is offline (no API key configured)")

        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"⚠️ [TextGenerator] Timed out after {self.timeout}s")
            raise GenerationError(f"Generation timed out after {self.timeout}s") from e
        except OpenAIError as e:
            logger.warning(f"⚠️ [TextGenerator] API error: {e}")
            raise GenerationError(str(e)) from e

        if not completion.choices:
            raise GenerationError("Empty completion")
        content = completion.choices[0].message.content
        if not content or not content.strip():
            raise GenerationError("Empty completion")
        return content.strip()


def parse_json_payload(text: str) -> Any:
    """
    Extract the JSON object or array from a model response.

    Models often wrap JSON in ``` fences or add a sentence around it, so the
    outermost {...} or [...] span is located before decoding.
    """
    if not text:
        raise ParseError("Empty response", raw_text=text)

    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        raise ParseError("No JSON found in response", raw_text=text)
    start = min(starts)
    closer = "}" if cleaned[start] == "{" else "]"
    end = cleaned.rfind(closer)
    if end < start:
        raise ParseError("Unterminated JSON in response", raw_text=text)

    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}", raw_text=text) from e


def validate_payload(payload: Any, model_cls: Type[ModelT]) -> ModelT:
    """Validate a decoded payload against a pydantic model."""
    try:
        return model_cls.model_validate(payload)
    except SchemaValidationError as e:
        raise ParseError(f"{model_cls.__name__} shape mismatch: {e.error_count()} error(s)") from e


async def generate_json(generator, prompt: str, system_instruction: Optional[str] = None, **options) -> Any:
    """Generate and decode a JSON payload (object or array)."""
    text = await generator.generate(prompt, system_instruction=system_instruction, **options)
    return parse_json_payload(text)


async def generate_structured(
    generator,
    prompt: str,
    model_cls: Type[ModelT],
    system_instruction: Optional[str] = None,
    **options,
) -> ModelT:
    """Generate JSON and validate it into `model_cls`."""
    payload = await generate_json(generator, prompt, system_instruction=system_instruction, **options)
    return validate_payload(payload, model_cls)
