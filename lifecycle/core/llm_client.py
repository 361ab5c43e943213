"""Thin LLM client for JSON-mode completions.

Builds the message pair, sends it through the shared Router and parses the
reply as JSON, repairing it with json_repair when the model returns
almost-JSON (trailing commas, truncated arrays on very long documents).
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from json_repair import repair_json

from lifecycle.core.config import LLMConfig
from lifecycle.core.llm_router import get_router

logger = logging.getLogger(__name__)

logging.getLogger("litellm").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.ERROR)


@dataclass
class LLMResponse:
    """Parsed response from one completion.

    Attributes:
        content: Parsed JSON object.
        raw_content: Text exactly as the model returned it.
        model: Model identifier used for the call.
    """

    content: dict[str, Any]
    raw_content: str
    model: str


class LLMClient:
    """Reusable client for JSON completions through the Router.

    Usage:
        client = LLMClient()
        response = await client.complete(
            system_prompt="You extract loan terms.",
            user_prompt=document_text,
            model=EXTRACTION_MODEL,
        )
        data = response.content
    """

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float | None = None,
        response_format: dict[str, str] | None = None,
    ) -> LLMResponse:
        """Run one system+user completion and parse the JSON reply.

        Raises:
            ValueError: If the reply is empty or cannot be repaired into a JSON object.
            litellm exceptions: Once the Router's retries and fallbacks are exhausted.
        """
        response = await get_router().acompletion(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format=response_format or LLMConfig.RESPONSE_FORMAT,
            temperature=temperature if temperature is not None else LLMConfig.TEMPERATURE,
        )

        raw_content = response.choices[0].message.content or ""
        if not raw_content.strip():
            raise ValueError("LLM returned an empty response")

        try:
            content = json.loads(raw_content)
        except json.JSONDecodeError:
            logger.warning("JSON parse failed, attempting repair")
            content = repair_json(raw_content, return_objects=True)

        if not isinstance(content, dict):
            raise ValueError(f"LLM response is not a JSON object (got {type(content).__name__})")

        return LLMResponse(content=content, raw_content=raw_content, model=model)
