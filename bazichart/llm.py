"""
Google Gemini client for the BaZi chat.

The advisor is built once at startup with the single API key. A missing
key or any generation failure surfaces as ExternalServiceUnavailable;
there is no canned fallback answer.
"""

import logging
from typing import Iterable, Optional

import google.generativeai as genai

from bazichart.errors import ExternalServiceUnavailable
from bazichart.generate_context import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

AI_UNAVAILABLE_MESSAGE = "AI analysis temporarily unavailable. Please try again."
MAX_HISTORY_TURNS = 10

GENERATION_CONFIG = {
    "temperature": 0.7,
    "max_output_tokens": 500,
}


def history_to_contents(history: Iterable[dict]) -> list[dict]:
    """Map chat transcript entries ({role, content}) to Gemini contents."""
    contents = []
    for turn in list(history or [])[-MAX_HISTORY_TURNS:]:
        text = (turn.get("content") or "").strip()
        if not text:
            continue
        role = "user" if turn.get("role") == "user" else "model"
        contents.append({"role": role, "parts": [text]})
    return contents


class ChatAdvisor:
    def __init__(self, api_key: Optional[str], model_name: str = "gemini-1.5-flash",
                 timeout: float = 30.0, model=None):
        self.timeout = timeout
        if model is None and api_key:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name, system_instruction=SYSTEM_PROMPT)
        elif model is None:
            logger.warning("GOOGLE_AI_API_KEY is not set; chat requests will fail")
        self._model = model

    @property
    def available(self) -> bool:
        return self._model is not None

    def reply(self, context: str, history: Iterable[dict] = ()) -> str:
        if self._model is None:
            raise ExternalServiceUnavailable(AI_UNAVAILABLE_MESSAGE)

        contents = history_to_contents(history)
        contents.append({"role": "user", "parts": [context]})
        try:
            response = self._model.generate_content(
                contents,
                generation_config=GENERATION_CONFIG,
                request_options={"timeout": self.timeout},
            )
            text = (response.text or "").strip()
        except Exception as e:
            logger.exception("AI generation error")
            raise ExternalServiceUnavailable(AI_UNAVAILABLE_MESSAGE) from e

        if not text:
            logger.error("AI generation returned no text")
            raise ExternalServiceUnavailable(AI_UNAVAILABLE_MESSAGE)
        return text
