# backoffice/ai_client.py
# OpenAI chat-completions over plain HTTP.

from __future__ import annotations

import logging
from typing import Optional

import requests

from backoffice import config
from backoffice.errors import AIRequestError

logger = logging.getLogger(__name__)


class AIClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 60,
    ):
        self.api_key = api_key if api_key is not None else config.OPENAI_API_KEY
        self.model = model or config.OPENAI_MODEL
        self.session = session or requests.Session()
        self.timeout = timeout

    def complete(
        self,
        system: str,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Returns the raw message content of the first choice."""
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
        }
        if max_tokens:
            body["max_tokens"] = max_tokens

        try:
            resp = self.session.post(
                config.OPENAI_API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("OpenAI request failed: %s", e)
            raise AIRequestError(f"OpenAI API error: {e}") from e

        if not resp.ok:
            logger.error("OpenAI API error: %s %s", resp.status_code, resp.text[:1000])
            raise AIRequestError(f"OpenAI API error: {resp.status_code}")

        try:
            return resp.json()["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIRequestError(f"Unexpected OpenAI response: {e}") from e
