"""
AI Module - Pairing Advisor
=============================
Dish pairings, menu descriptions and cooking tips from a chat-completions
API over httpx. Provider error text is logged, never returned to users.
"""

import logging
import re
from typing import List, Optional

import httpx

from common.exceptions import ExternalServiceError, ValidationError

logger = logging.getLogger("homelyeats.ai")

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")

GENERIC_ERROR = "Suggestions are unavailable right now. Please try again later."


def split_lines(text: str, limit: Optional[int] = None) -> List[str]:
    """Non-empty lines with list markers ("1.", "-", "*") stripped."""
    lines = []
    for raw in text.splitlines():
        line = _LIST_MARKER.sub("", raw).strip()
        if line:
            lines.append(line)
    return lines[:limit] if limit else lines


class PairingAdvisor:

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        base_url: str = "https://api.openai.com/v1",
        timeout: int = 20,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client or httpx.Client(timeout=timeout)

    # ==========================================
    # Public operations
    # ==========================================

    def suggest_pairings(self, dish_name: str, cuisine: str) -> List[str]:
        dish_name = _required(dish_name, "Dish name")
        cuisine = _required(cuisine, "Cuisine")
        content = self._complete(
            "You are a helpful culinary expert who provides concise, practical dish pairing suggestions.",
            f"Suggest 3 complementary dishes that would pair well with {dish_name} ({cuisine} cuisine). "
            "Focus on flavor combinations and traditional pairings. Format each suggestion on a new line.",
        )
        return split_lines(content, limit=3)

    def describe_dish(self, dish_name: str, ingredients: List[str]) -> str:
        dish_name = _required(dish_name, "Dish name")
        listed = ", ".join(i.strip() for i in ingredients if i and i.strip())
        content = self._complete(
            "You are a professional food writer who creates engaging and appetizing descriptions of dishes.",
            f'Write a short, appetizing description (max 100 words) for a dish named "{dish_name}"'
            f" with the following ingredients: {listed or 'chef selection'}",
        )
        return content.strip()

    def cooking_tips(self, dish_name: str) -> List[str]:
        dish_name = _required(dish_name, "Dish name")
        content = self._complete(
            "You are a professional chef providing cooking tips and tricks.",
            f'Provide 3 professional cooking tips for preparing "{dish_name}". Keep each tip concise.',
        )
        return split_lines(content)

    # ==========================================
    # HTTP
    # ==========================================

    def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 150) -> str:
        if not self.api_key:
            logger.error("OPENAI_API_KEY is not configured")
            raise ExternalServiceError(GENERIC_ERROR)

        try:
            resp = self.client.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    "max_tokens": max_tokens,
                    "temperature": 0.7,
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException:
            logger.error("Language model request timed out")
            raise ExternalServiceError(GENERIC_ERROR)
        except httpx.HTTPStatusError as e:
            logger.error(f"Language model returned {e.response.status_code}: {e.response.text[:500]}")
            raise ExternalServiceError(GENERIC_ERROR)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Language model request failed: {e}")
            raise ExternalServiceError(GENERIC_ERROR)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.error(f"Unexpected language model response: {str(data)[:500]}")
            raise ExternalServiceError(GENERIC_ERROR)
        if not isinstance(content, str) or not content.strip():
            logger.error("Language model returned empty content")
            raise ExternalServiceError(GENERIC_ERROR)
        return content

    def close(self):
        self.client.close()


def _required(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required")
    return value
