from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from crtool_core.errors import RemoteReviewError
from crtool_core.providers.base import BaseReviewer

_CHAT_COMPLETIONS_SUFFIX = "/chat/completions"


def normalize_base_url(url: str) -> str:
    """Accept either an API base or a full chat-completions endpoint URL."""
    url = url.rstrip("/")
    if url.endswith(_CHAT_COMPLETIONS_SUFFIX):
        url = url[: -len(_CHAT_COMPLETIONS_SUFFIX)]
    return url


class OpenAIReviewer(BaseReviewer):
    """Reviewer for any OpenAI-compatible chat-completions endpoint (OpenAI, DashScope, ...)."""

    def __init__(self, api_key: str, model: str, base_url: str, timeout: float = 30, max_retries: int = 1):
        if _OpenAI is None:
            raise ImportError("The 'openai' package is required. Install it with: pip install openai")
        super().__init__(max_retries=max_retries)
        self.model = model
        # SDK-level retries are disabled; BaseReviewer owns the retry policy.
        self.client = _OpenAI(
            api_key=api_key,
            base_url=normalize_base_url(base_url),
            timeout=timeout,
            max_retries=0,
        )

    def _call_api(self, messages: list[dict]) -> str:
        response = self.client.chat.completions.create(model=self.model, messages=messages)
        if not response.choices:
            raise RemoteReviewError("the review service returned no choices")
        return response.choices[0].message.content or ""


def get_reviewer(config: dict) -> OpenAIReviewer:
    return OpenAIReviewer(
        api_key=config["api_key"],
        model=config["model_name"],
        base_url=config["base_url"],
        timeout=config.get("timeout", 30),
        max_retries=config.get("max_retries", 1),
    )
