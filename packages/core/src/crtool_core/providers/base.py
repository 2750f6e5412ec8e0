"""Base reviewer implementing the Template Method pattern.

Every provider speaks the same request shape:
    review() → _build_messages()          system prompt + diff as the user turn
             → _call_with_retry() → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from crtool_core.errors import RemoteReviewError

logger = logging.getLogger(__name__)

_MAX_RETRIES = 1


class BaseReviewer(ABC):
    def __init__(self, max_retries: int = _MAX_RETRIES):
        self.max_retries = max(1, int(max_retries))

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def review(self, system_prompt: str, diff_text: str) -> str:
        """Ask the model to review ``diff_text`` and return its answer.

        Raises RemoteReviewError when every attempt fails.
        """
        messages = self._build_messages(system_prompt, diff_text)
        return self._call_with_retry(messages)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, messages: list[dict]) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _build_messages(system_prompt: str, diff_text: str) -> list[dict]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": diff_text},
        ]

    def _call_with_retry(self, messages: list[dict]) -> str:
        """Call _call_api up to max_retries times with exponential backoff."""
        for attempt in range(self.max_retries):
            try:
                return self._call_api(messages)
            except Exception as e:
                if attempt == self.max_retries - 1:
                    logger.error(
                        "%s request failed after %d attempt(s): %s",
                        self.__class__.__name__,
                        self.max_retries,
                        e,
                    )
                    if isinstance(e, RemoteReviewError):
                        raise
                    raise RemoteReviewError(str(e)) from e
                delay = 2**attempt
                logger.warning(
                    "%s request error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.max_retries,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise RemoteReviewError("no attempts were made")
