"""Model client for the STA reviewer application.

This module contains the ModelClient class that sends review prompts to
OpenAI chat models, either as a single completion or as a token stream.
"""

from typing import Any, Dict, Iterator, List, Optional

from langfuse import observe
from openai import OpenAI, OpenAIError

from ..exceptions import ModelCallFailedError
from .prompt_builder import SYSTEM_PROMPT

__all__ = ["ModelClient"]


class ModelClient:
    """OpenAI chat client used for paper reviews.

    The provider is treated as an opaque text generator. Failures surface
    as ModelCallFailedError carrying the provider's message; nothing is
    retried here.

    Attributes:
        api_key: OpenAI API key
    """

    def __init__(self, api_key: Optional[str], client: Optional[OpenAI] = None) -> None:
        """Initialize the model client.

        The OpenAI client is created on first use, so a missing key only
        fails the request that needs it.

        Args:
            api_key: OpenAI API key
            client: Pre-built OpenAI client, mainly for tests
        """
        self.api_key: Optional[str] = api_key
        self._client: Optional[OpenAI] = client

    @property
    def cli(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise ModelCallFailedError("Missing OpenAI API key")
            try:
                self._client = OpenAI(api_key=self.api_key)
            except Exception as e:
                raise ModelCallFailedError(f"OpenAI client initialization error: {str(e)}")
        return self._client

    @staticmethod
    def _messages(prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    @observe(name="openai_review_completion", as_type="generation")
    def complete(self, prompt: str, model: str, **kwargs: Any) -> str:
        """Request a complete review in one response.

        Args:
            prompt: Review prompt including the document text
            model: Model identifier
            **kwargs: Additional parameters for the API call

        Returns:
            Response text, empty when the model returned no content

        Raises:
            ModelCallFailedError: If the API call fails
        """
        try:
            response = self.cli.chat.completions.create(
                model=model,
                messages=self._messages(prompt),
                temperature=0,
                **kwargs
            )
        except ModelCallFailedError:
            raise
        except OpenAIError as e:
            raise ModelCallFailedError(f"OpenAI API error: {str(e)}")
        except Exception as e:
            raise ModelCallFailedError(f"Unexpected error during model call: {str(e)}")

        if not response.choices or not response.choices[0].message.content:
            return ""
        return response.choices[0].message.content.strip()

    def stream(self, prompt: str, model: str, **kwargs: Any) -> Iterator[str]:
        """Request a review as a stream of text chunks.

        Chunks are yielded in arrival order; empty deltas are skipped.
        Closing the iterator early abandons the response.

        Args:
            prompt: Review prompt including the document text
            model: Model identifier
            **kwargs: Additional parameters for the API call

        Yields:
            Text chunks

        Raises:
            ModelCallFailedError: If the call or the stream fails
        """
        response: Any = None
        try:
            response = self.cli.chat.completions.create(
                model=model,
                messages=self._messages(prompt),
                temperature=0,
                stream=True,
                **kwargs
            )
            for chunk in response:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except ModelCallFailedError:
            raise
        except OpenAIError as e:
            raise ModelCallFailedError(f"OpenAI API error: {str(e)}")
        except Exception as e:
            raise ModelCallFailedError(f"Unexpected error during model stream: {str(e)}")
        finally:
            # Releases the HTTP connection when the caller stops early
            close = getattr(response, "close", None)
            if close is not None:
                close()
