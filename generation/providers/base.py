"""
generation/providers/base.py

Abstract base class for AI hairstyle providers.

All providers (stub, Gemini, OpenAI) implement this interface. The
orchestrator talks to whichever provider was selected at startup and
never knows which backend it has.

Methods to implement:
    - render(photo_ref, prompt, style_ref, variations) -> output_ref

Version History:
    2025-11-04: Initial implementation
    2025-11-19: Explicit timeouts on remote image references
"""

import base64
import binascii
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import requests

from salon.config import GenerationType
from salon.errors import ProviderError


@dataclass
class ProviderResult:
    """Result of one generation call."""
    output_ref: str          # Data URL or hosted URL of the preview
    duration_ms: int
    kind: str                # GenerationType value


class AIProvider(ABC):
    """
    Abstract base class for AI providers.

    Implement render() for each backend:
        - StubProvider
        - GeminiProvider
        - OpenAIProvider
    """

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'stub', 'gemini')."""
        pass

    @abstractmethod
    def render(
        self,
        photo_ref: str,
        prompt: Optional[str],
        style_ref: Optional[str],
        variations: int
    ) -> str:
        """
        Produce the preview image.

        Args:
            photo_ref: Client photo (data URL or http(s) URL)
            prompt: Text description (prompt mode)
            style_ref: Reference hairstyle photo (style-reference mode)
            variations: Advisory number of variations

        Returns:
            Output image reference

        Raises:
            ProviderUnavailable: backend answered without an image
            ProviderError: call failed or timed out
        """
        pass

    def generate(
        self,
        photo_ref: str,
        prompt: Optional[str] = None,
        style_ref: Optional[str] = None,
        variations: int = 1
    ) -> ProviderResult:
        """
        Run one generation and time it.

        Exactly one of prompt / style_ref is expected.
        """
        kind = (GenerationType.STYLE_REFERENCE if style_ref else GenerationType.PROMPT).value
        started = time.monotonic()

        try:
            output_ref = self.render(photo_ref, prompt, style_ref, variations)
        except ProviderError:
            raise
        except Exception as e:
            print(f"[{self.__class__.__name__}] Generation failed: {e}")
            raise ProviderError(f'AI generation failed: {e}') from e

        duration_ms = int((time.monotonic() - started) * 1000)
        print(f"[{self.__class__.__name__}] {kind} generation took {duration_ms}ms")

        return ProviderResult(output_ref=output_ref, duration_ms=duration_ms, kind=kind)


# =============================================================================
# IMAGE REFERENCES
# =============================================================================

def parse_data_url(ref: str) -> Tuple[bytes, str]:
    """
    Decode a base64 data URL.

    Returns:
        (bytes, mime_type)
    """
    header, _, payload = ref.partition(',')
    if not header.startswith('data:') or ';base64' not in header:
        raise ProviderError('Unsupported image reference')

    mime_type = header[len('data:'):].split(';', 1)[0] or 'image/jpeg'
    try:
        return base64.b64decode(payload), mime_type
    except (binascii.Error, ValueError) as e:
        raise ProviderError('Invalid image data') from e


def load_image(ref: str, timeout: float) -> Tuple[bytes, str]:
    """
    Resolve an image reference to bytes.

    data: URLs are decoded in place; http(s) URLs are fetched.

    Returns:
        (bytes, mime_type)

    Raises:
        ProviderError: unsupported reference, fetch failure or timeout
    """
    if not ref:
        raise ProviderError('Missing image reference')

    if ref.startswith('data:'):
        return parse_data_url(ref)

    if ref.startswith('http://') or ref.startswith('https://'):
        try:
            response = requests.get(ref, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            print(f"[Providers] Failed to fetch image {ref}: {e}")
            raise ProviderError(f'Failed to fetch image: {e}') from e

        mime_type = response.headers.get('Content-Type', 'image/jpeg').split(';', 1)[0]
        return response.content, mime_type

    raise ProviderError('Unsupported image reference')


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
