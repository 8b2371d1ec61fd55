"""
generation/providers/stub_provider.py

Placeholder provider used when no AI credentials are configured.

Output is a deterministic SVG data URL: the same inputs always produce
the same output_ref. A short fingerprint of the inputs is printed on the
card so different requests are distinguishable.
"""

import hashlib
from typing import Optional

from generation.providers.base import AIProvider
from generation.providers import rendering


class StubProvider(AIProvider):

    @property
    def name(self) -> str:
        return 'stub'

    def render(
        self,
        photo_ref: str,
        prompt: Optional[str],
        style_ref: Optional[str],
        variations: int
    ) -> str:
        fingerprint = self.fingerprint(photo_ref, prompt, style_ref, variations)

        if style_ref:
            print(f"[StubProvider] Generated style-reference placeholder {fingerprint}")
            return rendering.style_placeholder(fingerprint)

        print(f"[StubProvider] Generated prompt placeholder {fingerprint}")
        return rendering.prompt_placeholder(prompt or 'No prompt provided', fingerprint)

    @staticmethod
    def fingerprint(photo_ref: str, prompt: Optional[str], style_ref: Optional[str], variations: int) -> str:
        digest = hashlib.sha256()
        for part in (photo_ref, prompt or '', style_ref or '', str(variations)):
            digest.update(part.encode('utf-8'))
            digest.update(b'\x00')
        return digest.hexdigest()[:12]
