"""
generation/providers/gemini_provider.py

Google Gemini image provider.

Sends the client photo (plus the reference photo for style transfer) to
an image-capable Gemini model and returns the first inline image part of
the answer as a data URL.

Version History:
    2025-11-04: Initial implementation
    2025-11-19: No text fallback - a response without an image is a failure
"""

from typing import Optional

from google import genai
from google.genai import types

from generation.providers.base import AIProvider, load_image, to_data_url
from salon.errors import ProviderUnavailable


PROMPT_TEMPLATE = """Generate a high-quality, realistic image showing the hairstyle: "{prompt}".

Based on the provided client photo, create a photorealistic image of how they would look with this exact hairstyle applied to them.

Requirements:
- Maintain the client's facial features, skin tone, and face shape from the input image
- Apply the "{prompt}" hairstyle accurately
- Ensure professional salon quality
- Make it look natural and realistic
- Keep the same lighting and photo quality as the input

Generate ONLY the image, no text description."""

STYLE_TRANSFER_PROMPT = """Generate a photorealistic image showing the client with the hairstyle from the reference image.

Analyze both images:
1. The client's current photo (their face, features, skin tone)
2. The reference hairstyle image

Create a new image that:
- Shows the client's face and features exactly as they appear
- Applies the hairstyle from the reference image to the client
- Maintains photorealistic quality
- Looks like a professional salon result
- Keeps natural lighting and proportions

Generate ONLY the transformed image, no text."""


class GeminiProvider(AIProvider):
    """
    Gemini backend (google-genai).

    Usage:
        provider = GeminiProvider(api_key, model='gemini-2.5-flash-image')
        result = provider.generate(photo_url, prompt='textured crop')
    """

    def __init__(self, api_key: str, model: str, timeout: float = 60.0, client=None):
        super().__init__(timeout=timeout)
        if not api_key and client is None:
            raise ValueError("GEMINI_API_KEY is required")

        self.model = model
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )

    @property
    def name(self) -> str:
        return 'gemini'

    def render(
        self,
        photo_ref: str,
        prompt: Optional[str],
        style_ref: Optional[str],
        variations: int
    ) -> str:
        photo, photo_mime = load_image(photo_ref, self.timeout)

        if style_ref:
            style, style_mime = load_image(style_ref, self.timeout)
            contents = [
                STYLE_TRANSFER_PROMPT,
                types.Part.from_bytes(data=photo, mime_type=photo_mime),
                'Reference hairstyle to apply:',
                types.Part.from_bytes(data=style, mime_type=style_mime),
            ]
            print("[GeminiProvider] Performing style transfer image generation")
        else:
            contents = [
                PROMPT_TEMPLATE.format(prompt=prompt),
                types.Part.from_bytes(data=photo, mime_type=photo_mime),
            ]
            print(f"[GeminiProvider] Generating hairstyle image for prompt ({len(prompt or '')} chars)")

        response = self.client.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(
                temperature=0.9,
                max_output_tokens=2048,
                candidate_count=1,
            ),
        )

        return self.extract_image(response)

    @staticmethod
    def extract_image(response) -> str:
        """
        First inline image part of the first candidate, as a data URL.

        Raises:
            ProviderUnavailable: no candidates, no parts or no image part
        """
        candidates = getattr(response, 'candidates', None) or []
        if not candidates:
            raise ProviderUnavailable('AI provider returned no candidates')

        content = getattr(candidates[0], 'content', None)
        parts = getattr(content, 'parts', None) or []

        for part in parts:
            inline = getattr(part, 'inline_data', None)
            if inline is not None and inline.data:
                mime_type = inline.mime_type or 'image/png'
                print(f"[GeminiProvider] Extracted generated image ({len(inline.data)} bytes)")
                return to_data_url(inline.data, mime_type)

        raise ProviderUnavailable()
