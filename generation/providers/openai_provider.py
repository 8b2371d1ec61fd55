"""
generation/providers/openai_provider.py

OpenAI vision provider.

The chat model looks at the client photo (and the reference style photo)
and writes a hairstyle consultation. The text is rendered into an SVG
preview card, which becomes the generation's output image.
"""

from typing import Optional

from openai import OpenAI

from generation.providers.base import AIProvider, load_image, to_data_url
from generation.providers import rendering
from salon.errors import ProviderUnavailable


PROMPT_TEMPLATE = """You are a professional hairstylist AI assistant. Analyze the provided client photo and describe in detail how they would look with the following hairstyle transformation: "{prompt}".

Provide a detailed, vivid, and professional description including:

1. Current Hair Analysis: Briefly describe the client's current hair (length, texture, face shape)
2. Proposed Transformation: Describe the "{prompt}" style in detail
3. How It Will Look: Explain specifically how this style will look on THIS client based on their features
4. Cutting Technique: Detail the cutting methods needed (fade levels, layering, texturizing)
5. Styling Details: Describe texture, volume, movement, and finishing
6. Face Shape Compatibility: Explain why this style works (or adaptations needed) for their face shape
7. Maintenance & Styling Tips: Provide practical daily styling advice

Be specific and create a vivid mental picture that helps the client visualize their transformation."""

STYLE_TRANSFER_PROMPT = """You are a professional hairstylist AI assistant. Analyze both images provided:
1. The client's current photo
2. The reference hairstyle they want to achieve

Provide a detailed, professional analysis of how to transform the client's hair to match the reference style:

1. Client Analysis: Describe the client's current hair, face shape, and features
2. Reference Style Analysis: Describe the key characteristics of the desired hairstyle
3. Compatibility Assessment: Explain how well this style suits the client's features
4. Adaptation Strategy: Detail any modifications needed for this specific client
5. Transformation Steps: Outline the cutting and styling process
6. Professional Tips: Share expert recommendations for best results"""


class OpenAIProvider(AIProvider):
    """
    OpenAI backend (chat completions with image input).

    Usage:
        provider = OpenAIProvider(api_key, model='gpt-4-turbo')
        result = provider.generate(photo_url, prompt='buzz cut')
    """

    def __init__(self, api_key: str, model: str, timeout: float = 60.0, client=None):
        super().__init__(timeout=timeout)
        if not api_key and client is None:
            raise ValueError("OPENAI_API_KEY is required")

        self.model = model
        self.client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def name(self) -> str:
        return 'openai'

    def image_url(self, ref: str) -> str:
        """Data URLs pass through; remote images are inlined."""
        if ref.startswith('data:'):
            return ref
        return to_data_url(*load_image(ref, self.timeout))

    def render(
        self,
        photo_ref: str,
        prompt: Optional[str],
        style_ref: Optional[str],
        variations: int
    ) -> str:
        if style_ref:
            content = [
                {'type': 'text', 'text': STYLE_TRANSFER_PROMPT},
                {'type': 'image_url', 'image_url': {'url': self.image_url(photo_ref)}},
                {'type': 'text', 'text': 'Reference hairstyle to achieve:'},
                {'type': 'image_url', 'image_url': {'url': self.image_url(style_ref)}},
            ]
            title = 'Style Transfer'
            print("[OpenAIProvider] Performing style transfer with image analysis")
        else:
            content = [
                {'type': 'text', 'text': PROMPT_TEMPLATE.format(prompt=prompt)},
                {'type': 'image_url', 'image_url': {'url': self.image_url(photo_ref)}},
            ]
            title = prompt or ''
            print("[OpenAIProvider] Analyzing image for prompt generation")

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{'role': 'user', 'content': content}],
            max_tokens=2048,
        )

        text = ''
        if response.choices:
            text = (response.choices[0].message.content or '').strip()
        if not text:
            raise ProviderUnavailable('AI provider returned an empty response')

        return rendering.consultation_card(text, title, 'Powered by OpenAI GPT-4 Vision')
