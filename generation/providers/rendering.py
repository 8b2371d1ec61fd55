"""
generation/providers/rendering.py

SVG preview cards.

Used by the stub provider (placeholder previews) and the OpenAI provider
(text consultation rendered as an image). Output is a base64 SVG data URL
so it can be stored and displayed like any other image reference.

Version History:
    2025-11-04: Initial implementation
"""

import base64
from typing import List


def escape_xml(text: str) -> str:
    return (
        text.replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
        .replace('"', '&quot;')
        .replace("'", '&apos;')
    )


def truncate(text: str, limit: int) -> str:
    return text[:limit] + ('...' if len(text) > limit else '')


def wrap_text(text: str, max_chars: int) -> List[str]:
    """Greedy word wrap. Words longer than max_chars get their own line."""
    lines = []
    current = ''

    for word in text.split():
        candidate = f'{current} {word}' if current else word
        if len(candidate) > max_chars and current:
            lines.append(current)
            current = word
        else:
            current = candidate

    if current:
        lines.append(current)

    return lines


def svg_data_url(svg: str) -> str:
    return 'data:image/svg+xml;base64,' + base64.b64encode(svg.encode('utf-8')).decode('ascii')


# =============================================================================
# CARDS
# =============================================================================

def prompt_placeholder(prompt: str, fingerprint: str) -> str:
    svg = f'''<svg width="512" height="512" xmlns="http://www.w3.org/2000/svg">
  <rect width="512" height="512" fill="#f3f4f6"/>
  <text x="256" y="200" font-family="Arial" font-size="24" fill="#6b7280" text-anchor="middle">AI Generated Result</text>
  <text x="256" y="250" font-family="Arial" font-size="16" fill="#9ca3af" text-anchor="middle">Prompt: {escape_xml(truncate(prompt, 40))}</text>
  <text x="256" y="300" font-family="Arial" font-size="14" fill="#d1d5db" text-anchor="middle">[Placeholder Preview]</text>
  <text x="256" y="480" font-family="monospace" font-size="10" fill="#d1d5db" text-anchor="middle">{fingerprint}</text>
</svg>'''
    return svg_data_url(svg)


def style_placeholder(fingerprint: str) -> str:
    svg = f'''<svg width="512" height="512" xmlns="http://www.w3.org/2000/svg">
  <rect width="512" height="512" fill="#fef3c7"/>
  <text x="256" y="180" font-family="Arial" font-size="24" fill="#92400e" text-anchor="middle">Style Transfer Result</text>
  <text x="256" y="230" font-family="Arial" font-size="16" fill="#b45309" text-anchor="middle">Hair Style Reference Applied</text>
  <rect x="206" y="250" width="100" height="100" fill="#fbbf24" stroke="#d97706" stroke-width="2" rx="8"/>
  <text x="256" y="305" font-family="Arial" font-size="12" fill="#78350f" text-anchor="middle">Style Sample</text>
  <text x="256" y="380" font-family="Arial" font-size="14" fill="#d97706" text-anchor="middle">[Placeholder Preview]</text>
  <text x="256" y="480" font-family="monospace" font-size="10" fill="#d97706" text-anchor="middle">{fingerprint}</text>
</svg>'''
    return svg_data_url(svg)


def consultation_card(description: str, title: str, powered_by: str) -> str:
    """Render a text consultation as an 800x1000 card."""
    # ~0.6em per character at 14px over a 640px column
    lines = wrap_text(description, max_chars=int(640 / (14 * 0.6)))[:30]
    body = '\n  '.join(
        f'<text x="80" y="{320 + i * 22}" font-family="Arial, sans-serif" font-size="14" fill="#444">{escape_xml(line)}</text>'
        for i, line in enumerate(lines)
    )

    svg = f'''<svg width="800" height="1000" xmlns="http://www.w3.org/2000/svg">
  <defs>
    <linearGradient id="grad1" x1="0%" y1="0%" x2="0%" y2="100%">
      <stop offset="0%" style="stop-color:#667eea;stop-opacity:1"/>
      <stop offset="100%" style="stop-color:#764ba2;stop-opacity:1"/>
    </linearGradient>
  </defs>
  <rect width="800" height="1000" fill="url(#grad1)"/>
  <rect x="40" y="40" width="720" height="920" fill="white" rx="20"/>
  <text x="400" y="100" font-family="Arial, sans-serif" font-size="32" font-weight="bold" fill="#667eea" text-anchor="middle">AI Hairstyle Preview</text>
  <text x="400" y="140" font-family="Arial, sans-serif" font-size="16" fill="#764ba2" text-anchor="middle">{escape_xml(powered_by)}</text>
  <line x1="100" y1="160" x2="700" y2="160" stroke="#e0e0e0" stroke-width="2"/>
  <text x="80" y="200" font-family="Arial, sans-serif" font-size="18" font-weight="bold" fill="#333">Requested Style:</text>
  <text x="80" y="230" font-family="Arial, sans-serif" font-size="14" fill="#666" font-style="italic">{escape_xml(truncate(title, 80))}</text>
  <text x="80" y="280" font-family="Arial, sans-serif" font-size="18" font-weight="bold" fill="#333">AI Analysis &amp; Visualization:</text>
  {body}
</svg>'''
    return svg_data_url(svg)
