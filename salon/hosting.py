"""
salon/hosting.py

Image hosting client (ImgBB).

Client photos are not stored on our disk. They are forwarded to ImgBB
and only the returned URL is kept on the Image row.

Version History:
    2025-11-04: Initial implementation
"""

import base64

import requests

from salon import config
from salon.errors import ImageHostingError


def upload_image(data: bytes) -> str:
    """
    Upload raw image bytes to ImgBB.

    Args:
        data: Image file content

    Returns:
        Public URL of the hosted image

    Raises:
        ImageHostingError: missing API key, network failure or bad answer
    """
    if not config.IMGBB_API_KEY:
        raise ImageHostingError('Image upload failed: ImgBB API key not configured')

    payload = {
        'key': config.IMGBB_API_KEY,
        'image': base64.b64encode(data).decode('ascii'),
    }

    try:
        response = requests.post(
            config.IMGBB_UPLOAD_URL,
            data=payload,
            timeout=config.IMGBB_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        print(f"[Hosting] ImgBB request failed: {e}")
        raise ImageHostingError(f'Image upload failed: {e}') from e

    if response.status_code != 200:
        try:
            message = response.json().get('error', {}).get('message') or 'Unknown error'
        except ValueError:
            message = 'Unknown error'
        print(f"[Hosting] ImgBB error: {response.status_code} - {message}")
        raise ImageHostingError(f'Image upload failed: {message}')

    try:
        url = response.json()['data']['url']
    except (ValueError, KeyError, TypeError) as e:
        raise ImageHostingError('Image upload failed: unexpected response') from e

    print(f"[Hosting] ImgBB upload successful: {url}")
    return url
