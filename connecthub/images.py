"""Build public URLs for stored image paths."""
import os
import logging
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', 'http://localhost:8000/uploads')

_BAD_FRAGMENTS = ('undefined', 'null', 'NaN')


def get_image_url(image_path: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    """Return an absolute URL for ``image_path`` or None if it can't be served.

    Windows separators are normalized and a leading slash is dropped so the
    result never contains a double slash after the base.
    """
    if not image_path or not isinstance(image_path, str) or not image_path.strip():
        return None

    base = (base_url or PUBLIC_BASE_URL).rstrip('/')
    clean_path = image_path.replace('\\', '/').strip()
    normalized = clean_path[1:] if clean_path.startswith('/') else clean_path
    final_url = f"{base}/{normalized}"

    if any(fragment in final_url for fragment in _BAD_FRAGMENTS):
        logger.warning('image url contains placeholder values: %s', final_url)
        return None

    parts = urlsplit(final_url)
    if parts.scheme not in ('http', 'https') or not parts.netloc:
        logger.warning('image url is not absolute: %s', final_url)
        return None
    return final_url


def is_valid_image_path(image_path: Optional[str]) -> bool:
    return get_image_url(image_path) is not None
