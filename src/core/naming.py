"""
Output Name Generation

Names are random-token based so that concurrent requests never collide.
"""

import uuid

from src.core.exceptions import NameGenerationError


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and make sure it starts with a dot."""
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return extension


def generate_name(prefix: str, extension: str) -> str:
    """
    Generate a unique image name.

    Args:
        prefix: Leading tag, e.g. "proc" for pipeline output
        extension: File extension the image will be stored under

    Returns:
        Name of the form "<prefix>_<32 hex chars><extension>"

    Raises:
        NameGenerationError: If the system randomness source is unavailable
    """
    try:
        token = uuid.uuid4().hex
    except (NotImplementedError, OSError) as e:
        raise NameGenerationError(details={"reason": str(e)}) from e

    return f"{prefix}_{token}{normalize_extension(extension)}"
