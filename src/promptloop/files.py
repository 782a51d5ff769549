# src/promptloop/files.py
"""Loading prompt text from files."""

import logging
from pathlib import Path
from typing import Union

import aiofiles

from .exceptions import ResourceUnavailableError

logger = logging.getLogger(__name__)


async def load_prompt_file(path: Union[str, Path], encoding: str = "utf-8") -> str:
    """
    Read a prompt file asynchronously.

    Args:
        path: Path of the file; ``~`` is expanded.
        encoding: Text encoding of the file.

    Returns:
        The raw file contents. Placeholders are not expanded here.

    Raises:
        ResourceUnavailableError: If the file is missing, unreadable or not
                                  valid text in the given encoding.
    """
    file_path = Path(path).expanduser()
    try:
        async with aiofiles.open(file_path, mode="r", encoding=encoding) as f:
            content = await f.read()
    except FileNotFoundError as e:
        raise ResourceUnavailableError(str(file_path), "Prompt file not found.") from e
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read prompt file {file_path}: {e}")
        raise ResourceUnavailableError(str(file_path), f"Cannot read prompt file: {e}.") from e
    logger.debug(f"Loaded prompt file {file_path} ({len(content)} chars)")
    return content
