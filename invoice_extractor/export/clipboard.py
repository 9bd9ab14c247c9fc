"""System clipboard delivery of exported text."""

import logging

import pyperclip

logger = logging.getLogger(__name__)


def copy_to_clipboard(text: str) -> bool:
    """
    Put text on the system clipboard.

    Returns:
        True on success, False if no clipboard is available or the write failed
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        logger.error(f"Failed to copy export to clipboard: {e}")
        return False
    logger.info(f"Copied {len(text):,} characters to clipboard")
    return True
