"""
Local scratch-file helpers shared by the pipeline stages.
"""

import logging
import os


logger = logging.getLogger(__name__)


def discard_file(path: str | None) -> bool:
    """
    Remove a local artifact if it exists.

    Cleanup must never mask the error that triggered it, so failures to
    delete are logged and reported through the return value instead of
    raised.

    Returns:
        bool: True if a file was removed.
    """
    if not path:
        return False

    try:
        os.unlink(path)
    except FileNotFoundError:
        return False
    except OSError as cleanup_error:
        logger.warning("Failed to clean up local file '%s': %s", path, str(cleanup_error))
        return False

    logger.debug("Cleaned up local file: %s", path)
    return True
