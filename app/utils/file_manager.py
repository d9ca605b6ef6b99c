import os
import pathlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def write_file(directory: str, filename: str, data: bytes) -> str:
    """
    Writes `data` to `directory/filename`, creating the directory if needed,
    and returns the file path.
    """
    if not filename or os.path.basename(filename) != filename:
        raise ValueError(f"Invalid file name: {filename!r}")

    pathlib.Path(directory).mkdir(parents=True, exist_ok=True)
    file_path = os.path.join(directory, filename)
    try:
        with open(file_path, "wb") as f:
            f.write(data)
    except OSError as e:
        logger.error(f"Failed to write file {file_path}: {e}")
        raise
    return file_path


def read_file(file_path: str) -> bytes:
    with open(file_path, "rb") as f:
        return f.read()


def delete_file(file_path: str) -> bool:
    """
    Deletes a file. Returns False when it was already gone; other OS errors propagate.
    """
    try:
        os.remove(file_path)
    except FileNotFoundError:
        return False
    logger.info(f"Deleted file: {file_path}")
    return True


def file_mtime(file_path: str) -> Optional[float]:
    try:
        return os.path.getmtime(file_path)
    except FileNotFoundError:
        return None
