"""Atomic JSON file writes shared by the on-disk stores."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional


def write_json_atomic(path: Path, data: Any, prefix: str = "data_",
                      indent: Optional[int] = 2, mode: Optional[int] = None) -> None:
    """
    Write data as JSON to path via a temp file in the same directory.

    Readers see either the old file or the new one, never a partial write.

    Args:
        path: Destination file.
        data: JSON-serialisable value.
        prefix: Temp file name prefix.
        indent: json.dump indent.
        mode: Optional permission bits applied before the file is visible.

    Raises:
        OSError, TypeError, ValueError: The write failed; no temp file is left behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path = tempfile.mkstemp(suffix='.tmp', prefix=prefix, dir=path.parent)
    try:
        if mode is not None:
            os.chmod(temp_path, mode)
        with os.fdopen(temp_fd, 'w') as f:
            json.dump(data, f, indent=indent)
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
