from __future__ import annotations

import os
import tempfile
from pathlib import Path


def write_private_text(path: Path, text: str) -> None:
    """Atomically replace ``path`` with ``text``, readable by the owner only.

    The temporary file is created ``0o600`` before any content is written,
    so secrets are never visible with looser permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    )
    tmp_path = fd.name
    try:
        os.chmod(tmp_path, 0o600)
        fd.write(text)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        os.replace(tmp_path, path)
    except BaseException:
        fd.close()
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
