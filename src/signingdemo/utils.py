"""Filesystem and formatting helpers."""

import os
from pathlib import Path


def write_private_file(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` readable only by the owner (mode 0600)."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        os.fchmod(f.fileno(), 0o600)
        f.write(data)


def to_hex(data: bytes | None, placeholder: str = "N/A") -> str:
    """Hex-encode bytes for display, or return ``placeholder`` if absent."""
    if data is None:
        return placeholder
    return data.hex()
