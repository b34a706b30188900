"""Content fingerprints."""

import hashlib
from pathlib import Path

CHUNK_SIZE = 1 << 20


class FingerprintError(Exception):
    """Raised when a file's content cannot be read."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot fingerprint {path}: {reason}")


class ContentFingerprinter:
    """Computes SHA-256 digests of file content.

    The digest depends on the bytes only, never on the path or mtime.
    """

    algorithm = "sha256"

    def fingerprint(self, path: str | Path) -> str:
        """Return the hex digest of the file's current content."""
        digest = hashlib.new(self.algorithm)
        try:
            with open(path, "rb") as handle:
                for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
                    digest.update(chunk)
        except OSError as e:
            raise FingerprintError(Path(path), e.strerror or str(e)) from e
        return digest.hexdigest()
