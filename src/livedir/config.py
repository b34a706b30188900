"""Server configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5444

# Quiet period before a burst of filesystem notifications is flushed as one batch.
DEBOUNCE_SECONDS = 0.25

# Build output directory that is never tracked (in addition to dot-directories).
DEFAULT_EXCLUDED_DIRS: tuple[str, ...] = ("target",)


@dataclass
class ServerConfig:
    """Configuration for a livedir server."""

    root: Path = field(default_factory=Path.cwd)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    debounce_seconds: float = DEBOUNCE_SECONDS
    excluded_dirs: tuple[str, ...] = DEFAULT_EXCLUDED_DIRS

    # None keeps the ledger in memory
    ledger_path: Path | None = None

    def __post_init__(self) -> None:
        self.root = Path(os.path.normpath(os.path.abspath(self.root)))
        self.excluded_dirs = tuple(dict.fromkeys(self.excluded_dirs))
