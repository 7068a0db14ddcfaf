from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

DAILY_NOTES_CONFIG = Path(".obsidian") / "daily-notes.json"


@dataclass(frozen=True)
class Document:
    """A note inside the vault. `identifier` is the filename without extension."""

    identifier: str
    path: Path
    extension: str


def _normalize_folder(folder: str) -> str:
    # Vault paths are always forward-slash, relative to the vault root.
    return str(folder or "").replace("\\", "/").strip().strip("/")


class VaultStore:
    """Filesystem-backed document store rooted at an Obsidian vault.

    Reads and writes keep the file's bytes intact apart from the new text:
    line endings are not translated.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def resolve_folder(self, folder: str) -> Path | None:
        """Return the folder on disk, or None if it does not exist, is a file,
        or lies outside the vault (`..`, symlinks leading out)."""
        rel = _normalize_folder(folder)
        p = self.root / rel if rel else self.root
        if not p.resolve().is_relative_to(self.root.resolve()):
            logger.warning("Refusing folder outside the vault: %s", folder)
            return None
        return p if p.is_dir() else None

    def list_documents(self, folder: Path, extension: str = "md") -> list[Document]:
        docs: list[Document] = []
        for p in sorted(Path(folder).iterdir(), key=lambda x: x.name):
            if not p.is_file():
                continue
            ext = p.suffix[1:] if p.suffix else ""
            if ext != extension:
                continue
            docs.append(Document(identifier=p.stem, path=p, extension=ext))
        return docs

    def read(self, doc: Document) -> str:
        with doc.path.open("r", encoding="utf-8", newline="") as f:
            return f.read()

    def write(self, doc: Document, text: str) -> None:
        with doc.path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)


def daily_notes_folder_provider(vault_root: Path) -> Callable[[], str | None]:
    """Build a provider for the folder configured in Obsidian's daily-notes plugin.

    Reads `folder` from `<vault>/.obsidian/daily-notes.json`. Returns None when
    the file is missing, unreadable, or has no folder set.
    """

    config_path = Path(vault_root) / DAILY_NOTES_CONFIG

    def _provider() -> str | None:
        if not config_path.is_file():
            return None
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not read daily-notes config %s: %s", config_path, e)
            return None
        if not isinstance(data, dict):
            return None
        folder = _normalize_folder(data.get("folder") or "")
        return folder or None

    return _provider
