"""File and spec document loading.

``FileLoader`` reads and writes the structured documents the engine consumes
(test definitions, examples, ARM templates).  ``SpecLoader`` turns a spec file
into a :class:`SpecDocument`; ``$ref`` resolution inside the document is left
to :mod:`src.scenario_engine.services.schema_model`.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from src.shared.errors import NotFoundError, ParsingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecDocument:
    """A parsed spec file."""
    file_path: str
    document: dict[str, Any]


class FileLoader:
    """Reads and writes files, resolving relative paths against *root*."""

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root).resolve() if root is not None else None

    def resolve(self, file_path: str | Path) -> Path:
        """Return the absolute, normalized path for *file_path*."""
        path = Path(file_path)
        if not path.is_absolute() and self._root is not None:
            path = self._root / path
        return path.resolve()

    def relative_path(self, file_path: str | Path) -> str:
        """Return *file_path* relative to the root when it lives below it."""
        path = self.resolve(file_path)
        base = self._root if self._root is not None else Path.cwd()
        try:
            return path.relative_to(base).as_posix()
        except ValueError:
            return path.as_posix()

    def load(self, file_path: str | Path) -> str:
        path = self.resolve(file_path)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(detail=f"File not found: {path}") from exc

    def load_structured(self, file_path: str | Path) -> Any:
        """Load a JSON or YAML document.

        ``.json`` files are parsed with :mod:`json`; everything else goes
        through ``yaml.safe_load``.
        """
        path = self.resolve(file_path)
        content = self.load(path)
        try:
            if path.suffix.lower() == ".json":
                return json.loads(content)
            return yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ParsingError(detail=f"Failed to parse {path}: {exc}") from exc

    def write_file(self, file_path: str | Path, content: str) -> None:
        path = self.resolve(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s (%d bytes)", path, len(content))


class SpecLoader:
    """Loads spec documents from disk."""

    def __init__(self, file_loader: FileLoader | None = None) -> None:
        self._file_loader = file_loader or FileLoader()

    def load(self, spec_file_path: str | Path) -> SpecDocument:
        path = self._file_loader.resolve(spec_file_path)
        document = self._file_loader.load_structured(path)
        if not isinstance(document, dict):
            raise ParsingError(detail=f"Spec document must be an object: {path}")
        logger.debug("Loaded spec %s", path)
        return SpecDocument(file_path=str(path), document=document)
