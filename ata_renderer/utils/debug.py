"""Helpers to persist intermediate representations for debugging."""
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Sequence

from ata_renderer.model.document_model import MinutesDocument
from ata_renderer.model.elements import RasterSlice


class DebugDumper:
    """Writes intermediate artifacts onto disk for inspection."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def dump(self, model: MinutesDocument) -> None:
        """Persist the preview model as JSON for offline analysis."""
        self._write("preview_model.json", self._serialize(model))

    def dump_slices(self, slices: Sequence[RasterSlice]) -> None:
        """Persist the raster slice plan of a PDF export."""
        self._write("raster_slices.json", [self._serialize(item) for item in slices])

    def _write(self, name: str, payload: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / name).write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    def _serialize(self, value: Any) -> Any:
        if is_dataclass(value):
            return {k: self._serialize(v) for k, v in asdict(value).items()}
        if isinstance(value, dict):
            return {k: self._serialize(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._serialize(v) for v in value]
        return value
