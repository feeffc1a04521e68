"""File-backed storage for named header templates."""
from __future__ import annotations

import json
import time
from dataclasses import asdict
from pathlib import Path
from typing import List

from ata_renderer.model.elements import HeaderTemplate
from ata_renderer.model.errors import TemplateNotFoundError
from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


class HeaderTemplateStore:
    """Keeps saved header templates as a JSON list on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def list(self) -> List[HeaderTemplate]:
        if not self.path.exists():
            return []
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.error("Failed to parse saved headers in %s", self.path)
            raise
        return [self._from_dict(item) for item in payload]

    def get(self, template_id: str) -> HeaderTemplate:
        for template in self.list():
            if template.id == template_id:
                return template
        raise TemplateNotFoundError(template_id)

    def save(self, name: str, html: str, footer_text: str = "") -> HeaderTemplate:
        """Store a new named template and return it with its generated id."""
        if not name.strip():
            raise ValueError("Template name must not be empty")
        templates = self.list()
        template = HeaderTemplate(id=self._next_id(templates), name=name.strip(), html=html, footer_text=footer_text)
        templates.append(template)
        self._write(templates)
        LOGGER.info("Saved header template %r (%s)", template.name, template.id)
        return template

    def delete(self, template_id: str) -> None:
        templates = self.list()
        remaining = [t for t in templates if t.id != template_id]
        if len(remaining) == len(templates):
            raise TemplateNotFoundError(template_id)
        self._write(remaining)

    # ------------------------------------------------------------------
    # Serialization
    def _write(self, templates: List[HeaderTemplate]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [asdict(t) for t in templates]
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    @staticmethod
    def _next_id(templates: List[HeaderTemplate]) -> str:
        candidate = int(time.time() * 1000)
        taken = {t.id for t in templates}
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    @staticmethod
    def _from_dict(item: dict) -> HeaderTemplate:
        return HeaderTemplate(
            id=str(item["id"]),
            name=item.get("name", ""),
            html=item.get("html", ""),
            footer_text=item.get("footer_text", item.get("footer", "")),
        )
