"""
Design repository.

Stores each form design as a JSON file, plus a JSON list of version
snapshots taken every time the design is saved.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from formdesign.exceptions import ElementNotFoundError
from formdesign.schemas.form_schema import Form, FormVersion

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,100}$")


class DesignRepository:
    """
    File-backed storage for form designs.

    Layout:
        <designs_dir>/<id>.json            current design
        <designs_dir>/<id>.versions.json   saved snapshots, oldest first
    """

    def __init__(self, designs_dir: Path):
        self.designs_dir = designs_dir
        self.designs_dir.mkdir(parents=True, exist_ok=True)

    def _design_path(self, design_id: str) -> Path:
        if not _SAFE_ID.match(design_id):
            raise ElementNotFoundError("Design", design_id)
        return self.designs_dir / f"{design_id}.json"

    def _versions_path(self, design_id: str) -> Path:
        return self.designs_dir / f"{design_id}.versions.json"

    def exists(self, design_id: str) -> bool:
        return self._design_path(design_id).exists()

    def list_designs(self) -> list[Form]:
        """Load every stored design, most recently updated first."""
        designs = []
        for path in self.designs_dir.glob("*.json"):
            if path.name.endswith(".versions.json"):
                continue
            try:
                designs.append(Form.model_validate_json(path.read_text(encoding="utf-8")))
            except ValueError:
                logger.warning(f"Skipping unreadable design file {path}")
        designs.sort(key=lambda f: f.updatedAt, reverse=True)
        return designs

    def get(self, design_id: str) -> Form:
        path = self._design_path(design_id)
        if not path.exists():
            raise ElementNotFoundError("Design", design_id)
        return Form.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, form: Form) -> Form:
        """
        Persist a design as a new version.

        Returns:
            The stored design with its version number bumped
        """
        path = self._design_path(form.id)
        stored = form.model_copy(deep=True)
        if path.exists():
            previous = self.get(form.id)
            stored.version = previous.version + 1
            stored.createdAt = previous.createdAt
        stored.updatedAt = datetime.now(timezone.utc)

        path.write_text(json.dumps(stored.to_json_dict(), indent=2), encoding="utf-8")
        self._append_version(stored)
        logger.info(f"Saved design {stored.id} version {stored.version}")
        return stored

    def _append_version(self, form: Form) -> None:
        versions = self.versions(form.id)
        versions.append(FormVersion(designId=form.id, version=form.version, pages=form.pages))
        payload = [v.model_dump(mode="json", exclude_none=True) for v in versions]
        self._versions_path(form.id).write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def versions(self, design_id: str) -> list[FormVersion]:
        """List saved snapshots of a design, oldest first."""
        self._design_path(design_id)
        path = self._versions_path(design_id)
        if not path.exists():
            return []
        raw = json.loads(path.read_text(encoding="utf-8"))
        return [FormVersion.model_validate(item) for item in raw]

    def delete(self, design_id: str) -> bool:
        """
        Delete a design and its history.

        Returns:
            True if the design existed.
        """
        path = self._design_path(design_id)
        if not path.exists():
            return False
        path.unlink()
        versions_path = self._versions_path(design_id)
        if versions_path.exists():
            versions_path.unlink()
        logger.info(f"Deleted design {design_id}")
        return True
