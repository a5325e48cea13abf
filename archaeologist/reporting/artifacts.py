"""Investigation artifact storage — persists results and their markdown exports."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from archaeologist.config import settings
from archaeologist.errors import CaseNotFound
from archaeologist.reporting.markdown import export_markdown
from archaeologist.reporting.models import InvestigationResult

logger = logging.getLogger("archaeologist.reporting")


class ArtifactStore:
    """Persist investigation results as JSON, one file per case."""

    def __init__(self, directory: str | Path | None = None) -> None:
        self._dir = Path(directory or settings.artifacts_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, case_id: str) -> Path:
        return self._dir / f"investigation_{case_id}.json"

    def save(self, result: InvestigationResult) -> str:
        """Save a result to disk and return the file path."""
        filepath = self._path(result.case_id)
        filepath.write_text(result.model_dump_json(indent=2))
        logger.info("Report saved: %s", filepath)
        return str(filepath)

    def save_markdown(self, result: InvestigationResult) -> str:
        export = export_markdown(result)
        filepath = self._dir / export.filename
        filepath.write_text(export.content)
        logger.info("Markdown export saved: %s", filepath)
        return str(filepath)

    def list_reports(self, limit: int = 20) -> list[InvestigationResult]:
        """List recent results, newest first."""
        files = sorted(
            self._dir.glob("investigation_*.json"),
            key=lambda f: f.stat().st_mtime,
            reverse=True,
        )[:limit]
        reports = []
        for f in files:
            try:
                reports.append(InvestigationResult.model_validate_json(f.read_text()))
            except (OSError, ValidationError):
                logger.exception("Failed to read report: %s", f)
        return reports

    def get(self, case_id: str) -> InvestigationResult:
        filepath = self._path(case_id)
        if not case_id.isalnum() or not filepath.is_file():
            raise CaseNotFound(case_id)
        return InvestigationResult.model_validate_json(filepath.read_text())
