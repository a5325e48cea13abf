"""Tests for the on-disk artifact store."""

from __future__ import annotations

import os

import pytest

from archaeologist.errors import CaseNotFound
from archaeologist.reporting.artifacts import ArtifactStore
from archaeologist.reporting.models import InvestigationResult


def _result(case_id: str, confidence: int = 80) -> InvestigationResult:
    return InvestigationResult(
        case_id=case_id,
        file_path="src/scheduler.ts",
        narrative="Narrative.",
        summary="Summary.",
        confidence=confidence,
    )


@pytest.fixture
def store(tmp_path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "reports")


def test_save_and_get(store, tmp_path):
    path = store.save(_result("abc123", confidence=71))

    assert path.endswith("investigation_abc123.json")
    loaded = store.get("abc123")
    assert loaded.confidence == 71
    assert loaded.summary == "Summary."


def test_get_unknown_case(store):
    with pytest.raises(CaseNotFound):
        store.get("doesnotexist")


def test_get_rejects_path_like_ids(store):
    with pytest.raises(CaseNotFound):
        store.get("../secret")


def test_list_newest_first(store):
    old = store.save(_result("old1"))
    new = store.save(_result("new1"))
    os.utime(old, (1_000_000, 1_000_000))
    os.utime(new, (2_000_000, 2_000_000))

    assert [r.case_id for r in store.list_reports()] == ["new1", "old1"]
    assert [r.case_id for r in store.list_reports(limit=1)] == ["new1"]


def test_list_skips_corrupt_files(store, tmp_path):
    store.save(_result("good1"))
    (tmp_path / "reports" / "investigation_bad.json").write_text("{not json")

    assert [r.case_id for r in store.list_reports()] == ["good1"]


def test_save_markdown(store):
    path = store.save_markdown(_result("0123456789"))
    assert path.endswith("investigation-01234567.md")
    with open(path) as f:
        assert f.read().startswith("# Code Archaeology Investigation Report")
