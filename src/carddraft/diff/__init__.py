"""Artifact diff between two Drafts."""
from __future__ import annotations

from carddraft.diff.diff import ARTIFACT_KEYS, MAX_CHANGED_PATHS, ArtifactDiff, draft_artifact_diff

__all__ = ["ARTIFACT_KEYS", "MAX_CHANGED_PATHS", "ArtifactDiff", "draft_artifact_diff"]
