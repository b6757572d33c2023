"""
On-disk layout of a project's .sdlc directory.

    .sdlc/config.yaml
    .sdlc/state.yaml
    .sdlc/features/<slug>/manifest.yaml
    .sdlc/milestones/<slug>/manifest.yaml
    .sdlc/milestones/<slug>/wave_plan.yaml
"""

from pathlib import Path

from sdlc.lib.constants import (
    SDLC_DIR, CONFIG_FILE, STATE_FILE, MANIFEST_FILE, WAVE_PLAN_FILE,
    FEATURES_DIR, MILESTONES_DIR, LOCKS_DIR, SLUG_PATTERN, MAX_SLUG_LEN,
)
from sdlc.lib.errors import InvalidSlug


def validate_slug(slug: str) -> None:
    """Raise InvalidSlug unless slug is 1-64 lowercase alphanumerics/hyphens."""
    if not slug or len(slug) > MAX_SLUG_LEN or not SLUG_PATTERN.fullmatch(slug):
        raise InvalidSlug(slug)


def sdlc_dir(root: Path) -> Path:
    return root / SDLC_DIR


def config_path(root: Path) -> Path:
    return sdlc_dir(root) / CONFIG_FILE


def state_path(root: Path) -> Path:
    return sdlc_dir(root) / STATE_FILE


def features_dir(root: Path) -> Path:
    return sdlc_dir(root) / FEATURES_DIR


def feature_dir(root: Path, slug: str) -> Path:
    return features_dir(root) / slug


def feature_manifest(root: Path, slug: str) -> Path:
    return feature_dir(root, slug) / MANIFEST_FILE


def milestones_dir(root: Path) -> Path:
    return sdlc_dir(root) / MILESTONES_DIR


def milestone_dir(root: Path, slug: str) -> Path:
    return milestones_dir(root) / slug


def milestone_manifest(root: Path, slug: str) -> Path:
    return milestone_dir(root, slug) / MANIFEST_FILE


def wave_plan_path(root: Path, slug: str) -> Path:
    return milestone_dir(root, slug) / WAVE_PLAN_FILE


def locks_dir(root: Path) -> Path:
    return sdlc_dir(root) / LOCKS_DIR


def artifact_rel_path(slug: str, filename: str) -> str:
    """Project-relative artifact path, as stored in the feature manifest."""
    return f"{SDLC_DIR}/{FEATURES_DIR}/{slug}/{filename}"
