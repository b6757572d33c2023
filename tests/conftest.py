"""Shared fixtures: an initialized project root and feature helpers."""

import pytest

from sdlc.lib.config import Config
from sdlc.model.feature import Feature
from sdlc.model.state import State


@pytest.fixture
def root(tmp_path):
    """A project root with .sdlc/state.yaml and no config (defaults)."""
    State(project="demo").save(tmp_path)
    return tmp_path


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def state():
    return State(project="demo")


@pytest.fixture
def make_feature(root):
    """Create a persisted feature registered as active."""
    def _make(slug, title=None, description=None, dependencies=None):
        feature = Feature.create(root, slug, title or slug, description)
        for dep in dependencies or []:
            feature.add_dependency(dep)
        feature.save(root)
        state = State.load(root)
        state.add_active_feature(slug)
        state.save(root)
        return feature
    return _make
