"""
sdlc init - Create the .sdlc directory, state and default config.
"""

import logging
from pathlib import Path

import yaml

from sdlc.lib import paths
from sdlc.lib.config import Config
from sdlc.lib.io import ensure_dir, write_if_missing
from sdlc.model.state import State

logger = logging.getLogger(__name__)


def cmd_init(args, root: Path, config: Config) -> int:
    """Initialize a project. Existing files are left untouched."""
    ensure_dir(paths.features_dir(root))
    ensure_dir(paths.milestones_dir(root))

    name = args.name or root.resolve().name
    config.project.name = config.project.name or name

    wrote_config = write_if_missing(
        paths.config_path(root),
        yaml.safe_dump(config.to_dict(), sort_keys=False),
    )
    wrote_state = write_if_missing(
        paths.state_path(root),
        yaml.safe_dump(State(project=name).to_dict(), sort_keys=False),
    )

    if not wrote_config and not wrote_state:
        print(f"Already initialized: {paths.sdlc_dir(root)}")
        return 0

    print(f"Initialized {paths.sdlc_dir(root)} for project '{name}'")
    return 0
