"""
Constants for the sdlc engine.
"""

import re

SDLC_DIR = ".sdlc"
CONFIG_FILE = "config.yaml"
STATE_FILE = "state.yaml"
MANIFEST_FILE = "manifest.yaml"
WAVE_PLAN_FILE = "wave_plan.yaml"

FEATURES_DIR = "features"
MILESTONES_DIR = "milestones"
LOCKS_DIR = "locks"

# Slugs: lowercase alphanumerics and hyphens, no leading/trailing hyphen
SLUG_PATTERN = re.compile(r'[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?')
MAX_SLUG_LEN = 64

HISTORY_LIMIT = 200

# Gate runner
DEFAULT_GATE_TIMEOUT = 60
MAX_GATE_OUTPUT = 10 * 1024
MAX_RETRIES_WARNING = 10

LOCK_TIMEOUT = 30
