"""
sdlc config validate - Check config.yaml and report warnings.
"""

from pathlib import Path

from sdlc.lib.config import Config


def cmd_config_validate(args, root: Path, config: Config) -> int:
    """The config was already schema-validated on load; report soft warnings."""
    warnings = config.validate()
    if not warnings:
        print("Config OK")
        return 0
    for warning in warnings:
        print(f"WARNING: {warning}")
    return 1 if args.strict else 0
