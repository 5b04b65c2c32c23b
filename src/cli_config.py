"""CLI configuration overrides for runtime tunables (registry URL, timeouts).

Kept out of spm.py to keep the entrypoint slim. Precedence, lowest first:
built-in defaults, YAML config file, environment variables, CLI flags.
"""

from __future__ import annotations

import logging
import os

from constants import Constants, _load_yaml_config, apply_config

logger = logging.getLogger(__name__)


def apply_overrides(args) -> None:
    """Apply config file, environment and CLI overrides onto Constants."""
    cfg = _load_yaml_config(getattr(args, "CONFIG", None))
    if cfg:
        apply_config(cfg)

    env_registry = os.environ.get(Constants.ENV_REGISTRY_URL)
    if env_registry and env_registry.strip():
        Constants.REGISTRY_URL = env_registry.strip().rstrip("/")

    if getattr(args, "REGISTRY", None):
        Constants.REGISTRY_URL = args.REGISTRY.rstrip("/")

    logger.debug("Using registry %s", Constants.REGISTRY_URL)
