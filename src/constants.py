"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    SCRIPT_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL = "https://registry.yarnpkg.com"
    MANIFEST_FILE = "spm-package.json"
    PACKAGE_JSON_FILE = "package.json"
    STORE_DIR = "spm_node_modules"
    BIN_DIR = ".bin"
    LIFECYCLE_SCRIPTS = ("preinstall", "install", "postinstall")
    LOCAL_PATH_PREFIXES = ("/", "./", "../")
    # Registry tarballs wrap their contents in a single "package/" directory
    PACKAGE_ARCHIVE_SKIP_SEGMENTS = 1
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_MAX_CONNECTIONS = 50
    USER_AGENT = "spm/0.1"

    ENV_CONFIG = "SPM_CONFIG"
    ENV_REGISTRY_URL = "SPM_REGISTRY_URL"
    ENV_LOG_LEVEL = "SPM_LOG_LEVEL"
    DEFAULT_CONFIG_PATHS = (
        "spm.yml",
        "spm.yaml",
        os.path.join("~", ".config", "spm", "spm.yml"),
    )


def _candidate_config_paths() -> list:
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        return [env_path]
    return [os.path.expanduser(p) for p in Constants.DEFAULT_CONFIG_PATHS]


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first YAML configuration file found.

    Args:
        path: Explicit config path; when omitted the SPM_CONFIG env var and the
            default locations are tried in order.

    Returns:
        dict: Parsed configuration, or an empty dict when none is found.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    paths = [path] if path else _candidate_config_paths()
    for candidate in paths:
        if not candidate or not os.path.isfile(candidate):
            continue
        with open(candidate, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                logger.warning("Ignoring unreadable config %s: %s", candidate, exc)
                return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top level must be a mapping", candidate)
            return {}
        logger.debug("Loaded config from %s", candidate)
        return data
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply a parsed config mapping onto Constants."""
    registry = cfg.get("registry") or {}
    if isinstance(registry, dict) and registry.get("url"):
        Constants.REGISTRY_URL = str(registry["url"]).rstrip("/")

    http = cfg.get("http") or {}
    if isinstance(http, dict):
        if http.get("timeout") is not None:
            Constants.REQUEST_TIMEOUT = int(http["timeout"])
        if http.get("max_connections") is not None:
            Constants.HTTP_MAX_CONNECTIONS = int(http["max_connections"])
