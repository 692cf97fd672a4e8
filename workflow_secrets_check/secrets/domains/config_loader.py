"""Configuration loader for workflow-secrets-check."""
import os
import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml

from .github_client import DEFAULT_API_URL

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "WORKFLOW_SECRETS_CHECK_CONFIG"
DEFAULT_WORKFLOWS_PATH = ".github/workflows"
DEFAULT_PREDEFINED_SECRETS = ("GITHUB_TOKEN",)

# Config key -> GitHub Actions input variable
ACTION_INPUTS = {
    "github_token": "INPUT_GITHUBTOKEN",
    "ref": "INPUT_REF",
    "predefined_secrets": "INPUT_PREDEFINEDSECRETS",
    "optional_secrets": "INPUT_OPTIONALSECRETS",
    "forbidden_secrets": "INPUT_FORBIDDENSECRETS",
}

# Config key -> runner environment variable
RUNNER_VARIABLES = {
    "github_token": "GITHUB_TOKEN",
    "repository": "GITHUB_REPOSITORY",
    "api_url": "GITHUB_API_URL",
}

LIST_KEYS = ("predefined_secrets", "optional_secrets", "forbidden_secrets")
KNOWN_KEYS = (
    "github_token", "repository", "ref", "api_url", "workflows_path",
) + LIST_KEYS

_LIST_DELIMITERS = re.compile(r"[,;\n]")
_REPOSITORY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class ConfigError(Exception):
    """Configuration error exception."""
    pass


@dataclass(frozen=True)
class CheckConfig:
    """Immutable settings for one check run."""
    github_token: str
    repository: str
    ref: Optional[str] = None
    predefined_secrets: Tuple[str, ...] = DEFAULT_PREDEFINED_SECRETS
    optional_secrets: Tuple[str, ...] = ()
    forbidden_secrets: Tuple[str, ...] = ()
    api_url: str = DEFAULT_API_URL
    workflows_path: str = DEFAULT_WORKFLOWS_PATH

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[1]


def split_list(value: Any) -> Tuple[str, ...]:
    """
    Normalise a list input.

    Accepts a YAML list or a string delimited by commas, semicolons or
    newlines. Entries are trimmed and empty entries dropped.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        items: Iterable[Any] = _LIST_DELIMITERS.split(value)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ConfigError(f"Expected a list or delimited string, got {type(value).__name__}: {value!r}")

    return tuple(str(item).strip() for item in items if item is not None and str(item).strip())


def load_config_file(config_path: str) -> Dict[str, Any]:
    """
    Load settings from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable, not a mapping or has unknown keys
    """
    if not os.path.exists(config_path):
        raise ConfigError(
            f"Configuration file not found at: {config_path}\n"
            f"Pass --config with an existing file or unset {CONFIG_PATH_ENV}."
        )

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if data is None:
        logger.warning(f"Config file at {config_path} is empty")
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(KNOWN_KEYS))
    if unknown:
        raise ConfigError(
            f"Unknown keys in config at {config_path}: {', '.join(unknown)}\n"
            f"Supported keys: {', '.join(KNOWN_KEYS)}"
        )

    logger.info(f"Configuration loaded from {config_path}")
    return data


def _from_environment(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    # Runner variables first so explicit action inputs win
    for key, variable in RUNNER_VARIABLES.items():
        if env.get(variable):
            values[key] = env[variable]
    for key, variable in ACTION_INPUTS.items():
        # Unset action inputs arrive as empty strings
        if env.get(variable, "").strip():
            values[key] = env[variable]
    return values


def load_config(
    env: Optional[Mapping[str, str]] = None,
    config_path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CheckConfig:
    """
    Build the run configuration.

    Priority order, lowest first:
    1. Defaults
    2. YAML config file (`config_path` or $WORKFLOW_SECRETS_CHECK_CONFIG)
    3. Runner environment and GitHub Actions inputs (INPUT_*)
    4. Explicit overrides (CLI arguments); None values are ignored

    Raises:
        ConfigError: If the token or repository is missing or malformed
    """
    if env is None:
        env = os.environ

    values: Dict[str, Any] = {}

    config_path = config_path or env.get(CONFIG_PATH_ENV)
    if config_path:
        values.update(load_config_file(config_path))

    values.update(_from_environment(env))
    values.update({key: value for key, value in (overrides or {}).items() if value is not None})

    token = values.get("github_token")
    if not token:
        raise ConfigError(
            "Missing GitHub token.\n"
            "Set the 'githubToken' action input, the GITHUB_TOKEN environment variable,\n"
            "or 'github_token' in the config file."
        )

    repository = str(values.get("repository") or "").strip()
    if not repository:
        raise ConfigError(
            "Missing repository.\n"
            "Set GITHUB_REPOSITORY, pass --repository OWNER/REPO, or set 'repository' in the config file."
        )
    if not _REPOSITORY_PATTERN.match(repository):
        raise ConfigError(f"Invalid repository '{repository}', expected OWNER/REPO")

    lists = {key: split_list(values[key]) for key in LIST_KEYS if key in values}

    config = CheckConfig(
        github_token=str(token).strip(),
        repository=repository,
        ref=str(values["ref"]).strip() if values.get("ref") else None,
        api_url=str(values.get("api_url") or DEFAULT_API_URL),
        workflows_path=str(values.get("workflows_path") or DEFAULT_WORKFLOWS_PATH),
        **lists,
    )

    logger.debug(f"Using repository: {config.repository}")
    logger.debug(f"Using ref: {config.ref or '(default branch)'}")
    return config
