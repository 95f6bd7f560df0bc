"""
Deployment configuration.

Values come from environment-style keys: a ``.deployment`` dotenv file in the tree root,
overridden by the process environment, overridden by explicit keyword overrides.
"""
import json
import os
from typing import List, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from depcore.errors import ConfigError
from depcore.logs import warn

CONFIG_FILE = ".deployment"

DEFAULT_REGISTRY_FILE = "azure.deps.js"
DEFAULT_DIST_FOLDER = "dist"
DEFAULT_ENTRY_FILE = "index.js"
DEFAULT_REGISTRY_GLOBAL = "azureDeps"
DEFAULT_DEPTH_THRESHOLD = 2


def default_exclude_folders(dist_folder=DEFAULT_DIST_FOLDER):
    return [".git", ".deploy", ".idea", "node_modules", dist_folder, "package.json",
            ".deployment", ".gitignore", ".gitmodules", ".npmignore"]


# env key -> DeployConfig field
ENV_KEYS = {
    "DEPLOYMENT_SOURCE": "root",
    "WEBPACK_OUTPUT_FILE": "registry_file",
    "DEPLOY_DIST_FOLDER": "dist_folder",
    "DEPLOY_ENTRY_FILE": "entry_file",
    "DEPLOY_REGISTRY_GLOBAL": "registry_global",
    "DEPLOY_EXCLUDE_FOLDERS": "exclude_folders",
    "DEPLOY_EXCLUDE_FILES": "exclude_files",
    "DEPLOY_BUNDLER_COMMAND": "bundler_command",
    "DEPLOY_MATCH_DEPTH": "depth_threshold",
    "DEPLOY_IN_PLACE": "in_place",
}


class DeployConfig(BaseModel):
    """Validated settings for one run."""
    root: str
    registry_file: str = DEFAULT_REGISTRY_FILE
    dist_folder: str = DEFAULT_DIST_FOLDER
    entry_file: str = DEFAULT_ENTRY_FILE
    registry_global: str = DEFAULT_REGISTRY_GLOBAL
    exclude_folders: List[str] = Field(default_factory=list)
    exclude_files: List[str] = Field(default_factory=list)
    bundler_command: Optional[str] = None
    depth_threshold: int = Field(default=DEFAULT_DEPTH_THRESHOLD, ge=1)
    in_place: bool = False

    @field_validator("root")
    @classmethod
    def _absolute_root(cls, value):
        return os.path.normpath(os.path.abspath(value))

    @field_validator("registry_global")
    @classmethod
    def _identifier(cls, value):
        if not value.replace("$", "_").isidentifier():
            raise ValueError(f"{value!r} is not a valid JavaScript identifier")
        return value

    @model_validator(mode="after")
    def _exclusions(self):
        if not self.exclude_folders:
            self.exclude_folders = default_exclude_folders(self.dist_folder)
        elif self.dist_folder not in self.exclude_folders:
            self.exclude_folders = self.exclude_folders + [self.dist_folder]
        return self

    @property
    def registry_path(self):
        return os.path.join(self.root, self.registry_file)

    @property
    def dist_path(self):
        return os.path.join(self.root, self.dist_folder)

    @property
    def excluded_paths(self):
        """Absolute paths of the excluded top-level entries."""
        return {os.path.join(self.root, name) for name in self.exclude_folders}

    def output_path(self, entry_path):
        """Where a rewritten entry module goes: in place, or mirrored under the dist folder."""
        if self.in_place:
            return entry_path
        return os.path.join(self.dist_path, os.path.relpath(entry_path, self.root))

    def to_env(self):
        """Environment-style key/value pairs, as written by `deppack init`."""
        values = {}
        for key, field in ENV_KEYS.items():
            value = getattr(self, field)
            if field == "root" or value is None:
                continue
            if isinstance(value, list):
                value = json.dumps(value)
            elif isinstance(value, bool):
                value = "true" if value else "false"
            values[key] = str(value)
        return values


def _parse_json_list(key, raw, allow_empty=False):
    """Parse a JSON array setting; None (use default) when unset or malformed."""
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = None
    if not isinstance(value, list) or (not value and not allow_empty) or not all(isinstance(v, str) for v in value):
        warn(f"{key} is not set to a JSON array of strings. Values defaulted.")
        return None
    return value


def collect_settings(root=None, env_file=None, environ=None):
    """Merge .deployment file values with the environment, keyed by env name."""
    environ = os.environ if environ is None else environ
    root = root or environ.get("DEPLOYMENT_SOURCE") or os.getcwd()
    env_file = env_file or os.path.join(root, CONFIG_FILE)
    settings = {}
    if os.path.isfile(env_file):
        settings.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    settings.update({k: v for k, v in environ.items() if k in ENV_KEYS})
    settings["DEPLOYMENT_SOURCE"] = root
    return settings


def load_config(root=None, env_file=None, environ=None, **overrides):
    """
    Build a DeployConfig.

    Args:
        root: tree root; defaults to DEPLOYMENT_SOURCE, then the current directory
        env_file: dotenv file to read (default: <root>/.deployment)
        environ: environment mapping (default: os.environ)
        **overrides: DeployConfig fields that win over every other source (None is ignored)

    Raises:
        ConfigError: if a value is present but invalid
    """
    settings = collect_settings(root, env_file, environ)
    values = {}
    for key, raw in settings.items():
        field = ENV_KEYS.get(key)
        if field is None:
            continue
        if field in ("exclude_folders", "exclude_files"):
            raw = _parse_json_list(key, raw, allow_empty=(field == "exclude_files"))
            if raw is None:
                continue
        elif field == "in_place":
            raw = str(raw).strip().lower() in ("1", "true", "yes", "on")
        elif raw == "":
            continue
        values[field] = raw
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return DeployConfig(**values)
    except ValidationError as e:
        problems = [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]
        raise ConfigError("Invalid deployment configuration", details=problems, cause=e)
