"""
Bundler drivers.

The downstream bundler is an opaque collaborator: it is handed the registry module as its
only entry and reports either packing errors or the list of files it physically packed.
"""
import json
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from typing import Any, List

from pydantic import BaseModel, Field

from depcore.errors import BundlerError
from depcore.logs import debug_log


class BundleReport(BaseModel):
    success: bool = True
    packed_files: List[str] = Field(default_factory=list)
    warnings: List[Any] = Field(default_factory=list)


class Bundler(ABC):
    """Abstract base class for bundler drivers."""

    @abstractmethod
    def bundle(self, entry: str, output_dir: str) -> BundleReport:
        pass


def parse_stats(output):
    """Parse JSON stats from bundler stdout, tolerating leading log noise. None if absent."""
    output = output or ""
    try:
        return json.loads(output)
    except json.JSONDecodeError:
        start = output.find("{")
        if start < 0:
            return None
        try:
            return json.loads(output[start:])
        except json.JSONDecodeError:
            return None


def packed_files_from_stats(stats):
    """Module identifiers that are real project files (path-like and not under node_modules)."""
    files = []
    for module in stats.get("modules") or []:
        # Loader chains look like "loader!loader!/abs/file.js"
        identifier = str(module.get("identifier", "")).split("!")[-1]
        if os.sep in identifier and "node_modules" not in identifier:
            files.append(identifier)
    return files


class CommandBundler(Bundler):
    """
    Runs a bundler command that prints webpack-style JSON stats on stdout.

    The command template may use {entry}, {output} and {filename} placeholders, e.g.
    ``npx webpack --entry {entry} --output-path {output} --output-filename {filename} --json``.
    """

    def __init__(self, command, cwd=None):
        self.command = command
        self.cwd = cwd

    def build_argv(self, entry, output_dir):
        values = {"entry": entry, "output": output_dir, "filename": os.path.basename(entry)}
        return [part.format(**values) for part in shlex.split(self.command)]

    def bundle(self, entry, output_dir):
        argv = self.build_argv(entry, output_dir)
        debug_log(f"Running bundler: {' '.join(argv)}")
        try:
            proc = subprocess.run(argv, cwd=self.cwd, capture_output=True, text=True)
        except OSError as e:
            raise BundlerError("Could not start the bundler", path=argv[0], cause=e)

        stats = parse_stats(proc.stdout)
        if stats is None:
            stats = {}
        errors = stats.get("errors") or []
        if errors:
            raise BundlerError("Bundler reported packing errors", path=entry, details=errors)
        if proc.returncode != 0:
            raise BundlerError(
                f"Bundler exited with status {proc.returncode}",
                path=entry,
                details=[proc.stderr.strip()] if proc.stderr else None,
            )
        return BundleReport(
            packed_files=packed_files_from_stats(stats),
            warnings=stats.get("warnings") or [],
        )
