"""
Global registry - one binding per physical file resolved anywhere in the tree.

The generated module populates a guarded global object; rewritten entry modules look
their dependencies up in it instead of calling require() with runtime-built paths.
"""
import asyncio
import json
import os
import posixpath
from typing import Dict, List

from pydantic import BaseModel, Field

from depcore.errors import RegistryWriteError
from depcore.logs import debug_log
from depcore.matcher import DEFAULT_INDEX
from depcore.paths import require_path, root_relative, strip_extension, write_text


class RegistryEntry(BaseModel):
    canonical_id: str
    source_file: str  # absolute path on disk
    bound_file: str   # require() specifier relative to the registry module
    aliases: List[str] = Field(default_factory=list)


class Registry(BaseModel):
    """Ordered canonical-id -> entry mapping plus alias -> canonical-id mapping."""
    global_name: str
    entries: Dict[str, RegistryEntry] = Field(default_factory=dict)
    aliases: Dict[str, str] = Field(default_factory=dict)

    def resolve(self, key):
        """Entry bound to a canonical id or alias, or None."""
        canonical = key if key in self.entries else self.aliases.get(key)
        return self.entries.get(canonical) if canonical is not None else None

    def keys(self):
        return list(self.entries) + list(self.aliases)

    def render(self):
        """JavaScript source of the registry module."""
        g = f"global.{self.global_name}"
        lines = ["'use strict';", f"{g} = ({g}) ? {g} : {{}};"]
        for canonical_id, entry in self.entries.items():
            lines.append(f"{g}[{json.dumps(canonical_id)}] = require({json.dumps(entry.bound_file)});")
        for alias, canonical_id in self.aliases.items():
            lines.append(f"{g}[{json.dumps(alias)}] = {g}[{json.dumps(canonical_id)}];")
        return "\n".join(lines) + "\n"


def alias_for(canonical_id, index_file=DEFAULT_INDEX):
    """
    Secondary key for a canonical id.

    'dir/index.js' is also reachable as 'dir'; any other file as its id without extension.
    """
    directory, name = posixpath.split(canonical_id)
    if name == index_file:
        return directory or None
    stripped = strip_extension(canonical_id)
    return stripped if stripped != canonical_id else None


def build_registry(outcomes, root, registry_path, global_name, index_file=DEFAULT_INDEX, ignore=()):
    """
    Build the registry from successful folder outcomes.

    Args:
        outcomes: FolderOutcome list; only 'ok' outcomes contribute
        root: absolute tree root
        registry_path: absolute path of the registry module being generated
        global_name: name of the global lookup object
        ignore: absolute files never bound in addition to the registry itself

    Returns:
        Registry with canonical ids in first-seen order
    """
    registry = Registry(global_name=global_name)
    ignored = {os.path.normpath(p) for p in ignore} | {os.path.normpath(registry_path)}
    seen = set()
    site_keys = []
    registry_dir = os.path.dirname(registry_path)
    for outcome in outcomes:
        if not outcome.ok:
            continue
        for site in outcome.sites:
            if site.canonical_id and site.resolved_files:
                site_keys.append((site.canonical_id, os.path.normpath(site.resolved_files[0])))
            for file in site.resolved_files:
                file = os.path.normpath(file)
                if file in seen or file in ignored:
                    continue
                seen.add(file)
                canonical_id = root_relative(file, root)
                registry.entries[canonical_id] = RegistryEntry(
                    canonical_id=canonical_id,
                    source_file=file,
                    bound_file=require_path(file, registry_dir),
                )
    # Keys written by static rewrites come first so a derived alias cannot take them
    for key, file in site_keys:
        canonical_id = root_relative(file, root)
        if canonical_id in registry.entries:
            _add_alias(registry, key, canonical_id)
    for canonical_id in registry.entries:
        _add_alias(registry, alias_for(canonical_id, index_file), canonical_id)
    debug_log(f"Registry: {len(registry.entries)} entries, {len(registry.aliases)} aliases")
    return registry


def _add_alias(registry, alias, canonical_id):
    """Bind alias to canonical_id unless it is empty or already a key."""
    if alias is None or alias in registry.entries or alias in registry.aliases:
        return
    registry.aliases[alias] = canonical_id
    registry.entries[canonical_id].aliases.append(alias)


async def write_registry(registry, path):
    """Write the rendered registry module to path."""
    try:
        await asyncio.to_thread(write_text, path, registry.render())
    except OSError as e:
        raise RegistryWriteError("Could not write the registry module", path=path, cause=e)
    return path
