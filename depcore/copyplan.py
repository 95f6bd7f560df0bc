"""
Copy plan - the files a final copy stage still has to place next to the bundle.

Only the plan is computed here; copying and artifact placement belong to the caller.
"""
import fnmatch
import os
import posixpath

from depcore.paths import root_relative


def is_copy_excluded(relative_path, globs):
    """Match a root-relative path (or its file name) against the exclusion globs."""
    name = posixpath.basename(relative_path)
    return any(fnmatch.fnmatchcase(relative_path, g) or fnmatch.fnmatchcase(name, g) for g in globs)


def plan_copy(config, skip_files=()):
    """
    List files under the root that were neither packed nor rewritten.

    Args:
        config: DeployConfig (root, exclude_folders, exclude_files)
        skip_files: absolute paths already handled (entry modules, packed files)

    Returns:
        Sorted absolute paths
    """
    skip = {os.path.normpath(f) for f in skip_files}
    skip.add(os.path.normpath(config.registry_path))
    names = set(config.exclude_folders)
    plan = []
    for directory, dirnames, filenames in os.walk(config.root):
        # Excluded names are skipped at every depth, like nested node_modules folders
        dirnames[:] = sorted(d for d in dirnames if d not in names)
        for name in sorted(filenames):
            path = os.path.join(directory, name)
            if name in names or path in skip:
                continue
            if is_copy_excluded(root_relative(path, config.root), config.exclude_files):
                continue
            plan.append(path)
    return sorted(plan)
