"""
File matching - finds the files on disk that a resolved import site can load.

Wildcard patterns are matched with a segment-by-segment prefix/infix/suffix test rather
than a glob, so that a ``*`` may stand for any runtime value, separators included.
"""
import asyncio
import os

from depcore.logs import debug_log
from depcore.reducer import DEFAULT_EXTENSION, WILDCARD

DEFAULT_INDEX = "index.js"

# Directories whose remaining path has fewer separators than this are descended into even
# when they do not (yet) satisfy the pattern's tail. An approximation tuned for shallow
# function trees; raise it for deeper layouts.
DEPTH_THRESHOLD = 2


def matches_pattern(path, pattern, is_dir, depth_threshold=DEPTH_THRESHOLD, sep=os.sep):
    """
    Test a candidate path against a wildcard pattern.

    Args:
        path: absolute candidate path
        pattern: absolute pattern with '*' wildcards
        is_dir: directories are accepted when a descendant could still match
        depth_threshold: depth fallback for directories, see DEPTH_THRESHOLD

    Returns:
        True if the file matches, or if the directory is worth descending into
    """
    segments = pattern.split(WILDCARD)
    last = len(segments) - 1
    remaining = path
    for i, segment in enumerate(segments):
        if i == last:
            if remaining.endswith(segment):
                return True
            return is_dir and remaining.count(sep) < depth_threshold
        if i == 0:
            if not remaining.startswith(segment):
                return False
            remaining = remaining[len(segment):]
            continue
        index = remaining.find(segment)
        if index >= 0:
            remaining = remaining[index + len(segment):]
            continue
        if not is_dir:
            return False
        directory_part = segment[:segment.rfind(sep)] if sep in segment else ""
        if not directory_part:
            return True
        found = remaining.find(directory_part)
        if found >= 0:
            return not remaining[found + len(directory_part):].strip()
        return remaining.count(sep) < depth_threshold
    return False


def is_excluded(path, excluded):
    return any(path == e or path.startswith(e + os.sep) for e in excluded)


async def join_all(awaitables):
    """Await every awaitable to completion, then raise the first failure if any."""
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def _list_directory(directory):
    with os.scandir(directory) as entries:
        return [(entry.path, entry.is_dir()) for entry in entries]


async def _walk(directory, pattern, excluded, depth_threshold):
    entries = await asyncio.to_thread(_list_directory, directory)
    files = []
    subdirectories = []
    for path, is_dir in entries:
        if is_dir:
            if path in excluded:
                continue
            if matches_pattern(path, pattern, True, depth_threshold):
                subdirectories.append(_walk(path, pattern, excluded, depth_threshold))
        elif matches_pattern(path, pattern, False, depth_threshold):
            files.append(path)
    for found in await join_all(subdirectories):
        files.extend(found)
    return files


async def find_files(search_root, pattern, excluded=(), depth_threshold=DEPTH_THRESHOLD):
    """
    Walk search_root and return every file matching pattern, sorted.

    A missing search root, or one inside an excluded folder, yields no files.
    Listing errors inside the walk propagate as OSError.
    """
    excluded = set(excluded)
    if is_excluded(search_root, excluded):
        debug_log(f"Search root {search_root} is excluded")
        return []
    if not await asyncio.to_thread(os.path.isdir, search_root):
        debug_log(f"Search root {search_root} is not a directory")
        return []
    return sorted(await _walk(search_root, pattern, excluded, depth_threshold))


async def resolve_target(path, index_file=DEFAULT_INDEX, extension=DEFAULT_EXTENSION):
    """Resolve a literal path: the file itself, a directory's index file, or path + '.js'."""
    if await asyncio.to_thread(os.path.isfile, path):
        return [path]
    if await asyncio.to_thread(os.path.isdir, path):
        index = os.path.join(path, index_file)
        return [index] if await asyncio.to_thread(os.path.isfile, index) else []
    candidate = path + extension
    return [candidate] if await asyncio.to_thread(os.path.isfile, candidate) else []


async def match_site(site, excluded=(), depth_threshold=DEPTH_THRESHOLD, index_file=DEFAULT_INDEX):
    """Fill in site.resolved_files."""
    if site.external or site.error or not site.pattern:
        site.resolved_files = []
        return site
    if WILDCARD in site.pattern:
        files = await find_files(site.search_root, site.pattern, excluded, depth_threshold)
    else:
        files = await resolve_target(site.pattern, index_file=index_file)
    site.resolved_files = [f for f in files if not is_excluded(f, excluded)]
    debug_log(f"{site.raw_match_text} -> {len(site.resolved_files)} file(s)")
    return site
