"""
Path helpers shared by the resolver, registry and rewriter.

Canonical ids and registry keys always use ``/`` regardless of the platform separator.
"""
import os
import posixpath


def to_posix(path):
    return path.replace(os.sep, '/') if os.sep != '/' else path


def root_relative(path, root):
    """Path relative to the tree root, ``/``-separated. Paths outside the root stay absolute."""
    root = os.path.normpath(root)
    path = os.path.normpath(path)
    if path == root:
        return '.'
    prefix = root if root.endswith(os.sep) else root + os.sep
    if path.startswith(prefix):
        return to_posix(path[len(prefix):])
    return to_posix(path)


def require_path(target, from_dir):
    """Relative specifier usable in a require() call from from_dir to target."""
    rel = to_posix(os.path.relpath(target, from_dir))
    if not rel.startswith('../'):
        rel = './' + rel
    return rel


def strip_extension(posix_path):
    stem, _ = posixpath.splitext(posix_path)
    return stem


def write_text(path, text):
    """Write text exactly as given (no newline translation), creating parent folders."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(text)


def read_text(path):
    with open(path, 'r', encoding='utf-8', newline='') as f:
        return f.read()
