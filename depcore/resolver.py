"""
Pattern resolution - computes the canonical id, search root and match pattern of a site.
"""
import os

from depcore.errors import PatternResolutionError
from depcore.models import ImportKind
from depcore.paths import root_relative
from depcore.reducer import WILDCARD, fallback_key, quote_js, reduce_dynamic

RELATIVE_MARKERS = ("./", "../", ".\\", "..\\")


def is_path_literal(target):
    """True for relative ('./x', '../x') and absolute targets; bare module names are external."""
    return target in (".", "..") or target.startswith(RELATIVE_MARKERS) or os.path.isabs(target)


def resolve_static(site, module_path, root):
    """Normalize a static literal against the importing module's directory."""
    if not is_path_literal(site.target):
        site.external = True
        return site
    absolute = os.path.normpath(os.path.join(os.path.dirname(module_path), site.target))
    site.pattern = absolute
    site.search_root = os.path.dirname(absolute)
    site.canonical_id = root_relative(absolute, root)
    site.lookup_key = quote_js(site.canonical_id)
    return site


def search_root_of(pattern):
    """Directory part of the pattern before its first wildcard."""
    prefix = pattern[:pattern.index(WILDCARD)]
    cut = prefix.rfind(os.sep)
    if cut < 0:
        raise PatternResolutionError(f"No literal directory before the wildcard in {pattern!r}")
    return prefix[:cut] or os.sep


def resolve_dynamic(site, module_path, root):
    """
    Reduce a dynamic site to its pattern and key expression.

    A PatternResolutionError is recorded on the site instead of being raised: the site
    keeps an empty file set and is still rewritten to its (unresolvable) key expression.
    """
    module_dir = os.path.dirname(module_path)
    try:
        pattern, key = reduce_dynamic(site.components, module_dir, root)
        site.search_root = search_root_of(pattern) if WILDCARD in pattern else os.path.dirname(pattern)
    except PatternResolutionError as e:
        site.error = e.message
        site.lookup_key = fallback_key(site.components, root_relative(module_dir, root))
        return site
    site.pattern = pattern
    site.lookup_key = key
    if WILDCARD not in pattern:
        site.canonical_id = root_relative(pattern, root)
    return site


def resolve_site(site, module_path, root):
    if site.kind == ImportKind.STATIC:
        return resolve_static(site, module_path, root)
    return resolve_dynamic(site, module_path, root)
