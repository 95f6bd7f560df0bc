"""
Source rewriting - replaces import sites with registry lookups and links the registry.
"""
import asyncio
import os
import re

from depcore.errors import RewriteError
from depcore.paths import require_path, write_text
from depcore.reducer import quote_js

STRICT_DIRECTIVE = re.compile(r"""^\s*(['"])use strict\1;?""")
SHEBANG = re.compile(r"#![^\n]*\n?")
_QUOTE = re.compile(r"""['"]""")


def search_expression(raw_match_text):
    """Regex matching raw_match_text literally, with either quote style at each quote."""
    return re.compile(_QUOTE.sub(lambda m: """['"]""", re.escape(raw_match_text)))


def lookup_expression(key_expression, global_name):
    return f"global.{global_name}[{key_expression}]"


def should_rewrite(site):
    """External references and static imports that resolved to nothing stay untouched."""
    if site.external or site.lookup_key is None:
        return False
    return site.is_dynamic or bool(site.resolved_files)


def rewrite_text(text, sites, global_name):
    """
    Replace every occurrence of every rewritable site.

    Returns:
        ``(new_text, replacement_count)``
    """
    count = 0
    for site in sites:
        if not should_rewrite(site):
            continue
        replacement = lookup_expression(site.lookup_key, global_name)
        text, n = search_expression(site.raw_match_text).subn(lambda m: replacement, text)
        count += n
    return text, count


def include_statement(registry_path, module_dir):
    return f"require({quote_js(require_path(registry_path, module_dir))});"


def insert_include(text, include):
    """
    Insert include after a leading shebang line and 'use strict' directive, else at the
    very top. Never twice.
    """
    if include in text:
        return text
    shebang = SHEBANG.match(text)
    head = shebang.group(0) if shebang else ""
    body = text[len(head):]
    if head and not head.endswith("\n"):
        head += "\n"
    directive = STRICT_DIRECTIVE.match(body)
    if directive:
        return head + body[:directive.end()] + "\n" + include + body[directive.end():]
    return head + include + "\n" + body


async def rewrite_module(entry, sites, output_path, registry_path, global_name):
    """
    Rewrite one entry module and write it to output_path.

    Args:
        entry: EntryModule with the original text
        sites: resolved ImportSites of the module
        output_path: where the rewritten module is written (may equal entry.path)
        registry_path: absolute path of the registry module to include

    Returns:
        Number of import-site replacements performed

    Raises:
        RewriteError: if the module cannot be written
    """
    text, count = rewrite_text(entry.raw_text, sites, global_name)
    text = insert_include(text, include_statement(registry_path, os.path.dirname(output_path)))
    try:
        await asyncio.to_thread(write_text, output_path, text)
    except OSError as e:
        raise RewriteError("Could not write the rewritten entry module", path=output_path, cause=e)
    return count
