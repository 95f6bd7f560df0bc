"""
Import extraction - finds require() calls in an entry module and classifies them.

The module text is scanned for ``require(`` openings; each call's balanced text is then
parsed on its own with the import call grammar, so arbitrary surrounding JavaScript never
has to be understood.
"""
import re
from functools import lru_cache

from lark import Lark, Transformer, v_args
from lark.exceptions import LarkError

from depcore.grammar import require_grammar
from depcore.logs import debug_log
from depcore.models import ImportKind, ImportSite, Token

# `require(` not preceded by an identifier character or member access (e.g. `module.require`)
CALL_START = re.compile(r"(?<![\w$.])require\s*\(")

_ESCAPE = re.compile(r"\\(.)")


@lru_cache(maxsize=None)
def get_parser():
    """Create the (cached) Earley parser for a single require() call."""
    return Lark(require_grammar, parser='earley', propagate_positions=True)


def unquote(string_token):
    """Strip the surrounding quotes of a string literal and drop escape backslashes."""
    inner = str(string_token)[1:-1]
    return _ESCAPE.sub(r"\1", inner)


class ImportCallTransformer(Transformer):
    """
    Transforms a parsed require() call into ``(kind, payload)``.

    Static calls yield the unquoted literal; dynamic calls yield the path.join components,
    each a list of Tokens. References keep their exact source text so the rewritten key
    expression still evaluates them at runtime.
    """

    def __init__(self, source):
        super().__init__()
        self._source = source

    def start(self, items):
        return items[0]

    def static_target(self, items):
        return (ImportKind.STATIC, unquote(items[0]))

    def path_join(self, items):
        return (ImportKind.DYNAMIC, list(items))

    def component(self, items):
        return list(items)

    def literal(self, items):
        return Token.literal(unquote(items[0]))

    def number(self, items):
        return Token.literal(str(items[0]))

    @v_args(meta=True)
    def reference(self, meta, children):
        return Token.variable(self._source[meta.start_pos:meta.end_pos])


def find_call_spans(text):
    """Yield ``(start, end)`` for every require( ... ) call with balanced parentheses."""
    for match in CALL_START.finditer(text):
        close = _closing_paren(text, match.end() - 1)
        if close is None:
            debug_log(f"Unbalanced require call at offset {match.start()}")
            continue
        yield match.start(), close + 1


def _closing_paren(text, open_index):
    """Index of the parenthesis closing the one at open_index, skipping string contents."""
    depth = 0
    quote = None
    i = open_index
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == '\\':
                i += 2
                continue
            if ch == quote:
                quote = None
            elif ch == '\n' and quote != '`':
                return None
        elif ch in "'\"`":
            quote = ch
        elif ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def parse_require_call(call_text):
    """
    Parse one require() call.

    Returns:
        ``(ImportKind.STATIC, literal)``, ``(ImportKind.DYNAMIC, components)`` or None when
        the call shape is not recognized (it is then left to the bundler untouched).
    """
    try:
        tree = get_parser().parse(call_text)
    except LarkError as e:
        debug_log(f"Unrecognized require shape {call_text!r}: {type(e).__name__}")
        return None
    return ImportCallTransformer(call_text).transform(tree)


def extract_imports(text):
    """
    Find every recognized import site in a module's text.

    Sites are returned in text order; identical raw call texts collapse into one site.
    """
    sites = {}
    for start, end in find_call_spans(text):
        raw = text[start:end]
        if raw in sites:
            continue
        parsed = parse_require_call(raw)
        if parsed is None:
            continue
        kind, payload = parsed
        if kind == ImportKind.STATIC:
            sites[raw] = ImportSite(raw_match_text=raw, kind=kind, target=payload)
        else:
            sites[raw] = ImportSite(raw_match_text=raw, kind=kind, components=payload)
    return list(sites.values())
