"""
Token reduction - turns a dynamic require's path.join components into a filesystem
wildcard pattern and a runtime registry key expression.

Both outputs come from the same flat token stream: literals are rendered verbatim,
variables become ``*`` in the pattern and are spliced back, as source text, into the key.
"""
import os

from depcore.errors import PatternResolutionError
from depcore.models import DIRNAME_VARIABLE, Token
from depcore.paths import root_relative

WILDCARD = "*"
SOURCE_EXTENSIONS = (".js", ".json")
DEFAULT_EXTENSION = ".js"


def bind_variables(components, bindings):
    """Replace variables that have a known value (e.g. __dirname) with literals."""
    bound = []
    for component in components:
        bound.append([
            Token.literal(bindings[t.value]) if not t.is_literal and t.value in bindings else t
            for t in component
        ])
    return bound


def merge_literals(tokens):
    """Concatenate runs of adjacent literals and drop empty ones."""
    merged = []
    for token in tokens:
        if token.is_literal:
            if not token.value:
                continue
            if merged and merged[-1].is_literal:
                merged[-1] = Token.literal(merged[-1].value + token.value)
                continue
        merged.append(token)
    return merged


def flatten(components, separator=os.sep):
    """Join components with the path separator into one token stream."""
    tokens = []
    for i, component in enumerate(components):
        if i:
            tokens.append(Token.literal(separator))
        tokens.extend(component)
    return merge_literals(tokens)


def ensure_extension(tokens):
    """Append '.js' unless the stream already ends in a recognized extension literal."""
    if tokens and tokens[-1].is_literal and tokens[-1].value.lower().endswith(SOURCE_EXTENSIONS):
        return tokens
    return merge_literals(tokens + [Token.literal(DEFAULT_EXTENSION)])


def render_pattern(tokens):
    """Render a token stream as a wildcard pattern (one '*' per variable)."""
    parts = []
    previous_variable = False
    for token in tokens:
        if token.is_literal:
            if WILDCARD in token.value:
                raise PatternResolutionError(f"Literal segment {token.value!r} contains a wildcard")
            parts.append(token.value)
            previous_variable = False
        else:
            if previous_variable:
                raise PatternResolutionError(
                    f"Adjacent runtime values with no literal between them near {token.value!r}"
                )
            parts.append(WILDCARD)
            previous_variable = True
    return "".join(parts)


def quote_js(text):
    """Single-quoted JavaScript string literal."""
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


def render_key(tokens):
    """Render a token stream as a JavaScript string-concatenation expression."""
    parts = [quote_js(t.value) if t.is_literal else t.value for t in tokens]
    if tokens and not tokens[0].is_literal:
        # Force string concatenation even when the first runtime value is a number
        parts.insert(0, "''")
    return " + ".join(parts) if parts else "''"


def splice_variables(pattern, variables):
    """Put each variable's source text back into the wildcard positions of pattern."""
    pieces = pattern.split(WILDCARD)
    if len(pieces) != len(variables) + 1:
        raise PatternResolutionError(
            f"Pattern {pattern!r} has {len(pieces) - 1} wildcards for {len(variables)} runtime values"
        )
    tokens = []
    for i, piece in enumerate(pieces):
        tokens.append(Token.literal(piece))
        if i < len(variables):
            tokens.append(variables[i])
    return render_key(merge_literals(tokens))


def reduce_dynamic(components, module_dir, root):
    """
    Reduce a dynamic import to its absolute wildcard pattern and key expression.

    Args:
        components: path.join components as lists of Tokens
        module_dir: absolute directory of the importing module (value of __dirname)
        root: absolute tree root; relative patterns are anchored here

    Returns:
        ``(pattern, key_expression)``

    Raises:
        PatternResolutionError: if the search root cannot be determined
    """
    bound = bind_variables(components, {DIRNAME_VARIABLE: module_dir})
    tokens = ensure_extension(flatten(bound))
    if tokens and not tokens[0].is_literal:
        raise PatternResolutionError(
            f"Path starts with the runtime value {tokens[0].value!r}; no search root"
        )
    variables = [t for t in tokens if not t.is_literal]
    pattern = render_pattern(tokens)
    if not os.path.isabs(pattern):
        pattern = os.path.join(root, pattern)
    pattern = os.path.normpath(pattern)
    if pattern.count(WILDCARD) != len(variables):
        raise PatternResolutionError(f"Normalizing the path removed a wildcard from {pattern!r}")
    return pattern, splice_variables(root_relative(pattern, root), variables)


def fallback_key(components, module_dir_relative):
    """Key expression for a site whose pattern could not be resolved."""
    bound = bind_variables(components, {DIRNAME_VARIABLE: module_dir_relative})
    return render_key(ensure_extension(flatten(bound, separator="/")))
