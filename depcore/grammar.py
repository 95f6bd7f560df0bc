"""
Import Call Grammar.

This module contains the Lark grammar for the narrow slice of JavaScript that deppack
understands: a single ``require(...)`` call whose argument is either one string literal
or a ``path.join(...)`` over ``+``-concatenated literals and references.
"""

require_grammar = r"""
    start: "require" "(" target ")"

    ?target: "(" target ")"
           | STRING                                   -> static_target
           | path_join

    // --- Dynamic path ---
    path_join: "path" "." "join" "(" component ("," component)* ")"
    component: operand ("+" operand)*

    ?operand: STRING                                  -> literal
            | NUMBER                                  -> number
            | reference

    // --- Arbitrary runtime references (sliced from the source, never interpreted) ---
    reference: NAME accessor*
             | "(" expression ")" accessor*
    accessor: "." NAME
            | "[" expression "]"
            | "(" [arguments] ")"
    arguments: expression ("," expression)*
    ?expression: value (("+" | OPERATOR) value)*
    ?value: STRING | NUMBER | reference

    // --- Terminals ---
    NAME: /[A-Za-z_$][\w$]*/
    STRING: /'(?:[^'\\\n]|\\.)*'|"(?:[^"\\\n]|\\.)*"/
    NUMBER: /\d+(\.\d+)?/
    OPERATOR: "===" | "!==" | "==" | "!=" | "&&" | "||" | "??" | "-" | "*" | "/" | "%"

    COMMENT_1: /\/\/[^\n]*/
    BLOCK_COMMENT: /\/\*[\s\S]*?\*\//

    %import common.WS
    %ignore WS
    %ignore COMMENT_1
    %ignore BLOCK_COMMENT
"""
