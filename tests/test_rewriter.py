"""
Unit tests for entry module rewriting.
"""
import asyncio
import os
import pytest
from conftest import read, write_tree
from depcore.errors import RewriteError
from depcore.models import EntryModule, ImportKind, ImportSite
from depcore.rewriter import (
    include_statement,
    insert_include,
    rewrite_module,
    rewrite_text,
    search_expression,
)


def static(raw, key, files=('x',), external=False):
    return ImportSite(raw_match_text=raw, kind=ImportKind.STATIC, lookup_key=key,
                      resolved_files=list(files), external=external)


def dynamic(raw, key):
    return ImportSite(raw_match_text=raw, kind=ImportKind.DYNAMIC, lookup_key=key)


class TestSearchExpression:
    """Tests for the quote-insensitive site expression."""

    def test_matches_either_quote_style(self):
        """Single and double quotes are interchangeable."""
        expression = search_expression("require('./a')")
        assert expression.search('require("./a")')
        assert expression.search("require('./a')")

    def test_special_characters_literal(self):
        """Regex characters in the call are matched literally."""
        expression = search_expression("require(path.join(__dirname, a + '.js'))")
        assert not expression.search("require(pathXjoin(__dirname, a + '.js'))")


class TestRewriteText:
    """Tests for rewrite_text()."""

    def test_static_and_dynamic(self):
        """Both site kinds become registry lookups."""
        text = (
            "const u = require('./util');\n"
            "const h = require(path.join(__dirname, 'h', n + '.js'));\n"
        )
        sites = [
            static("require('./util')", "'pkg/util'"),
            dynamic("require(path.join(__dirname, 'h', n + '.js'))", "'pkg/h/' + n + '.js'"),
        ]
        result, count = rewrite_text(text, sites, 'azureDeps')
        assert result == (
            "const u = global.azureDeps['pkg/util'];\n"
            "const h = global.azureDeps['pkg/h/' + n + '.js'];\n"
        )
        assert count == 2

    def test_every_occurrence_replaced(self):
        """Every occurrence is replaced and counted."""
        raw = "require(path.join(__dirname, n))"
        text = f"a = {raw};\nb = {raw};\nc = {raw.replace(chr(39), chr(34))};"
        result, count = rewrite_text(text, [dynamic(raw, "'pkg/' + n + '.js'")], 'g')
        assert count == 3
        assert raw not in result

    def test_external_and_unresolved_static_untouched(self):
        """External and unresolved static sites are left alone."""
        text = "require('fs'); require('./missing');"
        sites = [
            static("require('fs')", None, files=(), external=True),
            static("require('./missing')", "'pkg/missing'", files=()),
        ]
        assert rewrite_text(text, sites, 'g') == (text, 0)

    def test_unresolved_dynamic_still_rewritten(self):
        """Dynamic sites are rewritten even without matches."""
        raw = "require(path.join(base, 'x.js'))"
        result, count = rewrite_text(raw, [dynamic(raw, "'' + base + '/x.js'")], 'g')
        assert result == "global.g['' + base + '/x.js']"
        assert count == 1

    def test_replacement_backslashes_kept(self):
        """Backslashes in keys are inserted literally."""
        raw = "require('./a')"
        result, _ = rewrite_text(raw, [static(raw, "'a\\\\b'")], 'g')
        assert result == "global.g['a\\\\b']"


class TestInclude:
    """Tests for the registry inclusion statement."""

    def test_include_statement_relative(self):
        """The include path is relative to the output folder."""
        root = os.path.join(os.sep, 'srv', 'app')
        statement = include_statement(os.path.join(root, 'azure.deps.js'), os.path.join(root, 'dist', 'pkg'))
        assert statement == "require('../../azure.deps.js');"

    def test_after_use_strict(self):
        """The include goes after 'use strict'."""
        text = "'use strict';\nconst a = 1;\n"
        assert insert_include(text, "require('./r.js');") == "'use strict';\nrequire('./r.js');\nconst a = 1;\n"

    def test_double_quoted_directive(self):
        """A double-quoted directive is recognized too."""
        text = '"use strict"\nx();'
        assert insert_include(text, "require('./r.js');") == '"use strict"\nrequire(\'./r.js\');\nx();'

    def test_at_top(self):
        """Without a directive the include goes first."""
        assert insert_include("x();\n", "require('./r.js');") == "require('./r.js');\nx();\n"

    def test_never_twice(self):
        """An existing include is not repeated."""
        once = insert_include("x();\n", "require('./r.js');")
        assert insert_include(once, "require('./r.js');") == once

    def test_after_shebang(self):
        """A leading shebang line stays first."""
        text = "#!/usr/bin/env node\nx();\n"
        assert insert_include(text, "require('./r.js');") == "#!/usr/bin/env node\nrequire('./r.js');\nx();\n"

    def test_after_shebang_and_use_strict(self):
        """The include follows both a shebang and the directive."""
        text = "#!/usr/bin/env node\n'use strict';\nx();\n"
        assert insert_include(text, "require('./r.js');") == (
            "#!/usr/bin/env node\n'use strict';\nrequire('./r.js');\nx();\n"
        )

    def test_shebang_only(self):
        """A module that is only a shebang line still gets the include on its own line."""
        assert insert_include("#!/usr/bin/env node", "require('./r.js');") == (
            "#!/usr/bin/env node\nrequire('./r.js');\n"
        )


class TestRewriteModule:
    """Tests for rewrite_module()."""

    def test_writes_output(self, tmp_root):
        """The rewritten module is written to the output path."""
        entry = EntryModule(path=os.path.join(tmp_root, 'pkg', 'index.js'),
                            raw_text="'use strict';\nrequire('./a');\n")
        output = os.path.join(tmp_root, 'dist', 'pkg', 'index.js')
        count = asyncio.run(rewrite_module(entry, [static("require('./a')", "'pkg/a'")], output,
                                           os.path.join(tmp_root, 'azure.deps.js'), 'azureDeps'))
        assert count == 1
        assert read(tmp_root, 'dist/pkg/index.js') == (
            "'use strict';\nrequire('../../azure.deps.js');\nglobal.azureDeps['pkg/a'];\n"
        )

    def test_write_failure(self, tmp_root):
        """An unwritable output raises RewriteError."""
        write_tree(tmp_root, {'dist': 'a file, not a folder'})
        entry = EntryModule(path=os.path.join(tmp_root, 'pkg', 'index.js'), raw_text="x();")
        output = os.path.join(tmp_root, 'dist', 'pkg', 'index.js')
        with pytest.raises(RewriteError) as info:
            asyncio.run(rewrite_module(entry, [], output, os.path.join(tmp_root, 'r.js'), 'g'))
        assert info.value.path == output
