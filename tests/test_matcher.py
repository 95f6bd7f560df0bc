"""
Unit tests for filesystem matching.
"""
import asyncio
import os
import time
import pytest
from conftest import write_tree
from depcore import matcher
from depcore.matcher import find_files, match_site, matches_pattern, resolve_target
from depcore.models import ImportKind, ImportSite


class TestMatchesPattern:
    """Tests for the segment-by-segment wildcard test (posix separators)."""

    PATTERN = '/r/pkg/handlers/*.js'

    def test_file_with_suffix(self):
        """A file ending in the suffix matches."""
        assert matches_pattern('/r/pkg/handlers/a.js', self.PATTERN, False, sep='/')

    def test_file_without_suffix(self):
        """A file with another extension never matches."""
        assert not matches_pattern('/r/pkg/handlers/c.txt', self.PATTERN, False, sep='/')

    def test_prefix_mismatch_pruned(self):
        """Paths outside the prefix are pruned."""
        assert not matches_pattern('/r/pkg/other', self.PATTERN, True, sep='/')

    def test_shallow_directory_descended(self):
        """Shallow directories are descended into."""
        assert matches_pattern('/r/pkg/handlers/sub', self.PATTERN, True, sep='/')

    def test_deep_directory_pruned(self):
        """Past the depth threshold a directory must satisfy the suffix itself."""
        assert not matches_pattern('/r/pkg/handlers/a/b/c', self.PATTERN, True, sep='/')
        assert matches_pattern('/r/pkg/handlers/a/b/c', self.PATTERN, True, depth_threshold=3, sep='/')

    def test_wildcard_spans_separators(self):
        """A wildcard may cover nested folders."""
        assert matches_pattern('/r/pkg/handlers/sub/d.js', self.PATTERN, False, sep='/')

    def test_middle_segment_for_files(self):
        """Files must contain every middle segment."""
        pattern = '/r/*/sub/*.js'
        assert matches_pattern('/r/pkg/sub/a.js', pattern, False, sep='/')
        assert not matches_pattern('/r/pkg/a.js', pattern, False, sep='/')

    def test_middle_segment_for_directories(self):
        """Directories may still lead to the middle segment."""
        pattern = '/r/*/sub/*.js'
        assert matches_pattern('/r/pkg', pattern, True, sep='/')
        assert matches_pattern('/r/pkg/sub', pattern, True, sep='/')


class TestFindFiles:
    """Tests for the recursive walk."""

    def test_handlers_scenario(self, tmp_root):
        """Only the .js handlers are found."""
        write_tree(tmp_root, {
            'pkg/handlers/a.js': '', 'pkg/handlers/b.js': '', 'pkg/handlers/c.txt': '',
        })
        search_root = os.path.join(tmp_root, 'pkg', 'handlers')
        found = asyncio.run(find_files(search_root, os.path.join(search_root, '*.js')))
        assert found == [os.path.join(search_root, 'a.js'), os.path.join(search_root, 'b.js')]

    def test_matches_reproduce_path(self, tmp_root):
        """Substituting each match back into the wildcard reproduces the file path."""
        write_tree(tmp_root, {
            'pkg/lib/a.js': '', 'pkg/lib/nested/b.js': '', 'pkg/lib/c.json': '',
        })
        search_root = os.path.join(tmp_root, 'pkg', 'lib')
        pattern = os.path.join(search_root, '*.js')
        prefix, suffix = pattern.split('*')
        found = asyncio.run(find_files(search_root, pattern))
        assert len(found) == 2
        for path in found:
            middle = path[len(prefix):len(path) - len(suffix)]
            assert prefix + middle + suffix == path
            assert os.path.isfile(prefix + middle + suffix)

    def test_excluded_folder_not_walked(self, tmp_root):
        """Excluded folders contribute nothing."""
        write_tree(tmp_root, {'a.js': '', 'node_modules/x.js': '', 'pkg/b.js': ''})
        excluded = {os.path.join(tmp_root, 'node_modules')}
        found = asyncio.run(find_files(tmp_root, os.path.join(tmp_root, '*.js'), excluded))
        assert found == [os.path.join(tmp_root, 'a.js'), os.path.join(tmp_root, 'pkg', 'b.js')]

    def test_excluded_search_root(self, tmp_root):
        """An excluded search root yields no files."""
        write_tree(tmp_root, {'node_modules/x.js': ''})
        search_root = os.path.join(tmp_root, 'node_modules')
        found = asyncio.run(find_files(search_root, os.path.join(search_root, '*.js'), {search_root}))
        assert found == []

    def test_missing_search_root(self, tmp_root):
        """A missing search root yields no files."""
        search_root = os.path.join(tmp_root, 'nope')
        assert asyncio.run(find_files(search_root, os.path.join(search_root, '*.js'))) == []

    def test_listing_error_waits_for_sibling_walks(self, tmp_root, monkeypatch):
        """A folder that cannot be listed raises only after the other folders are walked."""
        write_tree(tmp_root, {'bad/a.js': '', 'slow/b.js': ''})
        real_listing = matcher._list_directory
        finished = []

        def listing(directory):
            name = os.path.basename(directory)
            if name == 'bad':
                raise PermissionError(directory)
            if name == 'slow':
                time.sleep(0.2)
                finished.append(directory)
            return real_listing(directory)

        async def walk_until_error():
            with pytest.raises(PermissionError):
                await find_files(tmp_root, os.path.join(tmp_root, '*.js'))
            # Snapshot at the moment the error surfaces
            return list(finished)

        monkeypatch.setattr(matcher, '_list_directory', listing)
        assert asyncio.run(walk_until_error()) == [os.path.join(tmp_root, 'slow')]


class TestResolveTarget:
    """Tests for the no-wildcard mode."""

    def test_existing_file(self, tmp_root):
        """An existing file resolves to itself."""
        write_tree(tmp_root, {'lib/a.js': ''})
        path = os.path.join(tmp_root, 'lib', 'a.js')
        assert asyncio.run(resolve_target(path)) == [path]

    def test_directory_index(self, tmp_root):
        """A directory resolves to its index.js."""
        write_tree(tmp_root, {'lib/index.js': ''})
        path = os.path.join(tmp_root, 'lib')
        assert asyncio.run(resolve_target(path)) == [os.path.join(path, 'index.js')]

    def test_directory_without_index(self, tmp_root):
        """A directory without index.js resolves to nothing."""
        write_tree(tmp_root, {'lib': None})
        assert asyncio.run(resolve_target(os.path.join(tmp_root, 'lib'))) == []

    def test_extension_retry(self, tmp_root):
        """A missing path is retried with .js appended."""
        write_tree(tmp_root, {'lib/a.js': ''})
        path = os.path.join(tmp_root, 'lib', 'a')
        assert asyncio.run(resolve_target(path)) == [path + '.js']

    def test_missing(self, tmp_root):
        """A path that cannot be found resolves to nothing."""
        assert asyncio.run(resolve_target(os.path.join(tmp_root, 'missing'))) == []


class TestMatchSite:
    """Tests for match_site()."""

    def test_external_site_has_no_files(self):
        """External sites are never matched."""
        site = ImportSite(raw_match_text="require('fs')", kind=ImportKind.STATIC, target='fs', external=True)
        assert asyncio.run(match_site(site)).resolved_files == []

    def test_excluded_static_target(self, tmp_root):
        """Static targets inside excluded folders are dropped."""
        write_tree(tmp_root, {'node_modules/x.js': ''})
        target = os.path.join(tmp_root, 'node_modules', 'x.js')
        site = ImportSite(raw_match_text="require('../node_modules/x.js')", kind=ImportKind.STATIC,
                          pattern=target, search_root=os.path.dirname(target))
        site = asyncio.run(match_site(site, {os.path.join(tmp_root, 'node_modules')}))
        assert site.resolved_files == []

    def test_wildcard_site(self, tmp_root):
        """Wildcard sites are matched by walking the search root."""
        write_tree(tmp_root, {'pkg/handlers/a.js': '', 'pkg/handlers/c.txt': ''})
        search_root = os.path.join(tmp_root, 'pkg', 'handlers')
        site = ImportSite(raw_match_text="require(path.join(__dirname, 'handlers', n))",
                          kind=ImportKind.DYNAMIC, pattern=os.path.join(search_root, '*.js'),
                          search_root=search_root)
        site = asyncio.run(match_site(site))
        assert site.resolved_files == [os.path.join(search_root, 'a.js')]
