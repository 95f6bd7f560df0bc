import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


def write_tree(root, files):
    """Create files under root from a {relative path: text} mapping. None makes a directory."""
    for rel, text in files.items():
        path = os.path.join(root, *rel.split('/'))
        if text is None:
            os.makedirs(path, exist_ok=True)
            continue
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(text)


def read(root, rel):
    with open(os.path.join(root, *rel.split('/')), encoding='utf-8', newline='') as f:
        return f.read()


@pytest.fixture
def tmp_root():
    """A temporary tree root (symlinks resolved so path comparisons hold)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.realpath(tmpdir)
