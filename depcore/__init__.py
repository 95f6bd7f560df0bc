# deppack - Core Components
"""
Core modules for deppack:
- errors: Error types and structured failure payloads
- grammar: Lark grammar for a single require() call
- extractor: Import site extraction
- reducer: Token reduction into wildcard patterns and key expressions
- resolver: Search root and canonical id resolution
- matcher: Asynchronous filesystem matching
- registry: Global registry building and rendering
- rewriter: Entry module rewriting
- config: Deployment settings
- bundler: Bundler drivers
- copyplan: Copy stage planning
"""

from .errors import DeployError
from .grammar import require_grammar
from .extractor import extract_imports
from .registry import Registry, build_registry
from .config import DeployConfig, load_config
from .bundler import Bundler, CommandBundler

__all__ = [
    'DeployError',
    'require_grammar',
    'extract_imports',
    'Registry',
    'build_registry',
    'DeployConfig',
    'load_config',
    'Bundler',
    'CommandBundler',
]
