"""Test fixtures for cachemover tests.

This package provides reusable pytest fixtures for testing cachemover
components. Fixtures are organized by type:

- toolchains: Tool-chain specs whose legacy caches live in tmp_path
- directories: Destination roots and populated legacy caches

Import fixtures in your tests using:
    from tests.fixtures.toolchains import npm_spec
    from tests.fixtures.directories import legacy_npm_cache
"""

__all__ = [
    "toolchains",
    "directories",
]
