"""Root conftest — shared pytest markers and global settings.

Markers
-------
unit        fast, no I/O, pure logic
integration requires Redis (skipped unless CLARITY_TEST_INTEGRATION=1)
slow        expected to take > 5 seconds
"""

from __future__ import annotations


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, no I/O tests")
    config.addinivalue_line("markers", "integration: requires Redis")
    config.addinivalue_line("markers", "slow: test is expected to take > 5 s")

