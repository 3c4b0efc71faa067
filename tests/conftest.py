import pytest

import upckeys


_cache = {}


@pytest.fixture(scope='session')
def enumerate_pairs():
    """Full candidate runs are slow, share them across the session"""
    def run(target, band):
        key = (target, band)
        if key not in _cache:
            _cache[key] = list(upckeys.get_candidates(target, band))
        return _cache[key]
    return run
