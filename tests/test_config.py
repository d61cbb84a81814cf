#!/usr/bin/env python3
"""
Tests for option and pipeline configuration
"""

import pytest

from codemerge.core.config import (
    CHUNK_SIZE,
    LARGE_FILE_THRESHOLD,
    FilterOptions,
    PipelineConfig,
    ReadOptions,
)


def test_defaults():
    config = PipelineConfig()

    assert config.cache_max_entries == 500
    assert config.cache_ttl == 600.0
    assert config.concurrency == 8
    assert config.large_file_threshold == LARGE_FILE_THRESHOLD == 1024 * 1024
    assert config.chunk_size == CHUNK_SIZE == 64 * 1024
    assert config.read_timeout is None


def test_from_env(monkeypatch):
    monkeypatch.setenv('CODEMERGE_CONCURRENCY', '3')
    monkeypatch.setenv('CODEMERGE_CACHE_TTL', '30')
    monkeypatch.setenv('CODEMERGE_READ_TIMEOUT', '2.5')

    config = PipelineConfig.from_env()

    assert config.concurrency == 3
    assert config.cache_ttl == 30.0
    assert config.read_timeout == 2.5
    assert config.cache_max_entries == 500


def test_from_env_ignores_unparseable_values(monkeypatch):
    monkeypatch.setenv('CODEMERGE_CONCURRENCY', 'many')
    assert PipelineConfig.from_env().concurrency == 8


def test_from_env_falls_back_on_out_of_range(monkeypatch):
    monkeypatch.setenv('CODEMERGE_CHUNK_SIZE', '0')
    assert PipelineConfig.from_env() == PipelineConfig()


@pytest.mark.parametrize("field,value", [
    ('cache_max_entries', 0),
    ('cache_ttl', 0),
    ('concurrency', 0),
    ('chunk_size', 0),
    ('read_timeout', -1),
])
def test_validation(field, value):
    with pytest.raises(ValueError):
        PipelineConfig(**{field: value})


def test_read_options_validation():
    assert ReadOptions().concurrency is None
    with pytest.raises(ValueError):
        ReadOptions(concurrency=0)


def test_filter_options_cache_key_is_order_independent():
    a = FilterOptions(custom_blacklist=['b', 'a'])
    b = FilterOptions(custom_blacklist=['a', 'b'])

    assert a.cache_key() == b.cache_key()
    assert a.cache_key() != FilterOptions(exclude_vcs_dir=False).cache_key()
