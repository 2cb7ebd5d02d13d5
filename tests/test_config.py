"""
Unit tests for tubeio.config module.
"""

import pytest

from tubeio import config
from tubeio.core.exceptions import ConfigValueError


@pytest.fixture
def cf():
    return config.get_config()


class TestConfig:

    def test_is_singleton(self, cf):
        newcf = config.get_config()
        assert id(newcf) == id(cf)

    def test_read_default(self, cf):
        assert cf["tube"]["chunk_size"] == 4096
        assert cf["tube.handle_incomplete"] == "return"
        assert cf.process.kill_timeout == 2.0

    def test_attribute_access(self, cf):
        cf.scratch.value = 1
        assert cf.scratch.value == 1
        assert cf["scratch.value"] == 1


class TestConfigUpdate:

    def test_with_initdict(self):
        saved = config._CONFIG
        config._CONFIG = None
        try:
            cf = config.get_config(initdict={"base": {"tree": "value"}})
            assert cf.base.tree == "value"
            assert cf.tube.encoding == "utf-8"
        finally:
            config._CONFIG = saved


class TestTubeContext:

    def test_from_config(self):
        ctx = config.get_tube_context()
        assert ctx.chunk_size == 4096
        assert ctx.long_timeout == 15.0
        assert ctx.short_timeout == 0.05
        assert ctx.no_timeout == 0.0
        assert ctx.line_ending == b"\n"
        assert ctx.keepends is False

    def test_overrides(self):
        ctx = config.get_tube_context(line_ending="\r\n", keepends=True)
        assert ctx.line_ending == b"\r\n"
        assert ctx.keepends

    def test_contexts_are_independent(self):
        first = config.get_tube_context()
        second = first.replace(long_timeout=1.0)
        assert first.long_timeout == 15.0
        assert second.long_timeout == 1.0

    def test_bad_policy(self):
        with pytest.raises(ConfigValueError):
            config.get_tube_context(handle_incomplete="drop")

    def test_bad_chunk_size(self):
        with pytest.raises(ConfigValueError):
            config.TubeContext().replace(chunk_size=0)

    def test_empty_line_ending(self):
        with pytest.raises(ConfigValueError):
            config.TubeContext().replace(line_ending=b"")

# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab
