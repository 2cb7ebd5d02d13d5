#!/usr/bin/env python3

# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Test io.endpoint and io.streams modules.
"""

import pytest

from tubeio.core.exceptions import EndpointDestroyedError
from tubeio.io import reactor
from tubeio.io import streams
from tubeio.io.endpoint import Endpoint, ReadableSource, DESTROYED
from tubeio.os.time import wait_for_event


async def _until_closed(source, timeout=1.0):
    if not source.closed:
        await wait_for_event(source.events, "close", timeout)


class _Collector:

    def __init__(self, source):
        self.data = bytearray()
        self.closed = 0
        source.events.signal("data").connect(self.on_data, weak=False)
        source.events.signal("close").connect(self.on_close, weak=False)

    def on_data(self, sender, data):
        self.data += data

    def on_close(self, sender):
        self.closed += 1


class TestReadableSource:

    def test_merges_streams(self, run):
        async def _main():
            r1, w1 = streams.pipe()
            r2, w2 = streams.pipe()
            source = ReadableSource(r1, r2)
            collected = _Collector(source)
            await source.start()
            await w1.write(b"one ")
            await reactor.sleep(0.02)
            await w2.write(b"two")
            await w1.close()
            await reactor.sleep(0.02)
            assert not source.closed
            await w2.close()
            await _until_closed(source)
            assert source.closed
            assert collected.closed == 1
            assert bytes(collected.data) == b"one two"
        run(_main)

    def test_no_streams(self, run):
        async def _main():
            source = ReadableSource(None)
            collected = _Collector(source)
            await source.start()
            assert source.started
            assert source.closed
            assert collected.closed == 1
        run(_main)

    def test_start_once(self, run):
        async def _main():
            reader, writer = streams.pipe()
            source = ReadableSource(reader)
            collected = _Collector(source)
            await source.start()
            await source.start()
            await writer.write(b"once")
            await reactor.sleep(0.05)
            assert bytes(collected.data) == b"once"
            await source.stop()
        run(_main)

    def test_chunksize(self, run):
        async def _main():
            reader, writer = streams.pipe()
            source = ReadableSource(reader, chunksize=2)
            chunks = []
            source.events.signal("data").connect(lambda sender, data: chunks.append(data),
                                                 weak=False)
            await writer.write(b"abcde")
            await writer.close()
            await source.start()
            await _until_closed(source)
            assert chunks == [b"ab", b"cd", b"e"]
        run(_main)


class TestEndpoint:

    def test_capabilities(self):
        reader, writer = streams.pipe()
        ep = Endpoint(output=ReadableSource(reader))
        assert ep.readable
        assert not ep.writable
        assert not ep.destroyable
        ep.retire_output()
        assert not ep.readable

    def test_destroy(self, run):
        async def _main():
            async def _destroy():
                return 42

            ep = Endpoint(destroy=_destroy)
            assert await ep.destroy() == 42
        run(_main)

    def test_no_destroy(self, run):
        async def _main():
            with pytest.raises(EndpointDestroyedError):
                await Endpoint().destroy()
        run(_main)


class TestDestroyed:

    def test_no_capabilities(self):
        assert not DESTROYED.readable
        assert not DESTROYED.writable
        assert not DESTROYED.destroyable

    def test_immutable(self):
        with pytest.raises(AttributeError):
            DESTROYED.output = object()

    def test_destroy_raises(self, run):
        async def _main():
            with pytest.raises(EndpointDestroyedError):
                await DESTROYED.destroy()
        run(_main)


class TestLoopback:

    def test_write_then_read(self, run):
        async def _main():
            ep = streams.loopback()
            collected = _Collector(ep.output)
            await ep.output.start()
            await ep.input.write(b"around")
            await ep.destroy()
            await _until_closed(ep.output)
            assert bytes(collected.data) == b"around"
        run(_main)

# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab
