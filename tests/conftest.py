# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
pytest configuration and common code lives here.
"""

import pytest

from tubeio.config import TubeContext
from tubeio.io import reactor
from tubeio.io import streams
from tubeio.io.endpoint import Endpoint, ReadableSource
from tubeio.io.tube import Tube


def run_in_kernel(corofunc, *args):
    """Run a coroutine function in a fresh kernel, cancelling leftover tasks."""
    with reactor.get_new_kernel() as kern:
        return kern.run(corofunc, *args)


@pytest.fixture
def run():
    return run_in_kernel


def make_pipe_tube(**context):
    """A Tube reading from a new pipe.

    Returns:
        Tuple of (tube, writer). Writing to `writer` feeds the tube, closing it
        ends the tube's source.
    """
    reader, writer = streams.pipe()
    tube = Tube(Endpoint(output=ReadableSource(reader)), context=TubeContext(**context))
    return tube, writer


async def feed(writer, *chunks, interval=0.01, close=False):
    """Write chunks, pausing before each one."""
    for chunk in chunks:
        await reactor.sleep(interval)
        await writer.write(chunk)
    if close:
        await writer.close()


@pytest.fixture
def pipe_tube():
    return make_pipe_tube


@pytest.fixture
def feeder():
    return feed

# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
