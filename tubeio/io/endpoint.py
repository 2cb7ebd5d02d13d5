# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Endpoints are what a tube talks to.

An Endpoint is a set of capabilities, any of which may be missing:

output
    A :class:`ReadableSource`. It pumps chunks from one or more streams and
    announces them on its "data" signal, then sends "close" once every stream
    has ended.

input
    A writable stream with an ``async write(data)`` method.

destroy
    An async callable that tears down whatever is behind the endpoint.

The `DESTROYED` endpoint has no capabilities at all. Tubes swap it in when they
are closed.
"""

from blinker import Namespace

from tubeio import logging
from tubeio.core.exceptions import EndpointDestroyedError
from tubeio.io.reactor import spawn


def _as_coroutine(func):
    """Wrap a plain function so blinker's send_async can await it."""
    async def _wrapper(*args, **kwargs):
        return func(*args, **kwargs)
    return _wrapper


async def emit(signal, sender, **kwargs):
    """Send a signal to sync and async receivers alike."""
    return await signal.send_async(sender, _sync_wrapper=_as_coroutine, **kwargs)


class ReadableSource:
    """Merges streams into one series of "data" signals.

    Args:
        streams: objects with an ``async read(maxbytes)`` method that returns
                 b"" at end of stream. None entries are ignored.
        chunksize: most bytes read from a stream at once.
    """

    def __init__(self, *streams, chunksize=4096):
        self.events = Namespace()
        self.chunksize = chunksize
        self._streams = [s for s in streams if s is not None]
        self._tasks = []
        self._unfinished = len(self._streams)
        self._started = False
        self.closed = False

    def __repr__(self):
        return "{}({} streams, closed={})".format(self.__class__.__name__,
                                                  len(self._streams), self.closed)

    @property
    def started(self):
        return self._started

    async def start(self):
        """Start pumping all streams. Does nothing if already started."""
        if self._started:
            return
        self._started = True
        if not self._streams:
            await self._finish()
            return
        for stream in self._streams:
            self._tasks.append(await spawn(self._pump, stream, daemon=True))

    async def stop(self):
        """Stop pumping. The "close" signal is not sent."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            await task.cancel()

    async def _pump(self, stream):
        data_signal = self.events.signal("data")
        while True:
            try:
                data = await stream.read(self.chunksize)
            except OSError as err:
                logging.exception_warning("ReadableSource: read error, treated as EOF", err)
                break
            if not data:
                break
            await emit(data_signal, self, data=bytes(data))
        self._unfinished -= 1
        if self._unfinished == 0:
            await self._finish()

    async def _finish(self):
        self.closed = True
        await emit(self.events.signal("close"), self)


class Endpoint:
    """A set of optional I/O capabilities.

    Args:
        output: a ReadableSource, or None.
        input: a writable stream, or None.
        destroy: an async callable taking no arguments, or None.
    """

    def __init__(self, output=None, input=None, destroy=None):
        self.output = output
        self.input = input
        self._destroy = destroy

    def __repr__(self):
        caps = [name for name, present in (("output", self.readable),
                                           ("input", self.writable),
                                           ("destroy", self.destroyable)) if present]
        return "{}({})".format(self.__class__.__name__, ", ".join(caps) or "destroyed")

    @property
    def readable(self):
        return self.output is not None

    @property
    def writable(self):
        return self.input is not None

    @property
    def destroyable(self):
        return self._destroy is not None

    def retire_output(self):
        """Drop the readable capability, after its source closed."""
        self.output = None

    async def destroy(self):
        if self._destroy is None:
            raise EndpointDestroyedError("Cannot re-destroy a destroyed endpoint.")
        return await self._destroy()


class _DestroyedEndpoint(Endpoint):

    def __init__(self):
        super().__init__()

    def __setattr__(self, name, value):
        if name in self.__dict__:
            raise AttributeError("The destroyed endpoint can not be modified.")
        super().__setattr__(name, value)


DESTROYED = _DestroyedEndpoint()


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
