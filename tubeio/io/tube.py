# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Provide buffered, timeout aware receive functions over an Endpoint.

A Tube keeps a receive buffer that is filled by the endpoint's readable source
as chunks arrive. The receive methods consume from the head of that buffer,
waiting for the tube's "data" signal when there is not enough yet.

All receive methods are coroutines and must run in the curio kernel. A tube
must not be used by two tasks at once.

The "incomplete" policies decide what happens when a delimiter is not found
before the timeout, or before the source closes:

return
    Return everything read so far.

buffer
    Push everything read back into the tube and return empty bytes.

throw
    Push everything read back into the tube and raise TubeTimeoutError.
"""

from blinker import Namespace

from tubeio import logging
from tubeio.config import get_tube_context, INCOMPLETE_POLICIES
from tubeio.core.exceptions import (TubeStateError, TubeUsageError,
                                    TubeTimeoutError, NoNewlineError,
                                    EndpointDestroyedError)
from tubeio.io.endpoint import DESTROYED, emit
from tubeio.os.time import wait_for_event, Deadline


_IN = ("in", "read", "recv")
_OUT = ("out", "send", "write")
_EITHER = ("any", "either")
_BOTH = ("both",)


def _find_first(data, delims):
    """Return the end offset of the earliest delimiter in data, or None.

    Ties go to the delimiter listed first.
    """
    best = None
    for delim in delims:
        index = data.find(delim)
        if index >= 0 and (best is None or index < best[0]):
            best = (index, delim)
    if best is None:
        return None
    index, delim = best
    return index + len(delim)


class Tube:
    """A buffered I/O tube wrapped around an Endpoint.

    Args:
        endpoint: the :class:`tubeio.io.endpoint.Endpoint` to talk to.
        context: a :class:`tubeio.config.TubeContext` with the default
                 arguments. Defaults to one built from the configuration.
        name: name used in log messages.
    """

    def __init__(self, endpoint, context=None, name="tube"):
        self._io = endpoint
        self.context = context if context is not None else get_tube_context()
        self.name = name
        self.events = Namespace()
        self._buffer = bytearray()
        self._source = endpoint.output
        self._forwards = []
        if self._source is not None:
            self._source.events.signal("data").connect(self._on_data, sender=self._source)
            self._source.events.signal("close").connect(self._on_close, sender=self._source)

    def __repr__(self):
        return "{}({!r}, {} bytes buffered)".format(self.__class__.__name__, self._io,
                                                   len(self._buffer))

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, extype, exvalue, extb):
        if not self.closed:
            await self.close()

    async def _on_data(self, sender, data):
        self._buffer.extend(data)
        logging.traffic("recv", data, self.name)
        await emit(self.events.signal("data"), self, data=data)

    async def _on_close(self, sender):
        logging.info("%s: source closed, %d bytes buffered.", self.name, len(self._buffer))
        if self._io.output is sender:
            self._io.retire_output()
        # Zero length notification wakes waiters so they see the closure.
        await emit(self.events.signal("data"), self, data=b"")

    async def start(self):
        """Start receiving from the endpoint. Blocking methods call this."""
        if self._io.readable and not self._io.output.started:
            await self._io.output.start()

    @property
    def closed(self):
        return self._io is DESTROYED

    def connected(self, direction="any"):
        """Check if the tube is connected in a direction.

        Args:
            direction: one of "in", "read", "recv", "out", "send", "write",
                       "any", "either", "both".
        """
        if direction in _IN:
            return self._io.readable or len(self._buffer) > 0
        if direction in _OUT:
            return self._io.writable
        if direction in _EITHER:
            return self.connected("in") or self.connected("out")
        if direction in _BOTH:
            return self.connected("in") and self.connected("out")
        raise TubeUsageError("Invalid direction: {!r}".format(direction))

    # Helpers

    def _to_bytes(self, data):
        if isinstance(data, str):
            return data.encode(self.context.encoding)
        return bytes(data)

    def _decode(self, data, encoding):
        return data.decode(encoding or self.context.encoding, "replace")

    def _delims(self, delims):
        if isinstance(delims, (bytes, bytearray, str)):
            delims = [delims]
        delims = [self._to_bytes(d) for d in delims]
        if not delims or not all(delims):
            raise TubeUsageError("Delimiters must be non-empty.")
        return delims

    def _policy(self, handle_incomplete):
        if handle_incomplete is None:
            return self.context.handle_incomplete
        if handle_incomplete not in INCOMPLETE_POLICIES:
            raise TubeUsageError("handle_incomplete must be one of {}, not {!r}".format(
                                 INCOMPLETE_POLICIES, handle_incomplete))
        return handle_incomplete

    def _take(self, nbytes=None):
        buf = self._buffer
        if nbytes is None or nbytes >= len(buf):
            data = bytes(buf)
            buf.clear()
        else:
            data = bytes(buf[:nbytes])
            del buf[:nbytes]
        return data

    def _check_input(self):
        if not self.connected("in"):
            raise TubeStateError("Cannot read from io object.")

    # Receiving

    async def _recv(self, nbytes, limit):
        await self.start()
        self._check_input()
        if not self._buffer:
            await wait_for_event(self.events, "data", limit)
        return self._take(nbytes)

    async def recv(self, nbytes=None, timeout=None):
        """Receive up to nbytes. Returns when any amount of data is available.

        Returns empty bytes if nothing arrived within timeout seconds. A
        negative timeout waits forever.
        """
        nbytes = self.context.chunk_size if nbytes is None else nbytes
        timeout = self.context.long_timeout if timeout is None else timeout
        return await self._recv(nbytes, timeout)

    async def recv_s(self, nbytes=None, timeout=None, encoding=None):
        return self._decode(await self.recv(nbytes, timeout), encoding)

    def unrecv(self, data):
        """Insert data back at the start of the receive buffer."""
        self._buffer[0:0] = self._to_bytes(data)

    async def recvall(self):
        """Receive until the source closes, and return everything."""
        await self.start()
        if self.closed:
            raise TubeStateError("Cannot read from a closed tube.")
        source = self._io.output
        if source is not None and not source.closed:
            logging.info("%s: receiving all data...", self.name)
            await wait_for_event(source.events, "close", -1)
        return self._take()

    async def recvall_s(self, encoding=None):
        return self._decode(await self.recvall(), encoding)

    async def recvuntil(self, delims, timeout=None, handle_incomplete=None):
        """Receive data until one of the delimiters is encountered.

        Args:
            delims: a delimiter or list of delimiters. The earliest one found in
                    the data wins.
            timeout: seconds to wait for a delimiter, in total, or an Event that
                     ends the wait when set.
            handle_incomplete: "return", "buffer" or "throw".

        Returns:
            The data up to and including the delimiter.
        """
        timeout = self.context.long_timeout if timeout is None else timeout
        return await self._recvuntil(self._delims(delims), timeout,
                                     self._policy(handle_incomplete))

    async def _recvuntil(self, delims, limit, handle_incomplete):
        await self.start()
        self._check_input()
        received = bytearray()
        async with Deadline(limit) as deadline:
            while self.connected("in"):
                received += await self._recv(self.context.chunk_size, deadline.limit)
                if deadline.expired:
                    received += self._take()
                end = _find_first(received, delims)
                if end is not None:
                    self.unrecv(received[end:])
                    return bytes(received[:end])
                if deadline.expired:
                    break
        if handle_incomplete == "return":
            return bytes(received)
        self.unrecv(received)
        if handle_incomplete == "throw":
            raise TubeTimeoutError("Timeout before reaching delimiter.")
        return b""

    async def recvuntil_s(self, delims, timeout=None, handle_incomplete=None, encoding=None):
        return self._decode(await self.recvuntil(delims, timeout, handle_incomplete), encoding)

    async def recvline(self, keepends=None, timeout=None, handle_incomplete=None,
                       line_ending=None):
        """Receive a line of data.

        Args:
            keepends: keep the line ending at the end of the line.
            timeout: seconds to wait for the line ending, or an Event that ends
                     the wait when set.
            handle_incomplete: "return" returns whatever was received, "buffer"
                               leaves it buffered and returns empty bytes,
                               "throw" leaves it buffered and raises NoNewlineError.
            line_ending: the line ending to use.
        """
        ctx = self.context
        keepends = ctx.keepends if keepends is None else keepends
        timeout = ctx.long_timeout if timeout is None else timeout
        line_ending = ctx.line_ending if line_ending is None else self._to_bytes(line_ending)
        return await self._recvline(keepends, timeout, self._policy(handle_incomplete),
                                    line_ending)

    async def _recvline(self, keepends, limit, handle_incomplete, line_ending):
        try:
            line = await self._recvuntil([line_ending], limit, "throw")
        except TubeTimeoutError:
            if handle_incomplete == "return":
                return self._take()
            if handle_incomplete == "throw":
                raise NoNewlineError("Could not find a newline.") from None
            return b""
        if not keepends and line.endswith(line_ending):
            line = line[:-len(line_ending)]
        return line

    async def recvline_s(self, keepends=None, timeout=None, handle_incomplete=None,
                         line_ending=None, encoding=None):
        line = await self.recvline(keepends, timeout, handle_incomplete, line_ending)
        return self._decode(line, encoding)

    async def recvline_pred(self, pred, keepends=None, timeout=None, handle_incomplete=None,
                            line_ending=None, pred_encoding=None):
        """Receive lines until one matches the predicate.

        Args:
            pred: function called with the line as bytes and as text. Returns
                  True when the line is the one wanted.
            keepends: keep the line ending of the returned line.
            timeout: seconds to wait for a matching line, in total, or an Event
                     that ends the wait when set.
            handle_incomplete: with "return" all non-matching lines are
                               returned, "buffer" and "throw" put them back.
            line_ending: the line ending to use.
            pred_encoding: encoding for the text given to the predicate.

        Returns:
            The matching line.
        """
        ctx = self.context
        keepends = ctx.keepends if keepends is None else keepends
        timeout = ctx.long_timeout if timeout is None else timeout
        line_ending = ctx.line_ending if line_ending is None else self._to_bytes(line_ending)
        handle_incomplete = self._policy(handle_incomplete)
        await self.start()
        self._check_input()
        scrapped = bytearray()
        async with Deadline(timeout) as deadline:
            while self.connected("in") and not deadline.expired:
                raw = await self._recvline(True, deadline.limit, "buffer", line_ending)
                if not raw:
                    break
                line = raw
                if not keepends and line.endswith(line_ending):
                    line = line[:-len(line_ending)]
                if pred(line, self._decode(line, pred_encoding)):
                    return line
                scrapped += raw
        if handle_incomplete == "return":
            return bytes(scrapped)
        self.unrecv(scrapped)
        if handle_incomplete == "throw":
            raise TubeTimeoutError("Timeout before a line matched.")
        return b""

    async def recvline_pred_s(self, pred, keepends=None, timeout=None, handle_incomplete=None,
                              line_ending=None, pred_encoding=None, encoding=None):
        line = await self.recvline_pred(pred, keepends, timeout, handle_incomplete,
                                        line_ending, pred_encoding)
        return self._decode(line, encoding)

    async def can_recv(self, timeout=None):
        """Return True if there is data that can be received within timeout.

        A negative timeout is treated as zero, it does not wait forever.
        """
        timeout = self.context.no_timeout if timeout is None else timeout
        await self.start()
        if self._buffer:
            return True
        if not self._io.readable:
            return False
        await wait_for_event(self.events, "data", max(timeout, 0))
        return len(self._buffer) > 0

    async def clean(self, timeout=None):
        """Receive and return data until none arrives within timeout.

        A timeout of zero or less only empties the receive buffer.
        """
        timeout = self.context.short_timeout if timeout is None else timeout
        if timeout <= 0:
            return self._take()
        await self.start()
        cleaned = bytearray()
        while self.connected("in"):
            data = await self._recv(self.context.chunk_size, timeout)
            if not data:
                break
            cleaned += data
        return bytes(cleaned)

    async def clean_s(self, timeout=None, encoding=None):
        return self._decode(await self.clean(timeout), encoding)

    # Sending

    async def send(self, data):
        """Write data to the endpoint. Returns the number of bytes sent."""
        if not self.connected("out"):
            raise TubeStateError("Cannot write to io object.")
        data = self._to_bytes(data)
        logging.traffic("send", data, self.name)
        sink = self._io.input
        await sink.write(data)
        flush = getattr(sink, "flush", None)
        if flush is not None:
            await flush()
        return len(data)

    async def sendline(self, data=b"", line_ending=None):
        line_ending = self.context.line_ending if line_ending is None else line_ending
        return await self.send(self._to_bytes(data) + self._to_bytes(line_ending))

    # Connecting tubes together

    def connect_output(self, other):
        """Send everything received by this tube to the other tube as well."""
        if not (self._io.readable and other.connected("out")):
            raise TubeStateError("Must connect a readable tube to a writable tube.")

        async def _forward(sender, data):
            if data and other.connected("out"):
                await other.send(data)

        self._source.events.signal("data").connect(_forward, sender=self._source, weak=False)
        self._forwards.append(_forward)

    def connect_input(self, other):
        other.connect_output(self)

    def connect_both(self, other):
        self.connect_input(other)
        self.connect_output(other)

    pipe = connect_output
    pipe_from = connect_input
    pipe_both = connect_both

    # Teardown

    async def close(self):
        """Destroy the endpoint, if possible, and mark the tube closed.

        The tube is closed even if destroying the endpoint fails. The failure
        is raised after that.
        """
        io = self._io
        if io is DESTROYED:
            raise EndpointDestroyedError("Cannot re-destroy a closed tube.")
        try:
            if io.destroyable:
                await io.destroy()
        except Exception as err:
            logging.exception_warning("{}: destroy failed".format(self.name), err)
            raise
        finally:
            self._io = DESTROYED
            self._buffer.clear()
            await self._detach()
        logging.info("%s: closed.", self.name)

    async def _detach(self):
        source, self._source = self._source, None
        if source is None:
            return
        data_signal = source.events.signal("data")
        data_signal.disconnect(self._on_data)
        source.events.signal("close").disconnect(self._on_close)
        while self._forwards:
            data_signal.disconnect(self._forwards.pop())
        await source.stop()


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
