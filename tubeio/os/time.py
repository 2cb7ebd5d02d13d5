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
Timing related functions that work with the asynchronous core framework.

The waits here are the only places a tube suspends. Each one is a race between
the thing waited for and a limit. The limit is either a number of seconds
(negative for no limit) or an Event that cancels the wait when set. The loser of
the race is always torn down: timers are cancelled and signal receivers are
disconnected before the result is handled.
"""

import time
import numbers

from tubeio.core.exceptions import TubeTimeoutError, WaitPreempted
from tubeio.io.reactor import sleep, spawn, Event, TaskGroup, ignore_after


__all__ = ['now', 'wait_for_event', 'wait_for_time', 'Deadline']

now = time.monotonic


def _is_duration(limit):
    return isinstance(limit, numbers.Real)


async def wait_for_event(source, event, limit=-1, reject=False):
    """Wait for the next emission of a named signal.

    Args:
        source: a blinker Namespace holding the signal.
        event: name of the signal in `source`.
        limit: seconds to wait, negative for no limit, or an Event that cancels
               the wait when it is set.
        reject: raise TubeTimeoutError when the limit is reached instead of
                returning None.

    Returns:
        The keyword arguments the signal was sent with, as a dict, or None if
        the limit was reached first.
    """
    signal = source.signal(event)
    fired = Event()
    payload = {}

    async def _receiver(sender, **kwargs):
        if not fired.is_set():
            payload.update(kwargs)
            await fired.set()

    signal.connect(_receiver, weak=False)
    try:
        if _is_duration(limit):
            if limit < 0:
                await fired.wait()
            else:
                await ignore_after(limit, fired.wait)
            # An emission that lands together with the deadline still counts.
            won = fired.is_set()
        elif limit.is_set():
            won = False
        else:
            async with TaskGroup(wait=any) as g:
                waiter = await g.spawn(fired.wait)
                await g.spawn(limit.wait)
            won = g.completed is waiter
    finally:
        signal.disconnect(_receiver)
    if won:
        return payload
    if reject:
        raise TubeTimeoutError("Hit limit before {!r} event.".format(event))
    return None


async def wait_for_time(seconds, expire=None, reject=False):
    """Wait for a period of time.

    Args:
        seconds: time to wait.
        expire: optional Event that ends the wait early when set.
        reject: raise WaitPreempted if `expire` ends the wait.

    Returns:
        True if the time ran out, False if `expire` was set first.
    """
    if expire is None:
        await sleep(seconds)
        return True
    if not expire.is_set():
        async with TaskGroup(wait=any) as g:
            timer = await g.spawn(sleep, seconds)
            await g.spawn(expire.wait)
        if g.completed is timer:
            return True
    if reject:
        raise WaitPreempted("Expire event was set before the timer ran out.")
    return False


class Deadline:
    """One deadline shared by a sequence of waits.

    Use as an async context manager. When the limit is a non-negative number a
    single timer is armed on entry, and `limit` becomes an Event that is set
    when the time runs out. Pass `limit` to every wait of the sequence so that
    the whole sequence is bounded, no matter how many waits it takes. An Event
    limit is passed through unchanged, so nested operations share the deadline
    of the outermost one.
    """

    def __init__(self, limit):
        self.limit = limit
        self._stop = Event()
        self._timer = None

    async def __aenter__(self):
        if _is_duration(self.limit) and self.limit >= 0:
            seconds, self.limit = self.limit, Event()
            self._timer = await spawn(self._run, seconds)
        return self

    async def __aexit__(self, extype, exvalue, extb):
        if self._timer is not None:
            timer, self._timer = self._timer, None
            await self._stop.set()
            await timer.join()

    async def _run(self, seconds):
        if await wait_for_time(seconds, self._stop):
            await self.limit.set()

    @property
    def expired(self):
        """True once the deadline has passed."""
        return not _is_duration(self.limit) and self.limit.is_set()


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
