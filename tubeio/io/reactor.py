# python3

# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Asynchronous core. Unify the asynchronous functions here.

Tubes run on a single curio kernel. Every blocking tube call is a coroutine
that suspends only inside the wait functions of :mod:`tubeio.os.time`.
"""

import atexit

from tubeio import logging

from curio import (Kernel, sleep, spawn, CancelledError, TaskError, TaskTimeout, # noqa
                   Event, TaskGroup, timeout_after, ignore_after)


_default_kernel = None


def get_kernel():
    """Return a curio.Kernel object.

    This is a singleton object.
    """
    global _default_kernel
    if _default_kernel is None:
        _default_kernel = Kernel()
        atexit.register(_shutdown_kernel)
    return _default_kernel


def get_new_kernel():
    return Kernel()


def _shutdown_kernel():
    global _default_kernel
    if _default_kernel is not None:
        kern = _default_kernel
        _default_kernel = None
        logging.info("Shutting down curio.Kernel at exit.")
        kern.run(None, shutdown=True)


def run(corofunc, *args):
    """Run a coroutine function to completion on the shared kernel."""
    return get_kernel().run(corofunc, *args)


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
