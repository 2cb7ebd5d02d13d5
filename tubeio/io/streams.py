# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""IO for streams.

Use the Stream objects from here. Collects the curio supplied Stream objects
that serve as the sides of an Endpoint, and adds pipes and a loopback endpoint.
"""

import os

from curio.io import StreamBase, FileStream  # noqa

from tubeio.io.endpoint import Endpoint, ReadableSource

__all__ = ["StreamBase", "FileStream", "pipe", "loopback"]


def pipe():
    """Make a new pipe.

    Returns:
        Tuple of (reader, writer) FileStreams.
    """
    rfd, wfd = os.pipe()
    os.set_blocking(rfd, False)
    os.set_blocking(wfd, False)
    return (FileStream(open(rfd, "rb", buffering=0)),
            FileStream(open(wfd, "wb", buffering=0)))


def loopback(chunksize=4096):
    """An Endpoint whose writable side feeds its own readable side.

    Destroying it closes the writing end, so the readable side ends after the
    data already written.
    """
    reader, writer = pipe()

    async def _destroy():
        await writer.close()

    return Endpoint(output=ReadableSource(reader, chunksize=chunksize),
                    input=writer, destroy=_destroy)


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
