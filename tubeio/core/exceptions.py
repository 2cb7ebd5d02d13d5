# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""All common exceptions."""


class TubeError(Exception):
    """Base class for errors raised by tubes and their endpoints."""


# state errors
class TubeStateError(TubeError):
    """The tube is not connected in the direction an operation needs."""


class EndpointDestroyedError(TubeStateError):
    """Attempt to destroy an endpoint that is already destroyed."""


# usage errors
class TubeUsageError(TubeError):
    """A tube method was called with an argument that makes no sense."""


# timeouts
class TubeTimeoutError(TubeError, TimeoutError):
    """A receive with "throw" semantics ran out of time.

    Any data read before the timeout has been pushed back into the tube.
    """


class NoNewlineError(TubeTimeoutError):
    """A line was requested but no line ending arrived in time."""


class WaitPreempted(TubeError):
    """A timed wait was preempted by its expire event."""


# configuration errors
class ConfigError(Exception):
    """Base class for exceptions raised when querying a configuration.
    """


class ConfigValueError(ConfigError):
    """The value in the configuration is illegal."""


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
