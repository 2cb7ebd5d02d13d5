# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
r"""Configuration object and factory functions.

Based on the confuse YAML configuration module.

Config files are merged together from various sources. The default values are
embedded here in the file config_default.yaml. User's may override, or set
additional values, by placing a "config.yaml" file in the user configuration directory.

The user configuration directory would be:

Linux:
    `~/.config/tubeio/`

MacOS:
    `~/.config/tubeio/`
    or
    `~/Library/Application Support/tubeio/`

The "tube" section supplies the default arguments of the tube receive
functions. Those are handed to each tube as a :class:`TubeContext` value, so
tubes never share mutable defaults.
"""

from copy import deepcopy
from collections import ChainMap
from typing import NamedTuple, Union

import confuse

from tubeio.core.exceptions import ConfigValueError

_CONFIG = None  # singleton instance.

INCOMPLETE_POLICIES = ("return", "buffer", "throw")


class Config(ChainMap):
    """Top-level configuration object.

    A subclass of :py:class:`collections.ChainMap`, it allows chaining other configurations later.
    """

    def __init__(self, *maps):
        self.__dict__["maps"] = list(maps) or [{}]

    def __getattr__(self, name):
        try:
            return self.__getitem__(name)
        except KeyError:
            raise AttributeError("Config: No attribute or key {!r}".format(name)) from None

    def __setattr__(self, name, val):
        self.__setitem__(name, val)

    def __delattr__(self, name):
        self.__delitem__(name)

    def __missing__(self, key):
        value = ConfigDict()
        self.__setitem__(key, value)
        return value


class ConfigDict(dict):
    """Configuration Dictionary.

    Provides both attribute style and normal mapping style syntax to access
    mapping values.

    Also features "reaching into" sub-containers using a dot-delimited syntax
    for the key:

        >>> cf = config.get_config()
        >>> cf.tube.long_timeout
        15
        >>> cf["tube.long_timeout"]
        15
    """

    def __init__(self, *args, **kwargs):
        self.__dict__["_depth"] = kwargs.pop("_depth", 0)
        dict.__init__(self, *args, **kwargs)

    def __repr__(self):
        return "{}({})".format(self.__class__.__name__, dict.__repr__(self))

    def __setitem__(self, name, value):
        d, name = self._get_subtree(name)
        return dict.__setitem__(d, name, value)

    def __getitem__(self, name):
        d, name = self._get_subtree(name)
        return dict.__getitem__(d, name)

    def __delitem__(self, name):
        d, name = self._get_subtree(name)
        return dict.__delitem__(d, name)

    def _get_subtree(self, name):
        d = self
        depth = self.__dict__["_depth"]
        parts = name.split(".")
        for part in parts[:-1]:
            depth += 1
            d = d.setdefault(part, self.__class__(_depth=depth))
        return d, parts[-1]

    __setattr__ = __setitem__
    __delattr__ = __delitem__

    def __getattr__(self, name):
        try:
            return self.__getitem__(name)
        except KeyError:
            raise AttributeError("ConfigDict: No attribute or key {!r}".format(name)) from None

    def copy(self):
        return self.__class__(self)

    __copy__ = copy

    def __deepcopy__(self, memo):
        new = dict()
        for key, value in self.items():
            new[key] = deepcopy(value, memo)
        return new


def _to_configdict(mapping, depth=0):
    cd = ConfigDict(_depth=depth)
    for key, value in mapping.items():
        if isinstance(value, dict):
            value = _to_configdict(value, depth + 1)
        dict.__setitem__(cd, key, value)
    return cd


def get_config(initdict=None, _filename=None, **kwargs):
    """Get primary configuration.

    Returns a Configuration instance containing configuration parameters. An
    extra dictionary may be merged in with the 'initdict' parameter.  And
    finally, extra options may also be added with keyword parameters.

    There is only one Config object in the program, and this will return it.

    Returns:
        A :class:`Config` instance.
    """
    global _CONFIG
    if _CONFIG is None:
        cf = confuse.Configuration("tubeio", "tubeio.config")
        if _filename:
            cf.set_file(_filename)
        if isinstance(initdict, dict):
            cf.add(initdict)
        cf.add(kwargs)
        _CONFIG = Config(_to_configdict(cf.flatten()))
    return _CONFIG


class TubeContext(NamedTuple):
    """Default arguments for tube functions.

    Attributes:
        chunk_size: the default max bytes read in by functions like `recv`.
        long_timeout: default timeout of `recv`, `recvuntil`, `recvline` and friends.
        short_timeout: default timeout of `clean`.
        no_timeout: default timeout of `can_recv`.
        encoding: encoding used by the string variants, like `recv_s`.
        handle_incomplete: what to do when a delimiter is not found in time,
                           one of "return", "buffer", "throw".
        line_ending: line ending of `recvline` and `sendline`.
        keepends: whether `recvline` keeps the line ending.
    """
    chunk_size: int = 4096
    long_timeout: float = 15.0
    short_timeout: float = 0.05
    no_timeout: float = 0.0
    encoding: str = "utf-8"
    handle_incomplete: str = "return"
    line_ending: Union[bytes, str] = b"\n"
    keepends: bool = False

    def replace(self, **kwargs):
        """Return a new context with some fields replaced."""
        return _checked(self._replace(**kwargs))


def _checked(context):
    if context.handle_incomplete not in INCOMPLETE_POLICIES:
        raise ConfigValueError("handle_incomplete must be one of {}, not {!r}".format(
                               INCOMPLETE_POLICIES, context.handle_incomplete))
    if context.chunk_size <= 0:
        raise ConfigValueError("chunk_size must be positive, not {!r}".format(context.chunk_size))
    line_ending = context.line_ending
    if isinstance(line_ending, str):
        line_ending = line_ending.encode(context.encoding)
    if not line_ending:
        raise ConfigValueError("line_ending must not be empty.")
    return context._replace(line_ending=line_ending)


def get_tube_context(**kwargs):
    """Build a new TubeContext from the "tube" configuration section.

    Keyword arguments override individual fields.
    """
    section = get_config().get("tube", {})
    values = {name: section[name] for name in TubeContext._fields if name in section}
    values.update(kwargs)
    return _checked(TubeContext(**values))


def get_process_config():
    """Return the "process" configuration section."""
    return get_config().get("process", ConfigDict())


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
