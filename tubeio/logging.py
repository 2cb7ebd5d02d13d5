# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Logging for tubes.

Log messages go straight to the system's syslog service. Where they end up is
configured there, see `man syslogd`.

Configurable with the following environment variables:

TUBEIO_LOG_FACILITY
    Sets the syslog facility to use, default USER.

TUBEIO_LOG_PRIORITY
    Sets the syslog priority to log, default NOTICE.

TUBEIO_LOG_STDERR
    Set to include stderr in log output.

Tube traffic is logged at DEBUG priority by `traffic`, so raising the priority
to DEBUG shows every chunk sent and received.
"""

import os
import sys
import syslog
import traceback
from typing import Dict, Optional

FACILITY: str = os.environ.get("TUBEIO_LOG_FACILITY", "USER").upper()
PRIORITY: str = os.environ.get("TUBEIO_LOG_PRIORITY", "NOTICE").upper()
USESTDERR: bool = bool(os.environ.get("TUBEIO_LOG_STDERR"))

# Longest traffic chunk shown in full.
TRAFFIC_MAX = 64


def openlog(ident=None, usestderr=USESTDERR, facility=FACILITY):
    """Open the syslog logger.

  Args:
    ident: log identifier, usually prefixes messages.
    usestderr: also log to stderr stream.
    facility: the logging facility to use. See syslog(1)
  """
    opts = syslog.LOG_PID | (syslog.LOG_PERROR if usestderr else 0)
    if isinstance(facility, str):
        facility = getattr(syslog, "LOG_" + facility.upper())
    if ident is None:
        syslog.openlog(logoption=opts, facility=facility)
    else:
        syslog.openlog(ident=ident, logoption=opts, facility=facility)


def closelog():
    syslog.closelog()


def debug(msg, *args):
    """Send a log message at DEBUG priority."""
    if get_priority() >= syslog.LOG_DEBUG:
        syslog.syslog(syslog.LOG_DEBUG, _encode(msg, args))


def info(msg, *args):
    """Send a log message at INFO priority."""
    if get_priority() >= syslog.LOG_INFO:
        syslog.syslog(syslog.LOG_INFO, _encode(msg, args))


def notice(msg, *args):
    """Send a log message at NOTICE priority."""
    if get_priority() >= syslog.LOG_NOTICE:
        syslog.syslog(syslog.LOG_NOTICE, _encode(msg, args))


def warning(msg, *args):
    """Send a log message at WARNING priority."""
    if get_priority() >= syslog.LOG_WARNING:
        syslog.syslog(syslog.LOG_WARNING, _encode(msg, args))


def error(msg, *args):
    """Send a log message at ERROR priority."""
    if get_priority() >= syslog.LOG_ERR:
        syslog.syslog(syslog.LOG_ERR, _encode(msg, args))


def traffic(direction, data, name="tube"):
    """Log a chunk of tube traffic at DEBUG priority.

  Args:
    direction: "recv" or "send".
    data: the bytes that moved.
    name: prefix identifying the tube.
  """
    if get_priority() < syslog.LOG_DEBUG:
        return
    if len(data) > TRAFFIC_MAX:
        shown = "{!r}...".format(bytes(data[:TRAFFIC_MAX]))
    else:
        shown = repr(bytes(data))
    syslog.syslog(syslog.LOG_DEBUG,
                  _encode("%s: %s %d bytes: %s", (name, direction, len(data), shown)))


def exception_error(prefix, ex, *args):
    """Log a compact exception at ERROR priority."""
    msg = _encode(prefix, args)
    error(f"{msg}: {_format_exception(ex)}")


def exception_warning(prefix, ex, *args):
    """Log a compact exception at WARNING priority."""
    msg = _encode(prefix, args)
    warning(f"{msg}: {_format_exception(ex)}")


def _format_exception(ex):
    return " | ".join([line.strip() for line in traceback.format_exception_only(ex)])


def _encode(o, args):
    msg = str(o)
    if args:
        try:
            msg = msg % args
        except TypeError:
            msg = msg + " had format TypeError: " + str(args)
    # UTF8 BOM per RFC-5424.
    return "\ufeff" + msg.replace("\r\n", " ")


def set_priority(level):
    """Set syslog priority.

  Args:
      level: syslog.LOG_* level.
  """
    syslog.setlogmask(syslog.LOG_UPTO(level))


def get_priority():
    """Get max syslog priority."""
    mask = syslog.setlogmask(0)
    for level in (
            syslog.LOG_DEBUG,
            syslog.LOG_INFO,
            syslog.LOG_NOTICE,
            syslog.LOG_WARNING,
            syslog.LOG_ERR,
            syslog.LOG_CRIT,
            syslog.LOG_ALERT,
            syslog.LOG_EMERG,
    ):
        if syslog.LOG_MASK(level) & mask:
            return level
    return syslog.LOG_DEBUG


PRIORITIES = {
    "DEBUG": syslog.LOG_DEBUG,
    "INFO": syslog.LOG_INFO,
    "NOTICE": syslog.LOG_NOTICE,
    "WARNING": syslog.LOG_WARNING,
    "WARN": syslog.LOG_WARNING,
    "ERR": syslog.LOG_ERR,
    "ERROR": syslog.LOG_ERR,
    "CRIT": syslog.LOG_CRIT,
    "CRITICAL": syslog.LOG_CRIT,
    "ALERT": syslog.LOG_ALERT,
}
PRIORITIES_REV = dict((v, k) for k, v in PRIORITIES.items())


class Logger:
    """Syslog logger that prefixes ``name`` to every message.

  Args:
      name: name to prefix to logging messages. The program name will be used by
        default.
      usestderr: Also write log messages to stderr.
      facility: name of syslog facility, default is "USER".
      priority: name of priority level to emit log messages at, default is
        "NOTICE".
  """

    _LOGGERS: Dict[str, "Logger"] = {}

    def __init__(
        self,
        name: Optional[str] = None,
        usestderr: Optional[bool] = False,
        facility: Optional[str] = FACILITY,
        priority: Optional[str] = PRIORITY,
    ):
        self.name = name or os.path.basename(sys.argv[0])
        closelog()
        openlog(name, usestderr, facility)
        self.priority = priority

    def close(self):
        Logger._LOGGERS.pop(self.name, None)
        if not Logger._LOGGERS:
            closelog()

    def debug(self, msg, *args):
        debug(f"{self.name}: {msg}", *args)

    def info(self, msg, *args):
        info(f"{self.name}: {msg}", *args)

    def notice(self, msg, *args):
        notice(f"{self.name}: {msg}", *args)

    def warning(self, msg, *args):
        warning(f"{self.name}: {msg}", *args)

    def error(self, msg, *args):
        error(f"{self.name}: {msg}", *args)

    def traffic(self, direction, data):
        traffic(direction, data, name=self.name)

    def exception_warning(self, prefix, exc, *args):
        exception_warning(f"{self.name}: {prefix}", exc, *args)

    @property
    def priority(self):
        """The current priority level name."""
        return PRIORITIES_REV[get_priority()]

    @priority.setter
    def priority(self, newlevel):
        set_priority(PRIORITIES[newlevel.upper()])


def get_logger(name=None, usestderr=USESTDERR, facility=FACILITY, priority=PRIORITY):
    """Get a :py:class:`Logger` object.

  May return cached logger object.
  """
    name = name or os.path.basename(sys.argv[0])
    if name in Logger._LOGGERS:
        return Logger._LOGGERS[name]
    logger = Logger(name=name, usestderr=usestderr, facility=facility, priority=priority)
    Logger._LOGGERS[name] = logger
    return logger


class LogLevel:
    """Context manager to run a block of code at a specific log level.

  Supply the level name as a string.
  """

    def __init__(self, level):
        self._level = PRIORITIES[level.upper()]
        self._oldpriority = 0

    def __enter__(self):
        self._oldpriority = syslog.setlogmask(syslog.LOG_UPTO(self._level))

    def __exit__(self, extype, exvalue, extb):
        syslog.setlogmask(self._oldpriority)


set_priority(PRIORITIES.get(PRIORITY, syslog.LOG_NOTICE))

# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
