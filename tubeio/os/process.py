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
Asynchronous process spawner, and tubes that talk to processes.

A process becomes an Endpoint by merging its stdout and stderr into one
readable source, using its stdin as the writable side, and terminating it as
the destroy operation.
"""

import atexit
import shlex
import shutil

import psutil

from curio import subprocess
from curio.subprocess import PIPE

from tubeio import logging
from tubeio.config import get_process_config, get_tube_context
from tubeio.io.endpoint import Endpoint, ReadableSource
from tubeio.io.reactor import timeout_after, TaskTimeout
from tubeio.io.tube import Tube


STDBUF = ["stdbuf", "-i0", "-o0", "-e0"]


class ManagerError(Exception):
    pass


class ProgramNotFound(ManagerError):
    pass


class PipeProcess(psutil.Process):
    """Wrapped curio Popen that merges async methods and psutil methods.
    """

    def __init__(self, *args, **kwargs):
        self._popen = subprocess.Popen(*args, **kwargs)
        super().__init__(self._popen.pid)
        self.progname = None

    def __getattribute__(self, name):
        try:
            return object.__getattribute__(self, name)
        except AttributeError:
            try:
                return object.__getattribute__(self._popen, name)
            except AttributeError:
                raise AttributeError("{} has no attribute {!r}".format(
                    self.__class__.__name__, name)) from None

    @property
    def returncode(self):
        return self._popen.returncode

    async def terminate_and_wait(self, timeout=2.0):
        """Send SIGTERM, then SIGKILL if the process is still there after timeout."""
        try:
            self.terminate()
        except psutil.NoSuchProcess:
            return self.returncode
        try:
            return await timeout_after(timeout, self._popen.wait)
        except TaskTimeout:
            logging.warning("PipeProcess: {}({}) ignored SIGTERM, killing.".format(
                            self.progname, self.pid))
        try:
            self.kill()
        except psutil.NoSuchProcess:
            pass
        return await self._popen.wait()


class ProcessManager:
    """Starts and keeps track of subprocesses.
    """

    def __init__(self):
        self._procs = {}

    def __str__(self):
        return "ProcessManager: pids: {}".format(", ".join(str(pid) for pid in self._procs))

    def close(self):
        self.killall()

    @property
    def processes(self):
        return self._procs.values()

    def start(self, commandline, stdin=PIPE, stdout=PIPE, stderr=PIPE,
              directory=None, env=None, buffered=None):
        """Start a subprocess using pipes.

        Args:
            commandline: a command string, split shell style, or an argv list.
            buffered: if false, run the program under stdbuf so that its stdio
                      is not buffered. Default from the "process.buffered"
                      configuration.
        """
        if isinstance(commandline, str):
            argv = shlex.split(commandline)
        elif isinstance(commandline, (list, tuple)):
            argv = list(commandline)
        else:
            raise ValueError("start needs a command string or argv list.")
        if not argv:
            raise ValueError("start needs a non-empty command.")
        progname = shutil.which(argv[0])
        if not progname:
            raise ProgramNotFound("{!r} not found.".format(argv[0]))
        argv[0] = progname
        if buffered is None:
            buffered = get_process_config().get("buffered", False)
        if not buffered:
            stdbuf = shutil.which(STDBUF[0])
            if stdbuf:
                argv = [stdbuf] + STDBUF[1:] + argv
            else:
                logging.warning("ProcessManager: stdbuf not found, {!r} runs buffered.".format(
                                progname))
        logging.notice("ProcessManager: trying: {}".format(argv))
        proc = PipeProcess(argv,
                           stdin=stdin,
                           stdout=stdout,
                           stderr=stderr,
                           cwd=directory,
                           env=env,
                           shell=False)
        self._procs[proc.pid] = proc
        proc.progname = progname
        logging.notice("ProcessManager: started: {!r} with PID: {}".format(progname, proc.pid))
        return proc

    def forget(self, proc):
        self._procs.pop(proc.pid, None)

    def killall(self):
        while self._procs:
            pid, proc = self._procs.popitem()
            if proc.returncode is None:
                try:
                    proc.terminate()
                except psutil.NoSuchProcess:
                    pass


_manager = None


def get_manager():
    global _manager
    if _manager is None:
        _manager = ProcessManager()
        atexit.register(_manager.close)
    return _manager


async def _close_stream(stream):
    try:
        await stream.close()
    except OSError as err:
        logging.exception_warning("endpoint_from_process: closing pipe", err)


def endpoint_from_process(proc, kill_timeout=None, chunksize=4096):
    """Make an Endpoint from a running PipeProcess.

    The readable side merges stdout and stderr, in arrival order, and closes
    when both have ended. The writable side is stdin. Destroying the endpoint
    terminates the process, stops the readable side and closes all three pipes.
    """
    if kill_timeout is None:
        kill_timeout = get_process_config().get("kill_timeout", 2.0)
    source = ReadableSource(proc.stdout, proc.stderr, chunksize=chunksize)

    async def _destroy():
        returncode = await proc.terminate_and_wait(kill_timeout)
        get_manager().forget(proc)
        await source.stop()
        for stream in (proc.stdin, proc.stdout, proc.stderr):
            if stream is not None:
                await _close_stream(stream)
        logging.notice("Exited: {}({}): {}".format(proc.progname, proc.pid, returncode))
        return returncode

    return Endpoint(output=source, input=proc.stdin, destroy=_destroy)


class ProcessTube(Tube):
    """A tube that talks to a program run as a subprocess.

    Args:
        command: program to run, as a command string or argv list.
        args: more arguments appended to the command.
        buffered: if false, disable the program's stdio buffering with stdbuf.
        context: TubeContext with the tube defaults.
        directory: working directory of the program.
        env: environment of the program.
    """

    def __init__(self, command, args=(), buffered=None, context=None, directory=None,
                 env=None):
        if isinstance(command, str) and not args:
            argv = command
        else:
            argv = (shlex.split(command) if isinstance(command, str) else list(command))
            argv.extend(args)
        if context is None:
            context = get_tube_context()
        proc = get_manager().start(argv, directory=directory, env=env, buffered=buffered)
        endpoint = endpoint_from_process(proc, chunksize=context.chunk_size)
        super().__init__(endpoint, context=context,
                         name="{}({})".format(proc.progname, proc.pid))
        self.proc = proc


async def process(command, *args, **kwargs):
    """Run a program and return a started ProcessTube for it."""
    tube = ProcessTube(command, args, **kwargs)
    await tube.start()
    return tube


# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab:fileencoding=utf-8
