#!/usr/bin/env python3

# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Test os.process module.
"""

import os
import shutil

import pytest

from tubeio.core.exceptions import TubeStateError
from tubeio.os import process

needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="needs sh")
needs_cat = pytest.mark.skipif(shutil.which("cat") is None, reason="needs cat")


class TestProcessManager:

    def test_program_not_found(self):
        with pytest.raises(process.ProgramNotFound):
            process.get_manager().start("no-such-program-here --help")

    def test_empty_command(self):
        with pytest.raises(ValueError):
            process.get_manager().start([])

    def test_bad_command(self):
        with pytest.raises(ValueError):
            process.get_manager().start(42)

    def test_manager_is_singleton(self):
        assert process.get_manager() is process.get_manager()


@needs_cat
class TestProcessTube:

    def test_echo_lines(self, run):
        async def _main():
            tube = await process.process("cat")
            await tube.sendline("hello")
            assert await tube.recvline(timeout=5.0) == b"hello"
            await tube.sendline("world")
            assert await tube.recvline_s(timeout=5.0) == "world"
            await tube.close()
            assert tube.closed
            assert tube.proc.returncode is not None
            with pytest.raises(TubeStateError):
                await tube.sendline("gone")
        run(_main)

    def test_context_manager(self, run):
        async def _main():
            async with process.ProcessTube("cat") as tube:
                await tube.send(b"abc:")
                assert await tube.recvuntil(b":", 5.0) == b"abc:"
            assert tube.closed
        run(_main)

    def test_pipes_closed_after_close(self, run):
        async def _main():
            tube = await process.process("cat")
            proc = tube.proc
            fds = [proc.stdin.fileno(), proc.stdout.fileno(), proc.stderr.fileno()]
            await tube.sendline("x")
            assert await tube.recvline(timeout=5.0) == b"x"
            await tube.close()
            for fd in fds:
                with pytest.raises(OSError):
                    os.fstat(fd)
        run(_main)

    def test_forgotten_after_close(self, run):
        async def _main():
            tube = await process.process("cat")
            pid = tube.proc.pid
            assert any(p.pid == pid for p in process.get_manager().processes)
            await tube.close()
            assert not any(p.pid == pid for p in process.get_manager().processes)
        run(_main)


@needs_sh
class TestProcessOutput:

    def test_stdout_and_stderr_merged(self, run):
        async def _main():
            tube = await process.process("sh", "-c", "echo out; echo err 1>&2")
            output = await tube.recvall()
            assert sorted(output.splitlines()) == [b"err", b"out"]
            assert not tube.connected("in")
            await tube.close()
        run(_main)

    def test_exits_after_output(self, run):
        async def _main():
            tube = await process.process("sh", "-c", "printf 'one\\ntwo\\n'")
            assert await tube.recvline(timeout=5.0) == b"one"
            assert await tube.recvline(timeout=5.0) == b"two"
            assert await tube.recvall() == b""
            assert not tube.connected("in")
            await tube.close()
        run(_main)

# vim:ts=4:sw=4:softtabstop=4:smarttab:expandtab
