# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Execution of CLI tools, either to completion or as a stream.
"""
import logging
import shutil
import subprocess
import tempfile
import threading
from concurrent.futures import Future
from typing import BinaryIO, Callable, Iterator, List, Optional

import psutil

from ..exceptions import CommandError

logger = logging.getLogger(__name__)

COPY_CHUNK = 64 * 1024


def run_in_thread(target: Callable[[], None], name: str) -> Future:
    """
    Runs ``target`` on a daemon thread.

    The returned Future is the single-slot completion signal of the thread:
    it holds either ``None`` or the exception the copy raised.
    """
    done: Future = Future()

    def runner():
        try:
            target()
        except BaseException as e:
            done.set_exception(e)
        else:
            done.set_result(None)

    threading.Thread(target=runner, name=name, daemon=True).start()
    return done


def terminate_tree(pid: int, timeout: float = 5.0) -> None:
    """
    Sends SIGTERM to a process and its children, followed by SIGKILL for
    those still alive after ``timeout`` seconds.
    """
    try:
        parent = psutil.Process(pid)
        procs = parent.children(recursive=True) + [parent]
    except psutil.NoSuchProcess:
        return
    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass
    _, alive = psutil.wait_procs(procs, timeout=timeout)
    for proc in alive:
        logger.warning("process %d did not terminate, killing", proc.pid)
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass


class CommandRunner:
    """
    Runs a CLI tool to completion and returns its standard output.
    """
    def __init__(self, executable: str, global_args: Optional[List[str]] = None):
        """
        :param executable: Name or path of the tool.
        :param global_args: Arguments placed before every subcommand.
        """
        self.executable = executable
        self.global_args = list(global_args or [])

    def argv(self, *args: str) -> List[str]:
        return [self.executable, *self.global_args, *args]

    def run(self, *args: str) -> str:
        """
        Runs the tool and waits for it to exit.

        :return: Decoded standard output.
        :raises CommandError: If the tool cannot be started or fails.
        """
        argv = self.argv(*args)
        logger.debug("exec %s", " ".join(argv))
        try:
            result = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                shell=False,
            )
        except OSError as e:
            raise CommandError(argv, 127, message=f"cannot run {argv[0]}: {e.strerror}") from None
        if result.returncode != 0:
            logger.warning("%s failed (%d): %s", " ".join(argv), result.returncode,
                           result.stderr.strip())
            raise CommandError(argv, result.returncode, result.stderr)
        if result.stderr:
            logger.debug("%s stderr: %s", argv[0], result.stderr.strip())
        return result.stdout

    def stream(self, *args: str, stdin: Optional[BinaryIO] = None,
               merge_stderr: bool = True) -> "StreamingCommand":
        """
        Prepares a streaming invocation; use it as a context manager.
        """
        return StreamingCommand(self.argv(*args), stdin=stdin, merge_stderr=merge_stderr)


class StreamingCommand:
    """
    A running CLI tool whose output is consumed while it runs.

    With ``stdin`` set, a copy thread pumps that file into the process while
    the caller reads its output. ``copy_stdout_to`` pumps the output into a
    writer on a thread while the caller waits for the process. In both cases
    the copy outcome is joined in ``wait`` so a failed copy is reported even
    when the process itself succeeded.

    Leaving the ``with`` block because of an exception (typically the client
    hanging up) terminates the process and its children.
    """
    def __init__(self, argv: List[str], stdin: Optional[BinaryIO] = None,
                 merge_stderr: bool = True):
        self.argv = argv
        self.stdin_source = stdin
        self.merge_stderr = merge_stderr
        self.process: Optional[subprocess.Popen] = None
        self._stderr_file = None
        self._copy: Optional[Future] = None
        self._aborted = False

    def __enter__(self) -> "StreamingCommand":
        logger.debug("exec %s", " ".join(self.argv))
        if self.merge_stderr:
            stderr = subprocess.STDOUT
        else:
            self._stderr_file = tempfile.TemporaryFile()
            stderr = self._stderr_file
        try:
            self.process = subprocess.Popen(
                self.argv,
                stdin=subprocess.PIPE if self.stdin_source is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=stderr,
                shell=False,
            )
        except OSError as e:
            self._close_stderr()
            raise CommandError(self.argv, 127,
                               message=f"cannot run {self.argv[0]}: {e.strerror}") from None
        if self.stdin_source is not None:
            self._copy = run_in_thread(self._pump_stdin, name=f"{self.argv[0]}-stdin")
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.process is None:
            return False
        if exc_type is not None and self.process.poll() is None:
            logger.info("aborting %s: %s", " ".join(self.argv), exc_type.__name__)
            terminate_tree(self.process.pid)
        for pipe in (self.process.stdin, self.process.stdout):
            if pipe is not None:
                try:
                    pipe.close()
                except OSError:
                    pass
        self.process.wait()
        self._close_stderr()
        return False

    def _close_stderr(self):
        if self._stderr_file is not None:
            self._stderr_file.close()
            self._stderr_file = None

    def _pump_stdin(self):
        try:
            shutil.copyfileobj(self.stdin_source, self.process.stdin, COPY_CHUNK)
        finally:
            try:
                self.process.stdin.close()
            except BrokenPipeError:
                pass

    def lines(self) -> Iterator[str]:
        """
        Yields output lines as they are printed, without line endings.
        """
        for raw in iter(self.process.stdout.readline, b""):
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def read_chunk(self, size: int = COPY_CHUNK) -> bytes:
        """Reads the next block of raw standard output."""
        return self.process.stdout.read1(size)

    def copy_stdout_to(self, write: Callable[[bytes], object]) -> None:
        """
        Starts copying the remaining standard output into ``write`` on a
        separate thread; ``wait`` joins the copy.
        """
        def pump():
            try:
                while True:
                    chunk = self.process.stdout.read1(COPY_CHUNK)
                    if not chunk:
                        return
                    write(chunk)
            except BaseException:
                # Nobody drains stdout any more; stop the writer
                self._aborted = True
                terminate_tree(self.process.pid)
                raise
        self._copy = run_in_thread(pump, name=f"{self.argv[0]}-stdout")

    def stderr_text(self) -> str:
        if self._stderr_file is None:
            return ""
        self._stderr_file.seek(0)
        return self._stderr_file.read().decode("utf-8", errors="replace")

    def wait(self) -> None:
        """
        Waits for the process and the copy thread.

        :raises CommandError: If the process exited with a non-zero status.
        :raises Exception: Whatever the copy thread raised.
        """
        returncode = self.process.wait()
        copy_error = None
        if self._copy is not None:
            copy_error = self._copy.exception()
        if self._aborted and copy_error is not None:
            raise copy_error
        if returncode != 0:
            stderr = self.stderr_text()
            logger.warning("%s failed (%d): %s", " ".join(self.argv), returncode, stderr.strip())
            if copy_error is not None:
                logger.warning("copy for %s failed: %s", self.argv[0], copy_error)
            raise CommandError(self.argv, returncode, stderr) from copy_error
        if copy_error is not None:
            raise copy_error
