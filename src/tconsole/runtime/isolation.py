# src/tconsole/runtime/isolation.py

"""
Runs units of work in a forked, single-use child process.

Anything the work does to the interpreter (imports, monkeypatching, global
state, even ``sys.exit`` or a segfault) dies with the child. Only the
encoded return value travels back to the parent.
"""

import os
import sys
import traceback
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Final

import structlog

from tconsole import codec
from tconsole.exceptions import PayloadDecodeError, WorkerDecodeError

if TYPE_CHECKING:
    from tconsole.config import TConsoleConfig

log = structlog.get_logger("runtime.isolation")


class _NoResult:
    """Sentinel type for a worker that produced nothing usable."""

    _instance: "_NoResult | None" = None

    def __new__(cls) -> "_NoResult":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_RESULT"

    def __bool__(self) -> bool:
        return False


NO_RESULT: Final = _NoResult()

# Exit statuses used by the child.
_EXIT_OK = 0
_EXIT_WORK_FAILED = 1
_EXIT_ENCODE_FAILED = 2


class IsolatedRunner:
    """
    Forks a child per call, runs the work there and returns its decoded
    return value, or NO_RESULT if the child didn't deliver one.
    """

    def __init__(self, config: "TConsoleConfig"):
        self.config = config
        self._log = log.bind(runner_id=id(self))

    def run(self, work: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        read_fd, write_fd = os.pipe()
        sys.stdout.flush()
        sys.stderr.flush()

        pid = os.fork()
        if pid == 0:
            os.close(read_fd)
            self._run_child(write_fd, work, args, kwargs)  # never returns

        os.close(write_fd)
        with os.fdopen(read_fd, "rb") as reader:
            payload = reader.read()
        _, status = os.waitpid(pid, 0)
        exit_code = os.waitstatus_to_exitcode(status)

        run_log = self._log.bind(worker_pid=pid, exit_code=exit_code, payload_size=len(payload))
        run_log.debug("Worker finished")

        if exit_code != _EXIT_OK:
            self.config.trace(f"Worker {pid} exited with status {exit_code}. Returning no result.")
            run_log.warning("Worker exited abnormally")
            return NO_RESULT

        try:
            self.config.trace("Reading result from worker.")
            return decode_worker_payload(payload)
        except WorkerDecodeError as e:
            self.config.trace("Problem reading result from worker. Returning no result.")
            self.config.trace(str(e))
            run_log.warning("Worker payload could not be decoded", error=str(e))
            return NO_RESULT

    def _run_child(
        self,
        write_fd: int,
        work: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        exit_code = _EXIT_OK
        try:
            try:
                value = work(*args, **kwargs)
            except BaseException as e:  # the child must always reach os._exit
                exit_code = _EXIT_WORK_FAILED
                log.error("Work failed inside worker", error=str(e), error_type=type(e).__name__)
                if self.config.is_tracing:
                    self.config.trace("".join(traceback.format_exception(e)))
            else:
                try:
                    frame = codec.encode(value)
                except (TypeError, ValueError) as e:
                    exit_code = _EXIT_ENCODE_FAILED
                    log.error("Worker result is not encodable", error=str(e))
                else:
                    with os.fdopen(write_fd, "wb") as writer:
                        writer.write(frame)
        finally:
            try:
                sys.stdout.flush()
                sys.stderr.flush()
            finally:
                os._exit(exit_code)


def decode_worker_payload(payload: bytes) -> Any:
    """Decodes the bytes a worker wrote, raising WorkerDecodeError on any problem."""
    if not payload:
        raise WorkerDecodeError("Worker wrote no payload")
    try:
        return codec.decode(payload)
    except PayloadDecodeError as e:
        raise WorkerDecodeError(str(e)) from e


# 🔼⚙️
