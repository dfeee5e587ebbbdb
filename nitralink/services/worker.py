"""
Background analysis worker.

Runs AnalysisPipeline in a dedicated child process so the caller is never
blocked. Communication is one-way: the child puts progress notifications
on a queue followed by exactly one terminal notification (complete or
error). The caller's only control is terminate(), which kills the process
and discards any partial work.

Usage:
    worker = AnalysisWorker()
    worker.post_message(payload)
    for message in worker.messages():
        if message.kind == "progress":
            print(message.percent, message.message)
        else:
            result = message
"""

import asyncio
import multiprocessing
import queue
from typing import Any, AsyncIterator, Callable, Dict, Iterator, Optional

from nitralink.config import Settings, settings as default_settings
from nitralink.core.pipeline import AnalysisPipeline, TerminalMessage
from nitralink.schemas.analysis import (
    ErrorMessage,
    ProgressMessage,
    WorkerMessage,
    parse_worker_message,
)
from nitralink.utils.exceptions import WorkerBusyError, WorkerCrashedError, error_payload
from nitralink.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _run_in_worker(payload: Any, outbox: Any, environment: str, config_values: Dict[str, Any]) -> None:
    """Child process entry point."""
    try:
        setup_logging(environment)
        config = Settings(**config_values)
        pipeline = AnalysisPipeline(config=config)
        terminal = pipeline.run(payload, emit=lambda message: outbox.put(message.model_dump(by_alias=True)))
    except Exception as e:
        payload_error = error_payload(e)
        terminal = ErrorMessage(message=payload_error["message"], error=payload_error)
    outbox.put(terminal.model_dump(by_alias=True))


class AnalysisWorker:
    """
    Owns one background process and at most one analysis run.

    Features:
    - post_message(): start a run (raises WorkerBusyError while one is in flight)
    - messages() / amessages(): progress notifications, then one terminal message
    - terminate(): unconditional abort, no partial results
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        environment: Optional[str] = None,
        poll_interval: float = 0.5,
    ):
        self.config = config or default_settings
        self.environment = environment or self.config.ENVIRONMENT
        self.poll_interval = poll_interval

        self._ctx = multiprocessing.get_context(self.config.WORKER_START_METHOD)
        self._process: Optional[multiprocessing.process.BaseProcess] = None
        self._outbox: Optional[Any] = None
        self._finished = True

    @property
    def is_running(self) -> bool:
        """True between post_message() and the terminal notification."""
        return self._process is not None and not self._finished

    def post_message(self, payload: Any) -> None:
        """Start an analysis run in the background process."""
        if self.is_running:
            raise WorkerBusyError()

        self._close_outbox()
        self._outbox = self._ctx.Queue()
        self._process = self._ctx.Process(
            target=_run_in_worker,
            args=(payload, self._outbox, self.environment, self.config.model_dump()),
            name="nitralink-analysis",
            daemon=True,
        )
        self._finished = False
        self._process.start()
        logger.info("Analysis worker started", pid=self._process.pid)

    def _next_raw(self) -> Optional[Dict[str, Any]]:
        """Next queued notification, or None if the process died silently."""
        while True:
            try:
                return self._outbox.get(timeout=self.poll_interval)
            except queue.Empty:
                if self._process.is_alive():
                    continue
                # The process may have exited right after its last put
                try:
                    return self._outbox.get(timeout=self.poll_interval)
                except queue.Empty:
                    return None

    def messages(self) -> Iterator[WorkerMessage]:
        """
        Yield notifications for the current run.

        Stops after the terminal notification. Yields nothing when no run is
        in flight or the worker was terminated.
        """
        while self.is_running:
            raw = self._next_raw()

            if raw is None:
                self._finished = True
                self._close_outbox()
                crash = WorkerCrashedError(self._process.exitcode)
                logger.error("Analysis worker died", exitcode=self._process.exitcode)
                yield ErrorMessage(message=crash.message, error=crash.to_dict())
                return

            message = parse_worker_message(raw)
            if message.kind != "progress":
                self._finished = True
                self._process.join(timeout=self.poll_interval * 10)
                self._close_outbox()
                logger.info("Analysis worker finished", outcome=message.kind)
            yield message

    async def amessages(self) -> AsyncIterator[WorkerMessage]:
        """asyncio version of messages(); queue reads happen in the default executor."""
        loop = asyncio.get_running_loop()
        iterator = self.messages()
        while True:
            message = await loop.run_in_executor(None, next, iterator, None)
            if message is None:
                return
            yield message

    def run(
        self,
        payload: Any,
        on_progress: Optional[Callable[[ProgressMessage], None]] = None,
    ) -> TerminalMessage:
        """Post payload and block until the terminal notification."""
        self.post_message(payload)
        terminal: Optional[TerminalMessage] = None
        for message in self.messages():
            if isinstance(message, ProgressMessage):
                if on_progress is not None:
                    on_progress(message)
            else:
                terminal = message
        return terminal

    def terminate(self) -> None:
        """Kill the background process; any in-flight run is abandoned."""
        if self._process is not None and self._process.is_alive():
            self._process.terminate()
            self._process.join()
            logger.warning("Analysis worker terminated", pid=self._process.pid)
        self._finished = True
        self._close_outbox()

    def _close_outbox(self) -> None:
        if self._outbox is not None:
            self._outbox.close()
            self._outbox.join_thread()
            self._outbox = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.terminate()
