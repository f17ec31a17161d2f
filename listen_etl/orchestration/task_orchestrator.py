"""
Listen Analytics ETL - Task Orchestrator
Runs a fixed, ordered list of zero-argument steps one at a time.

Usage:
    orchestrator = TaskOrchestrator([
        Task('initialize_tables', schema.reset_schema),
        Task('fill_database', fill),
        Task('quit', db.close),
    ], instrument=True)
    orchestrator.run()

States:
    PENDING -> RUNNING(i) -> ... -> COMPLETED
                         \\-> FAILED(i, error)
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..exceptions import TaskFailedError

logger = logging.getLogger(__name__)


class TaskState(Enum):
    PENDING = 'pending'
    RUNNING = 'running'
    FAILED = 'failed'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class Task:
    """A named step; the action's return value is ignored"""
    name: str
    action: Callable[[], object]


@dataclass
class StepTiming:
    """Wall-clock record of one instrumented step"""
    name: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    elapsed_seconds: Optional[float] = None
    succeeded: bool = False


class TaskOrchestrator:
    """
    Sequential step runner

    A step starts only after the previous one returned. The first exception
    stops the sequence and is re-raised as TaskFailedError naming the step.
    Instrumentation (timing and step logs) is observational only.
    """

    def __init__(self, tasks: Sequence[Task], instrument: bool = False):
        names = [task.name for task in tasks]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate task names: {duplicates}")

        self.tasks: List[Task] = list(tasks)
        self.instrument = instrument
        self.state = TaskState.PENDING
        self.current_index: Optional[int] = None
        self.error: Optional[BaseException] = None
        self.timings: List[StepTiming] = []

    @property
    def failed_task(self) -> Optional[Task]:
        if self.state is TaskState.FAILED and self.current_index is not None:
            return self.tasks[self.current_index]
        return None

    def run(self) -> None:
        """
        Execute all steps in order

        Raises:
            TaskFailedError: a step raised; later steps were not invoked
            RuntimeError: the sequence was already run
        """
        if self.state is not TaskState.PENDING:
            raise RuntimeError(f"Task sequence already {self.state.value}")

        for index, task in enumerate(self.tasks):
            self.state = TaskState.RUNNING
            self.current_index = index
            try:
                self._run_step(task)
            except Exception as e:
                self.state = TaskState.FAILED
                self.error = e
                logger.error(f"# Task {task.name} failed: {e}")
                raise TaskFailedError(task.name, index, e) from e

        self.state = TaskState.COMPLETED

    def _run_step(self, task: Task) -> None:
        if not self.instrument:
            task.action()
            return

        timing = StepTiming(name=task.name, started_at=datetime.now())
        self.timings.append(timing)
        logger.info(f"# Begin {task.name} procedure")
        start = time.perf_counter()
        try:
            task.action()
            timing.succeeded = True
        finally:
            timing.elapsed_seconds = time.perf_counter() - start
            timing.finished_at = datetime.now()

        logger.info(f"# Task {task.name} finished: {timing.elapsed_seconds * 1000:.3f}ms")
