"""
Listen Analytics ETL - Orchestration Module
"""

from .task_orchestrator import (
    Task,
    TaskState,
    StepTiming,
    TaskOrchestrator
)

__all__ = [
    'Task',
    'TaskState',
    'StepTiming',
    'TaskOrchestrator'
]
