from .pipeline import Pipeline, RunResult, RunSummary
from .scheduler import PipelineScheduler

__all__ = ['Pipeline', 'RunResult', 'RunSummary', 'PipelineScheduler']
