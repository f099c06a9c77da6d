"""Developer tools for layout building."""

from .profiling import BuildProfiler, ProfilingSession, StagePerformance

__all__ = [
    "BuildProfiler",
    "ProfilingSession",
    "StagePerformance",
]
