"""Performance profiling tools for layout building.

Measures wall time and resident memory per build stage (tokenize, build,
teardown) so slow or memory-hungry documents can be spotted.
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import psutil

from json_layout.shared import LayoutConfig, get_logger
from json_layout.tokenization import JSONTokenizer
from json_layout.tree import BuildResult, Layout


@dataclass
class StagePerformance:
    """Performance metrics for one build stage."""

    stage_name: str
    start_time: float
    end_time: float
    memory_start: int  # bytes
    memory_end: int  # bytes
    operations_count: int = 0

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    @property
    def memory_delta(self) -> int:
        return self.memory_end - self.memory_start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_name": self.stage_name,
            "duration_ms": self.duration_ms,
            "memory_delta": self.memory_delta,
            "operations_count": self.operations_count,
        }


@dataclass
class ProfilingSession:
    """Container for the stages of one profiled document."""

    session_id: str
    start_time: float
    end_time: float = 0.0
    input_size: int = 0  # bytes
    stages: List[StagePerformance] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "input_size": self.input_size,
            "total_duration_ms": self.total_duration_ms,
            "metadata": dict(self.metadata),
            "stages": [stage.to_dict() for stage in self.stages],
        }


class BuildProfiler:
    """Profiler for layout builds.

    Examples:
        >>> profiler = BuildProfiler()
        >>> session = profiler.start_session("menu.json", input_size=512)
        >>> with profiler.profile_stage(session, "build"):
        ...     result = layout.parse(text)
        >>> profiler.end_session(session)
    """

    def __init__(self, enable_memory_tracking: bool = True) -> None:
        """Initialize build profiler.

        Args:
            enable_memory_tracking: Whether to sample process RSS around stages
        """
        self.enable_memory_tracking = enable_memory_tracking
        self.sessions: List[ProfilingSession] = []
        self.logger = get_logger(__name__, None, "build_profiler")
        self._process = psutil.Process() if enable_memory_tracking else None

    def start_session(self, session_id: str, input_size: int = 0) -> ProfilingSession:
        session = ProfilingSession(
            session_id=session_id,
            start_time=time.time(),
            input_size=input_size,
        )
        self.logger.debug(
            "Started profiling session",
            extra={"session_id": session_id, "input_size": input_size},
        )
        return session

    def end_session(self, session: ProfilingSession) -> None:
        session.end_time = time.time()
        self.sessions.append(session)
        self.logger.info(
            "Ended profiling session",
            extra={
                "session_id": session.session_id,
                "duration_ms": session.total_duration_ms,
                "stage_count": len(session.stages),
            },
        )

    def profile_stage(self, session: ProfilingSession, stage_name: str) -> "StageProfiler":
        """Return a context manager that records ``stage_name`` on ``session``."""
        return StageProfiler(self, session, stage_name)

    def memory_rss(self) -> int:
        if self._process is None:
            return 0
        return self._process.memory_info().rss

    def profile_document(
        self,
        text: Union[str, bytes],
        session_id: str,
        config: Optional[LayoutConfig] = None,
        standard_types: bool = True,
    ) -> Tuple[ProfilingSession, BuildResult]:
        """Tokenize, build and destroy one document, timing each stage."""
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        config = config or LayoutConfig()
        session = self.start_session(session_id, input_size=len(text.encode("utf-8")))

        with self.profile_stage(session, "tokenize") as stage:
            tokenization = JSONTokenizer(config.tokenizer).tokenize(text)
            stage.operations_count = tokenization.token_count

        layout = Layout(config, standard_types=standard_types)
        if standard_types:
            layout.add_system_fonts()
        try:
            with self.profile_stage(session, "build") as stage:
                result = layout.parse(text)
                stage.operations_count = result.metrics.nodes_created
        finally:
            with self.profile_stage(session, "destroy") as stage:
                stage.operations_count = layout.node_count
                layout.destroy()

        session.metadata["success"] = result.success
        session.metadata["diagnostics"] = len(result.diagnostics)
        self.end_session(session)
        return session, result

    def report(self) -> Dict[str, Any]:
        durations = [s.total_duration_ms for s in self.sessions]
        return {
            "generation_time": time.time(),
            "summary": {
                "session_count": len(self.sessions),
                "average_duration_ms": sum(durations) / len(durations) if durations else 0.0,
            },
            "sessions": [session.to_dict() for session in self.sessions],
        }

    def save_report(self, output_path: Path) -> None:
        output_path.write_text(json.dumps(self.report(), indent=2))
        self.logger.info(
            "Saved performance report",
            extra={"output_path": str(output_path), "session_count": len(self.sessions)},
        )

    def clear_sessions(self) -> None:
        self.sessions.clear()


class StageProfiler:
    """Context manager for profiling one build stage."""

    def __init__(self, profiler: BuildProfiler, session: ProfilingSession, stage_name: str):
        self.profiler = profiler
        self.session = session
        self.stage_name = stage_name
        self.stage: Optional[StagePerformance] = None

    def __enter__(self) -> StagePerformance:
        self.stage = StagePerformance(
            stage_name=self.stage_name,
            start_time=time.time(),
            end_time=0.0,
            memory_start=self.profiler.memory_rss(),
            memory_end=0,
        )
        return self.stage

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.stage is None:
            return
        self.stage.end_time = time.time()
        self.stage.memory_end = self.profiler.memory_rss()
        self.session.stages.append(self.stage)
