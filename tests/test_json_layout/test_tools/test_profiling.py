"""Tests for the build profiler."""

import json
from unittest.mock import MagicMock, patch

from json_layout.tools.profiling import BuildProfiler, ProfilingSession, StagePerformance

DOCUMENT = '{"layers": [{"type": "TextLayer", "text": "a"}, {"layers": [{}]}]}'


class TestStagePerformance:
    def test_derived_values(self):
        """Test derived duration and memory values."""
        stage = StagePerformance(
            stage_name="build",
            start_time=10.0,
            end_time=10.5,
            memory_start=1000,
            memory_end=1600,
            operations_count=3,
        )
        assert stage.duration_ms == 500.0
        assert stage.memory_delta == 600
        assert stage.to_dict()["operations_count"] == 3


class TestBuildProfiler:
    def test_profile_stage_records_memory(self):
        """Test that a stage records memory usage."""
        process = MagicMock()
        process.memory_info.side_effect = [MagicMock(rss=100), MagicMock(rss=250)]
        with patch("json_layout.tools.profiling.psutil.Process", return_value=process):
            profiler = BuildProfiler()

        session = profiler.start_session("doc", input_size=10)
        with profiler.profile_stage(session, "tokenize") as stage:
            stage.operations_count = 5
        profiler.end_session(session)

        assert len(session.stages) == 1
        assert session.stages[0].memory_delta == 150
        assert profiler.sessions == [session]

    def test_memory_tracking_disabled(self):
        """Test profiling with memory tracking disabled."""
        profiler = BuildProfiler(enable_memory_tracking=False)
        assert profiler.memory_rss() == 0

    def test_profile_document_stages(self):
        """Test the stages recorded for a document."""
        profiler = BuildProfiler()
        session, result = profiler.profile_document(DOCUMENT, "doc.json")

        assert isinstance(session, ProfilingSession)
        assert result.success
        assert [stage.stage_name for stage in session.stages] == ["tokenize", "build", "destroy"]
        assert session.stages[0].operations_count == 12
        assert session.stages[1].operations_count == 4
        assert session.stages[2].operations_count == 4
        assert session.metadata["success"] is True
        assert session.input_size == len(DOCUMENT)

    def test_profile_document_accepts_bytes(self):
        """Test profiling a document given as bytes."""
        profiler = BuildProfiler(enable_memory_tracking=False)
        session, result = profiler.profile_document(b"{}", "bytes")
        assert result.success
        assert session.input_size == 2

    def test_report_and_save(self, tmp_path):
        """Test building and saving a report."""
        profiler = BuildProfiler(enable_memory_tracking=False)
        profiler.profile_document("{}", "one")
        profiler.profile_document("[]", "two")

        report = profiler.report()
        assert report["summary"]["session_count"] == 2
        assert report["sessions"][1]["metadata"]["success"] is False

        output = tmp_path / "report.json"
        profiler.save_report(output)
        assert json.loads(output.read_text())["summary"]["session_count"] == 2

        profiler.clear_sessions()
        assert profiler.report()["summary"]["average_duration_ms"] == 0.0
