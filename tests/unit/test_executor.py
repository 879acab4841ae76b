"""Unit tests for the job executor: command building, pass sequencing, cleanup."""
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch
from passenc.config.models import FFmpegConfig
from passenc.domain.errors import ConfigurationError, EncodingError, ExecutionFailure, WorkspaceError
from passenc.domain.events import (
    JobCompleted, JobFailed, JobStarted, PassCompleted, PassProgressUpdated, PassStarted
)
from passenc.domain.filters import SimpleFilter
from passenc.domain.formats import Format, X264
from passenc.domain.models import JobStatus, ProgressInfo
from passenc.infrastructure.event_bus import EventBus
from passenc.pipeline.executor import JobExecutor


def make_executor(driver, probe, workspace, **kwargs):
    return JobExecutor(driver=driver, probe=probe, workspace=workspace, **kwargs)


def commands(driver):
    return [c.args[0] for c in driver.command.call_args_list]


class TestBuildCommand:
    def test_base_then_pipeline_then_format_tokens(self, driver, probe, spy_workspace, video):
        video.add_filter(SimpleFilter(["-an"]))
        executor = make_executor(driver, probe, spy_workspace)

        cmd = executor.build_command(video, X264())

        assert cmd == [
            "-y", "-i", "/media/input.mp4",
            "-an",
            "-vcodec", "libx264",
            "-acodec", "aac",
            "-b:v", "1000k",
            "-b:a", "128k",
        ]

    def test_extra_params_and_threads_precede_codecs(self, probe, spy_workspace, video):
        driver = MagicMock()
        driver.config = FFmpegConfig(threads=4)
        fmt = Format(video_codec="libx264", extra_params=("-preset", "slow"), audio_channels=2)

        cmd = make_executor(driver, probe, spy_workspace).build_command(video, fmt)

        assert cmd == [
            "-y", "-i", "/media/input.mp4",
            "-preset", "slow",
            "-threads", 4,
            "-vcodec", "libx264",
            "-ac", 2,
        ]

    def test_subject_pipeline_is_not_mutated(self, driver, probe, spy_workspace, video):
        video.add_filter(SimpleFilter(["-an"]))
        executor = make_executor(driver, probe, spy_workspace)

        executor.build_command(video, X264())

        assert len(video.pipeline) == 1


class TestPassSequencing:
    def test_two_pass_job(self, driver, probe, spy_workspace, video, tmp_path):
        fmt = Format(video_codec="libx264", passes=2, progressable=False)

        job = make_executor(driver, probe, spy_workspace).run(video, fmt, "/tmp/out.mp4")

        first, second = commands(driver)
        assert first[-1] == second[-1] == "/tmp/out.mp4"
        assert first[first.index("-pass") + 1] == 1
        assert second[second.index("-pass") + 1] == 2
        prefix = first[first.index("-passlogfile") + 1]
        assert prefix == second[second.index("-passlogfile") + 1]
        assert Path(prefix).parent == tmp_path / "scratch"
        assert job.status == JobStatus.SUCCEEDED
        assert job.total_passes == 2

    def test_driver_called_in_foreground(self, driver, probe, spy_workspace, video):
        make_executor(driver, probe, spy_workspace).run(video, Format(progressable=False), "out.mp4")

        args = driver.command.call_args.args
        assert args[1] is False
        assert args[2] is None

    @pytest.mark.parametrize("passes", [0, -3])
    def test_invalid_pass_count_allocates_nothing(self, driver, probe, spy_workspace, video, passes):
        with pytest.raises(ConfigurationError):
            make_executor(driver, probe, spy_workspace).run(video, Format(passes=passes), "out.mp4")

        assert spy_workspace.method_calls == []
        assert not driver.command.called

    def test_failure_stops_remaining_passes(self, driver, probe, spy_workspace, video):
        driver.command.side_effect = [None, ExecutionFailure("ffmpeg exited with code 3", code=3), None]
        fmt = Format(video_codec="libx264", passes=3, progressable=False)

        with pytest.raises(EncodingError) as exc_info:
            make_executor(driver, probe, spy_workspace).run(video, fmt, "out.mp4")

        assert driver.command.call_count == 2
        job_id = spy_workspace.create_scratch_dir.call_args.args[2]
        spy_workspace.clean.assert_called_once_with(job_id)
        assert exc_info.value.code == 3
        assert isinstance(exc_info.value.__cause__, ExecutionFailure)
        assert "ffmpeg exited with code 3" in str(exc_info.value)

    def test_clean_called_once_on_success(self, driver, probe, spy_workspace, video):
        make_executor(driver, probe, spy_workspace).run(video, Format(passes=2, progressable=False), "out.mp4")

        assert spy_workspace.clean.call_count == 1

    def test_job_ids_are_unique(self, driver, probe, spy_workspace, video):
        executor = make_executor(driver, probe, spy_workspace)
        first = executor.run(video, Format(progressable=False), "a.mp4")
        second = executor.run(video, Format(progressable=False), "b.mp4")

        assert first.job_id != second.job_id

    def test_workspace_permissions_forwarded(self, driver, probe, spy_workspace, video):
        executor = make_executor(driver, probe, spy_workspace, permissions=0o700, max_attempts=3)
        executor.run(video, Format(progressable=False), "out.mp4")

        perms, attempts, _ = spy_workspace.create_scratch_dir.call_args.args
        assert (perms, attempts) == (0o700, 3)


class TestCleanup:
    def test_cleanup_error_does_not_mask_pass_failure(self, driver, probe, spy_workspace, video):
        driver.command.side_effect = ExecutionFailure("boom", code=1)
        spy_workspace.clean.side_effect = WorkspaceError("cannot remove")

        with pytest.raises(EncodingError):
            make_executor(driver, probe, spy_workspace).run(video, Format(progressable=False), "out.mp4")

    def test_cleanup_error_after_success_is_raised(self, driver, probe, spy_workspace, video):
        spy_workspace.clean.side_effect = WorkspaceError("cannot remove")

        with pytest.raises(WorkspaceError):
            make_executor(driver, probe, spy_workspace).run(video, Format(progressable=False), "out.mp4")

    def test_cleanup_runs_on_interrupt(self, driver, probe, spy_workspace, video):
        driver.command.side_effect = KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            make_executor(driver, probe, spy_workspace).run(video, Format(passes=2, progressable=False), "out.mp4")

        assert spy_workspace.clean.call_count == 1
        assert driver.command.call_count == 1

    def test_cleanup_runs_when_scratch_creation_fails(self, driver, probe, spy_workspace, video):
        spy_workspace.create_scratch_dir.side_effect = WorkspaceError("disk full")

        with pytest.raises(WorkspaceError, match="disk full"):
            make_executor(driver, probe, spy_workspace).run(video, Format(progressable=False), "out.mp4")

        assert spy_workspace.clean.call_count == 1
        assert not driver.command.called


class TestListeners:
    def test_one_listener_per_pass(self, driver, probe, spy_workspace, video):
        listeners = [MagicMock(), MagicMock(), MagicMock()]
        fmt = X264(passes=3)

        with patch.object(X264, "create_progress_listener", side_effect=listeners) as factory:
            make_executor(driver, probe, spy_workspace).run(video, fmt, "out.mp4")

        assert [c.args for c in factory.call_args_list] == [
            (video, probe, 1, 3),
            (video, probe, 2, 3),
            (video, probe, 3, 3),
        ]
        assert [c.args[2] for c in driver.command.call_args_list] == listeners

    def test_no_listener_without_progress_support(self, driver, probe, spy_workspace, video):
        fmt = Format(passes=2, progressable=False)

        with patch.object(Format, "create_progress_listener") as factory:
            make_executor(driver, probe, spy_workspace).run(video, fmt, "out.mp4")

        assert not factory.called


class TestEvents:
    def test_success_event_sequence(self, driver, probe, spy_workspace, video):
        bus = EventBus()
        seen = []
        for event_type in (JobStarted, PassStarted, PassCompleted, JobCompleted, JobFailed):
            bus.subscribe(event_type, seen.append)

        make_executor(driver, probe, spy_workspace, event_bus=bus).run(
            video, Format(passes=2, progressable=False), "out.mp4"
        )

        assert [type(e) for e in seen] == [
            JobStarted, PassStarted, PassCompleted, PassStarted, PassCompleted, JobCompleted
        ]
        assert [e.pass_index for e in seen if isinstance(e, PassStarted)] == [1, 2]

    def test_failure_event(self, driver, probe, spy_workspace, video):
        bus = EventBus()
        failed = []
        bus.subscribe(JobFailed, failed.append)
        driver.command.side_effect = ExecutionFailure("bad input", code=1)

        with pytest.raises(EncodingError):
            make_executor(driver, probe, spy_workspace, event_bus=bus).run(
                video, Format(progressable=False), "out.mp4"
            )

        assert len(failed) == 1
        assert failed[0].error_message == "bad input"
        assert failed[0].job.status == JobStatus.FAILED

    def test_progress_forwarded_to_bus(self, driver, probe, spy_workspace, video):
        bus = EventBus()
        updates = []
        bus.subscribe(PassProgressUpdated, updates.append)
        info = ProgressInfo(pass_index=1, total_passes=1, percent=50, pass_percent=50)

        def run_pass(cmd, background, listener):
            listener.handle("frame=1 time=00:00:05.00 bitrate= 100.0kbits/s")

        driver.command.side_effect = run_pass
        with patch("passenc.infrastructure.progress.ProgressListener.parse", return_value=info):
            make_executor(driver, probe, spy_workspace, event_bus=bus).run(video, Format(), "out.mp4")

        assert [u.progress for u in updates] == [info]
