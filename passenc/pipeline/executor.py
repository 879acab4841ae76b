import time
import uuid
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union
from passenc.domain.errors import ConfigurationError, EncodingError, ExecutionFailure, WorkspaceError
from passenc.domain.events import (
    JobStarted, JobCompleted, JobFailed, PassStarted, PassCompleted, PassProgressUpdated, Event
)
from passenc.domain.filters import (
    AudioChannelsFilter, BitrateFilter, CodecFilter, ExtraParamsFilter, Filter, SimpleFilter
)
from passenc.domain.formats import Format
from passenc.domain.models import EncodeJob, JobStatus, Token
from passenc.infrastructure.event_bus import EventBus
from passenc.pipeline.passes import PassCoordinator


class JobExecutor:
    """Runs one encode job: builds the command, runs every pass, cleans up.

    Passes run strictly in order on the calling thread. The first failing
    pass stops the job and the scratch directory is removed in all cases.
    """

    def __init__(
        self,
        driver,
        probe,
        workspace,
        event_bus: Optional[EventBus] = None,
        coordinator: Optional[PassCoordinator] = None,
        permissions: int = 0o777,
        max_attempts: int = 50,
        debug: bool = False,
    ):
        self.driver = driver
        self.probe = probe
        self.workspace = workspace
        self.event_bus = event_bus
        self.coordinator = coordinator or PassCoordinator()
        self.permissions = permissions
        self.max_attempts = max_attempts
        self.debug = debug
        self.logger = logging.getLogger(__name__)

    def _publish(self, event: Event):
        if self.event_bus is not None:
            self.event_bus.publish(event)

    def format_filters(self, format: Format) -> List[Filter]:
        """Filters derived from the format and driver, in command-line order."""
        filters: List[Filter] = [ExtraParamsFilter()]
        threads = self.driver.config.threads
        if threads:
            filters.append(SimpleFilter(["-threads", threads]))
        if format.has_video_codec():
            filters.append(CodecFilter("video"))
        if format.has_audio_codec():
            filters.append(CodecFilter("audio"))
        filters.append(BitrateFilter("video"))
        filters.append(BitrateFilter("audio"))
        filters.append(AudioChannelsFilter())
        return filters

    def build_command(self, video, format: Format) -> List[Token]:
        """Base command shared by every pass (without pass tokens and output)."""
        # The video's own pipeline must stay untouched
        filters = video.pipeline.clone()
        for f in self.format_filters(format):
            filters.add(f)
        return ["-y", "-i", str(video.path)] + filters.render(video, format)

    def configured_command(self) -> List[Token]:
        """Base command taken verbatim from the driver configuration."""
        commands = self.driver.config.commands
        if not commands:
            raise ConfigurationError("No ffmpeg commands configured for a custom encode")
        return list(commands)

    def _release(self, job_id: str, suppress: bool):
        try:
            self.workspace.clean(job_id)
        except WorkspaceError as e:
            if not suppress:
                raise
            # The job already failed; keep its error as the one reported
            self.logger.warning(f"Cleanup failed for {job_id}: {e}")

    def run(
        self,
        video,
        format: Format,
        output_path: Union[str, Path],
        base_command: Optional[Sequence[Token]] = None,
    ) -> EncodeJob:
        """Encodes video into output_path.

        ``base_command`` replaces the command built from the filters; pass
        tokens and the output path are still appended to it.
        """
        total_passes = format.passes
        self.coordinator.validate(total_passes)
        with_progress = format.supports_progress()

        if base_command is None:
            base_command = self.build_command(video, format)
        else:
            base_command = list(base_command)
        job = EncodeJob(
            job_id=f"passenc-passes-{uuid.uuid4().hex}",
            source=Path(video.path),
            output_path=Path(output_path),
            total_passes=total_passes,
        )
        self.logger.info(f"Encoding {job.source.name} -> {job.output_path} ({total_passes} pass(es))")
        self._publish(JobStarted(job=job))

        failure: Optional[ExecutionFailure] = None
        interrupted = False
        try:
            scratch = self.workspace.create_scratch_dir(self.permissions, self.max_attempts, job.job_id)
            log_prefix = Path(scratch) / f"pass-{uuid.uuid4().hex[:13]}"
            passes = self.coordinator.expand(base_command, total_passes, output_path, log_prefix)

            for encode_pass in passes:
                job.status = JobStatus.PASS_RUNNING
                job.current_pass = encode_pass.index

                listener = None
                if with_progress:
                    listener = format.create_progress_listener(video, self.probe, encode_pass.index, total_passes)
                    if self.event_bus is not None:
                        listener.add_callback(
                            lambda info: self._publish(PassProgressUpdated(job=job, progress=info))
                        )

                self._publish(PassStarted(job=job, pass_index=encode_pass.index))
                start_time = time.monotonic() if self.debug else None
                if self.debug:
                    self.logger.info(f"PASS_START: {job.job_id} pass {encode_pass.index}/{total_passes}")

                try:
                    self.driver.command(encode_pass.command, False, listener)
                except ExecutionFailure as e:
                    failure = e
                    self.logger.error(
                        f"Pass {encode_pass.index}/{total_passes} failed for {job.source.name}: {e.message}"
                    )
                    break

                if start_time is not None:
                    elapsed = time.monotonic() - start_time
                    self.logger.info(f"PASS_END: {job.job_id} pass {encode_pass.index} elapsed={elapsed:.2f}s")
                self._publish(PassCompleted(job=job, pass_index=encode_pass.index))
        except BaseException:
            interrupted = True
            raise
        finally:
            self._release(job.job_id, suppress=interrupted or failure is not None)

        if failure is not None:
            job.status = JobStatus.FAILED
            job.error_message = failure.message
            self._publish(JobFailed(job=job, error_message=failure.message))
            raise EncodingError("Encoding failed", code=failure.code) from failure

        job.status = JobStatus.SUCCEEDED
        self.logger.info(f"Encoded {job.output_path}")
        self._publish(JobCompleted(job=job))
        return job
