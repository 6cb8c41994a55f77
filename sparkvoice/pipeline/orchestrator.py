"""Pipeline wiring for Sparkvoice.

Responsibilities:
- Build the repository, storage, synthesis, and calendar collaborators from config.
- Expose one method per operator command, mapping repository failures to stage errors.
- Arm the daily scheduler with the verification and pre-generation jobs.

Key types:
- `AudioPipeline`: orchestration facade used by the CLI.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from functools import cached_property
import time
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..civic import CivicCalendar
from ..config import SparkvoiceConfig
from ..errors import AudioStoreError, PipelineStageError
from ..io.repository import ContentRepository, SqlContentRepository
from ..io.storage import AudioStore, audio_key, create_audio_store
from ..models.datatypes import GenerationResult, RunContext, VerificationReport
from ..telemetry.logger import RunLogger
from ..tts.synthesizer import OpenAITTSSynthesizer, Synthesizer
from ..tts.voices import narration_voice
from .batch import BatchGenerator, RegenerationPage
from .narrator import ItemNarrator
from .scheduler import DailyScheduler, ScheduledJob
from .verification import AudioVerifier

_StageResult = TypeVar("_StageResult")

VERIFICATION_JOB = "verify"
PREGENERATION_JOB = "pregenerate"


class AudioPipeline:
    """Coordinate generation, verification, and scheduling for one configuration."""

    def __init__(
        self,
        config: SparkvoiceConfig,
        *,
        repository: ContentRepository | None = None,
        store: AudioStore | None = None,
        synthesizer: Synthesizer | None = None,
        run_logger: RunLogger | None = None,
        clock: Callable[[], datetime] | None = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the pipeline; unspecified collaborators are built from config."""

        config.validate()
        self.config = config
        self.run_logger = run_logger
        self.sleeper = sleeper
        self.calendar = (
            CivicCalendar(config.timezone, clock=clock)
            if clock is not None
            else CivicCalendar(config.timezone)
        )
        runtime = config.resolved_synthesis_runtime()
        self.store = store or create_audio_store(
            audio_dir=config.audio_dir,
            supabase_url=config.supabase_url,
            supabase_service_role_key=config.supabase_service_role_key,
            bucket=config.audio_bucket,
            timeout_seconds=config.request_timeout_seconds,
        )
        self.synthesizer = synthesizer or OpenAITTSSynthesizer(
            model=runtime.tts_model,
            api_key=runtime.api_key,
            timeout_seconds=config.request_timeout_seconds,
        )
        self.narrator = ItemNarrator(
            store=self.store,
            synthesizer=self.synthesizer,
            voice=narration_voice(runtime.tts_voice),
        )
        self._repository = repository

    @property
    def repository(self) -> ContentRepository:
        """Return the content repository, connecting lazily from `database_url`."""

        if self._repository is None:
            if self.config.database_url is None:
                raise PipelineStageError(
                    stage="config",
                    detail="Content database is not configured.",
                    hint="Set `DATABASE_URL` or `database_url` in the YAML config.",
                )
            self._repository = SqlContentRepository.from_url(self.config.database_url)
        return self._repository

    @cached_property
    def generator(self) -> BatchGenerator:
        """Return the batch generator bound to this pipeline's collaborators."""

        return BatchGenerator(
            repository=self.repository,
            narrator=self.narrator,
            calendar=self.calendar,
            run_logger=self.run_logger,
            throttle_seconds=self.config.throttle_seconds,
            bulk_cooldown_seconds=self.config.bulk_cooldown_seconds,
            sleeper=self.sleeper,
        )

    @cached_property
    def verifier(self) -> AudioVerifier:
        """Return the verifier bound to this pipeline's collaborators."""

        return AudioVerifier(
            repository=self.repository,
            narrator=self.narrator,
            calendar=self.calendar,
            run_logger=self.run_logger,
            backoff_base_seconds=self.config.retry_backoff_seconds,
            sleeper=self.sleeper,
        )

    def generate_window(self, lead_days: int | None = None) -> GenerationResult:
        """Generate narration for items scheduled in the look-ahead window."""

        days = self.config.lead_days if lead_days is None else lead_days
        return self._run_repository_stage(
            "generate-window", lambda: self.generator.generate_window(days)
        )

    def generate_limited(
        self,
        limit: int,
        force: bool = False,
        context: RunContext | None = None,
    ) -> GenerationResult:
        """Generate up to `limit` artifacts across all content."""

        return self._run_repository_stage(
            "generate-batch",
            lambda: self.generator.generate_limited(limit, force=force, context=context),
        )

    def generate_bulk(self, batch_size: int | None = None, force: bool = False) -> GenerationResult:
        """Generate artifacts for all content with cooldowns between batches."""

        size = self.config.bulk_batch_size if batch_size is None else batch_size
        return self._run_repository_stage(
            "generate-bulk", lambda: self.generator.generate_bulk(size, force=force)
        )

    def regenerate_range(self, start: int, count: int) -> RegenerationPage:
        """Force-regenerate one resumable page of all content."""

        return self._run_repository_stage(
            "regenerate-range", lambda: self.generator.regenerate_range(start, count)
        )

    def verify(self, max_retries: int | None = None) -> VerificationReport:
        """Verify and repair narration for items going live today or tomorrow."""

        retries = self.config.max_retries if max_retries is None else max_retries
        return self._run_repository_stage(
            "verify", lambda: self.verifier.verify_and_repair(max_retries=retries)
        )

    def delete_audio(self, kind: str, item_id: int, day_number: int | None = None) -> bool:
        """Delete one stored artifact and report whether the store accepted it."""

        key = audio_key(kind, item_id, day_number)
        self._require_store("delete-audio")
        try:
            return self.store.delete(key)
        except AudioStoreError as exc:
            raise PipelineStageError(stage="delete-audio", detail=str(exc)) from exc

    def fetch_audio(self, kind: str, item_id: int, day_number: int | None = None) -> bytes:
        """Download one stored artifact."""

        key = audio_key(kind, item_id, day_number)
        self._require_store("fetch-audio")
        try:
            payload = self.store.download(key)
        except AudioStoreError as exc:
            raise PipelineStageError(stage="fetch-audio", detail=str(exc)) from exc
        if payload is None:
            raise PipelineStageError(
                stage="fetch-audio",
                detail=f"No audio stored under `{key}`.",
                hint="Run `sparkvoice generate-batch` to narrate missing content.",
            )
        return payload

    def build_scheduler(self) -> DailyScheduler:
        """Return a scheduler armed with the verification and pre-generation jobs."""

        verify_hour, verify_minute = self.config.verification_clock()
        pregen_hour, pregen_minute = self.config.pregeneration_clock()
        jobs = [
            ScheduledJob(
                name=VERIFICATION_JOB,
                hour=verify_hour,
                minute=verify_minute,
                handler=self.verify,
            ),
            ScheduledJob(
                name=PREGENERATION_JOB,
                hour=pregen_hour,
                minute=pregen_minute,
                handler=self.generate_window,
            ),
        ]
        return DailyScheduler(
            calendar=self.calendar,
            jobs=jobs,
            run_logger=self.run_logger,
            sleeper=self.sleeper,
        )

    def serve(self, max_firings: int | None = None, startup: bool = True) -> int:
        """Run one immediate windowed generation, then the daily scheduler loop.

        Returns:
            Number of scheduled jobs fired.
        """

        if startup:
            try:
                self.generate_window()
            except PipelineStageError as exc:
                if self.run_logger is not None:
                    self.run_logger.log_stage_failure(exc.stage, "startup")
        return self.build_scheduler().run(max_firings=max_firings)

    def _require_store(self, stage: str) -> None:
        """Raise a stage error when storage credentials are missing."""

        if not self.store.is_configured():
            raise PipelineStageError(
                stage=stage,
                detail="Audio storage is not configured.",
                hint=(
                    "Set `SUPABASE_URL` and `SUPABASE_SERVICE_ROLE_KEY`, "
                    "or `SPARKVOICE_AUDIO_DIR` for local storage."
                ),
            )

    def _run_repository_stage(
        self, stage: str, action: Callable[[], _StageResult]
    ) -> _StageResult:
        """Run a pass, mapping content-database failures to a `repository` stage error."""

        try:
            return action()
        except SQLAlchemyError as exc:
            if self.run_logger is not None:
                self.run_logger.log_stage_failure(stage, type(exc).__name__)
            raise PipelineStageError(
                stage="repository",
                detail=f"Content database query failed during `{stage}`: {exc}",
                hint="Check `DATABASE_URL` and that the content tables exist.",
            ) from exc
