"""Pipeline orchestrator for liquidcue.

Coordinates the full flow:
1. Read playlist entries
2. Measure and analyze every entry in parallel
3. Render the annotated playlist in input order
4. Write it in one operation
"""

import os
from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path

from .analyzer import DEFAULT_DROP_THRESHOLD, DEFAULT_START_THRESHOLD, analyze_track
from .config import ErrorPolicy, Settings, get_settings
from .errors import LiquidCueError, MeasurementError
from .logging import get_logger
from .models import AnalysisResult, PlaylistResult, TrackFailure
from .playlist import default_output_path, read_playlist, render_playlist, write_playlist
from .samplers import FfmpegSampler, LoudnessSampler

logger = get_logger(__name__)


class Pipeline:
    """Main pipeline orchestrator for liquidcue."""

    def __init__(
        self,
        settings: Settings | None = None,
        sampler: LoudnessSampler | None = None,
        error_policy: ErrorPolicy | None = None,
        workers: int | None = None,
        on_progress: Callable[[str], None] | None = None,
    ):
        """Initialize the pipeline.

        Args:
            settings: Optional settings override
            sampler: Loudness sampler; defaults to ffmpeg from settings
            error_policy: "abort" or "skip"; defaults to settings
            workers: Parallel measurements; defaults to settings, then CPU count
            on_progress: Called with each entry just before it is measured
        """
        self.settings = settings or get_settings()
        self.sampler = sampler or FfmpegSampler(
            binary=self.settings.ffmpeg_binary,
            timeout=self.settings.measure_timeout,
        )
        self.error_policy = error_policy or self.settings.error_policy
        self.workers = workers or self.settings.workers or os.cpu_count() or 1
        self.on_progress = on_progress

        logger.debug(
            "pipeline_initialized",
            sampler=self.sampler.name,
            workers=self.workers,
            error_policy=self.error_policy,
        )

    def process_track(
        self,
        source_path: str,
        drop_threshold: float,
        start_threshold: float,
    ) -> AnalysisResult:
        """Measure and analyze a single playlist entry."""
        logger.info("measuring_track", path=source_path)
        if self.on_progress is not None:
            self.on_progress(source_path)
        profile = self.sampler.measure(source_path)
        return analyze_track(source_path, profile, drop_threshold, start_threshold)

    def analyze_entries(
        self,
        entries: list[str],
        drop_threshold: float = DEFAULT_DROP_THRESHOLD,
        start_threshold: float = DEFAULT_START_THRESHOLD,
    ) -> tuple[list[AnalysisResult], list[TrackFailure]]:
        """Analyze all entries in parallel, keeping playlist order.

        Each task writes its finished result into the slot matching its
        playlist index, so completion order never affects output order.

        Returns:
            Results in playlist order, and the failures skipped under the
            skip policy (always empty under abort)

        Raises:
            LiquidCueError: The first failure, under the abort policy
        """
        slots: list[AnalysisResult | None] = [None] * len(entries)
        failures: list[TrackFailure] = []
        if not entries:
            return [], failures

        executor = ThreadPoolExecutor(
            max_workers=min(self.workers, len(entries)),
            thread_name_prefix="liquidcue",
        )
        try:
            futures: dict[Future[AnalysisResult], int] = {
                executor.submit(self.process_track, path, drop_threshold, start_threshold): index
                for index, path in enumerate(entries)
            }

            if self.error_policy == "abort":
                # Stop at the first failure; pending tasks are cancelled on shutdown
                done, _ = wait(futures, return_when=FIRST_EXCEPTION)
                for future in done:
                    if future.exception() is not None:
                        raise self._as_error(future.exception(), entries[futures[future]])

            for future, index in futures.items():
                try:
                    slots[index] = future.result()
                except Exception as e:
                    error = self._as_error(e, entries[index])
                    if self.error_policy == "abort":
                        raise error
                    logger.warning("track_skipped", path=entries[index], kind=error.kind, error=error.message)
                    failures.append(
                        TrackFailure(
                            index=index,
                            source_path=entries[index],
                            kind=error.kind,
                            message=str(error),
                        )
                    )
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        results = [result for result in slots if result is not None]
        return results, failures

    @staticmethod
    def _as_error(exc: BaseException, source_path: str) -> LiquidCueError:
        if isinstance(exc, LiquidCueError):
            if exc.path is None:
                exc.path = source_path
            return exc
        error = MeasurementError(f"unexpected failure ({type(exc).__name__}: {exc})", source_path)
        error.__cause__ = exc
        return error

    def run(
        self,
        playlist: Path,
        output: Path | None = None,
        drop_threshold: float = DEFAULT_DROP_THRESHOLD,
        start_threshold: float = DEFAULT_START_THRESHOLD,
        append: bool = False,
    ) -> PlaylistResult:
        """Run the full pipeline over one playlist.

        Args:
            playlist: Input playlist path
            output: Output path; defaults to ``<stem>-processed.m3u8``
            drop_threshold: LU below integrated loudness to start the next track
            start_threshold: LU below integrated loudness for the cue-in point
            append: Append to the output instead of replacing it

        Returns:
            PlaylistResult with the written entries and any skipped failures
        """
        output_path = output or default_output_path(playlist)
        entries = read_playlist(playlist)

        logger.info(
            "pipeline_start",
            playlist=str(playlist),
            entries=len(entries),
            level=drop_threshold,
            cue=start_threshold,
        )

        results, failures = self.analyze_entries(entries, drop_threshold, start_threshold)

        text = render_playlist(results, append=append)
        write_playlist(output_path, text, append=append)

        logger.info(
            "pipeline_complete",
            output=str(output_path),
            written=len(results),
            skipped=len(failures),
        )

        return PlaylistResult(
            source_playlist=playlist,
            output_path=output_path,
            appended=append,
            entries=results,
            failures=failures,
        )
