"""Pipeline runner -- orchestrates per-job stage execution."""

from __future__ import annotations

from pathlib import Path

import click
from loguru import logger

from .config import PipelineConfig
from .errors import PipelineError
from .models import (
    STAGE_ORDER,
    Job,
    JobStatus,
    MetadataMode,
    MetadataRequest,
    RunResult,
    Source,
    SourceKind,
    Stage,
)
from .stages import acquire, analyze, classify, concat, cover, encode, metadata
from .tools import check_dependencies
from .workspace import workspace

log = logger.bind(stage="runner")


class PipelineRunner:
    """Runs the M4B pipeline over one or more sources, one job at a time."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    def plan(
        self, locations: list[str], request: MetadataRequest
    ) -> tuple[list[Source], MetadataMode]:
        """Classify every source and check run-level rules before any job starts.

        Raises the UsageError family for bad sources or metadata flags, and
        DependencyError for missing tools. Nothing is written to disk.
        """
        sources = [classify.classify(loc) for loc in locations]
        mode = metadata.select_mode(sources, request)
        if mode == MetadataMode.EXPLICIT:
            metadata.explicit(request)
        check_dependencies(sources, self.config)
        log.debug(f"Planned {len(sources)} job(s), metadata mode={mode}")
        return sources, mode

    def run(
        self,
        locations: list[str],
        destination: Path,
        request: MetadataRequest,
        picture: str | None = None,
    ) -> RunResult:
        """Plan, then execute every job."""
        sources, mode = self.plan(locations, request)
        return self.execute(sources, mode, destination, request, picture=picture)

    def execute(
        self,
        sources: list[Source],
        mode: MetadataMode,
        destination: Path,
        request: MetadataRequest,
        picture: str | None = None,
    ) -> RunResult:
        """Run every planned job in order.

        The first failing job aborts the run by re-raising its error, so
        later sources are never started. With keep_going set, failures are
        recorded in the result and the remaining jobs still run.
        """
        result = RunResult(total=len(sources))

        for index, source in enumerate(sources, start=1):
            job = Job(index=index, source=source, destination=destination)
            click.echo(f"\nJob {index}/{len(sources)}: {source.name} ({source.kind})")
            try:
                self._run_single(job, mode, request, picture)
            except PipelineError as e:
                result.failed += 1
                result.errors.append(f"{source.name}: {e}")
                if not self.config.keep_going:
                    raise
                click.echo(f"  ERROR: {source.name}: {e}")
                continue
            result.completed += 1
            result.outputs.append(job.output)

        log.info(
            f"Run complete: {result.completed} succeeded, {result.failed} failed "
            f"of {result.total}"
        )
        return result

    def _stages_for(self, source: Source) -> list[Stage]:
        stages = list(STAGE_ORDER)
        if source.kind == SourceKind.DIRECTORY:
            stages.remove(Stage.EXTRACT)
        if not self.config.verify_tags:
            stages.remove(Stage.VERIFY)
        return stages

    def _run_single(
        self,
        job: Job,
        mode: MetadataMode,
        request: MetadataRequest,
        picture: str | None,
    ) -> Path:
        """Run one job inside its own workspace."""
        stages = self._stages_for(job.source)
        log.debug(f"Stages: {' -> '.join(s.value for s in stages)}")

        job.status = JobStatus.RUNNING
        stage = Stage.VALIDATE
        try:
            with workspace(self.config) as ws:
                job.workspace = ws
                local: Path | None = None
                track_dir: Path | None = None
                merged: Path | None = None
                audio = None

                for stage in stages:
                    log.debug(f"Job {job.index}: entering {stage}")

                    if stage == Stage.VALIDATE:
                        # Re-check: the source may have moved since planning
                        job.source = classify.classify(job.source.location)
                    elif stage == Stage.METADATA:
                        job.metadata = metadata.run(
                            job.source, mode, request, self.config.publisher_tokens
                        )
                    elif stage == Stage.COVER:
                        job.cover = cover.run(picture, ws, self.config)
                    elif stage == Stage.ACQUIRE:
                        local = acquire.fetch(job.source, ws, self.config)
                        track_dir = local
                    elif stage == Stage.EXTRACT:
                        track_dir = acquire.extract(local, ws, self.config)
                    elif stage == Stage.CONCAT:
                        merged = concat.run(track_dir, ws, self.config)
                    elif stage == Stage.ANALYZE:
                        audio = analyze.run(merged, ws, self.config)
                    elif stage == Stage.ENCODE:
                        output = job.destination / encode.output_name(
                            job.source, job.metadata
                        )
                        job.output = encode.run(
                            audio, job.metadata, job.cover, output, self.config
                        )
                    elif stage == Stage.VERIFY:
                        encode.verify(job.output, job.metadata, self.config)
        except PipelineError as e:
            job.status = JobStatus.FAILED
            log.error(f"Job {job.index} failed at {stage}: {e}")
            raise

        job.status = JobStatus.DONE
        click.echo(f"  Output: {job.output}")
        return job.output
