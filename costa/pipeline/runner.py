"""
Pipeline runner for a parsed pipeline definition.

The PipelineRunner drives a Costa instance through one pipeline:
- Initializes the script context if the runtime has not done so
- Runs datasource, then the dataflow chain, then the model
- Records a StageRun per script with timing and status

Failures are recorded and logged, then re-raised unchanged. Stages after a
failed one do not run.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from costa.core.logging import get_logger, setup_logging
from costa.pipeline.definition import PipelineDefinition
from costa.runtime.costa import Costa
from costa.runtime.types import DatasetHandle, PipcookScript, ScriptType

logger = get_logger("pipeline.runner")


class StageStatus(str, Enum):
    """Status of a stage execution."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class StageRun:
    """Record of a stage execution."""
    script_name: str
    stage_type: ScriptType
    status: StageStatus
    started_at: float
    ended_at: Optional[float] = None
    duration_ms: float = 0.0
    error: Optional[str] = None

    def finish(self, status: StageStatus, error: Optional[str] = None) -> None:
        self.status = status
        self.error = error
        self.ended_at = time.time()
        self.duration_ms = (self.ended_at - self.started_at) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "script_name": self.script_name,
            "stage_type": self.stage_type.value,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


@dataclass
class PipelineRunResult:
    """Result of running the full pipeline."""
    stages_run: List[StageRun]
    dataset: DatasetHandle
    total_duration_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stages_run": [s.to_dict() for s in self.stages_run],
            "total_duration_ms": self.total_duration_ms,
        }


class PipelineRunner:
    """
    Executes a PipelineDefinition with a Costa runner.

    Args:
        costa: The runner whose context and stage entry points are used
    """

    def __init__(self, costa: Costa):
        setup_logging()
        self.costa = costa
        self.stages_run: List[StageRun] = []

    async def _run_stage(self, script: PipcookScript, stage_type: ScriptType, call):
        run = StageRun(
            script_name=script.name,
            stage_type=stage_type,
            status=StageStatus.RUNNING,
            started_at=time.time(),
        )
        self.stages_run.append(run)
        logger.info(f"Executing {stage_type.value} script: {script.name} ({script.path})")
        try:
            result = await call()
        except Exception as e:
            run.finish(StageStatus.FAILED, str(e))
            logger.error(
                f"{stage_type.value} script {script.name} failed after "
                f"{run.duration_ms:.0f}ms: {e}",
                exc_info=True,
            )
            raise
        run.finish(StageStatus.COMPLETED)
        logger.info(f"{stage_type.value} script {script.name} completed in {run.duration_ms:.0f}ms")
        return result

    async def run(self, definition: PipelineDefinition) -> PipelineRunResult:
        """
        Execute the pipeline.

        Args:
            definition: Parsed pipeline definition

        Returns:
            PipelineRunResult with the final dataset handle and stage records
        """
        self.stages_run = []
        pipeline_start = time.time()

        if not self.costa.initialized:
            await self.costa.init_framework()

        logger.info(
            f"Starting pipeline with {len(definition.dataflow) + 2} scripts"
        )

        dataset = await self._run_stage(
            definition.datasource,
            ScriptType.DataSource,
            lambda: self.costa.run_data_source(definition.datasource),
        )

        # Each dataflow script is recorded on its own; the fold stays in Costa.
        for script in definition.dataflow:
            dataset = await self._run_stage(
                script,
                ScriptType.Dataflow,
                lambda script=script, dataset=dataset: self.costa.run_dataflow(dataset, [script]),
            )

        await self._run_stage(
            definition.model,
            ScriptType.Model,
            lambda: self.costa.run_model(dataset, definition.model, definition.options),
        )

        total_duration_ms = (time.time() - pipeline_start) * 1000
        logger.info(
            f"Pipeline complete: {len(self.stages_run)} scripts, "
            f"total time: {total_duration_ms:.0f}ms"
        )

        return PipelineRunResult(
            stages_run=list(self.stages_run),
            dataset=dataset,
            total_duration_ms=total_duration_ms,
        )
