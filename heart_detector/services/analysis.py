"""
Asynchronous analysis orchestration.

`Analyzer.analyze` is the action behind the "Analyze" button: it snapshots
the patient input, waits for a configurable delay (a presentation
affordance; zero is allowed), then runs the scorer and the risk factor
evaluator.

The analyzer's state is an explicit variant instead of loose flags:

    IDLE -> ANALYZING -> COMPLETED(result, risk_factors)
                      -> FAILED(error)

Concurrency
-----------
- The input is coerced and captured when `analyze` is called, never when
  the result is shown.
- Each call gets a run id. Only the most recent call may update
  ``Analyzer.state``; an older call that finishes later still returns its
  own state to its caller but leaves ``state`` untouched.
- There is no cancellation. A started delay always completes.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple, Union

from ..schemas import PatientInput, PatientRecord, PredictionResult, RiskFactor
from .artifacts import ModelBundle
from .risk_factors import assess_risk_factors
from .validation import InvalidInput, coerce_record

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[Any]]


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisState:
    """Snapshot of an analysis run.

    ``result`` and ``risk_factors`` are set only when COMPLETED; ``error``
    only when FAILED.
    """
    status: AnalysisStatus
    run_id: int = 0
    record: Optional[PatientRecord] = None
    result: Optional[PredictionResult] = None
    risk_factors: Tuple[RiskFactor, ...] = ()
    error: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == AnalysisStatus.ANALYZING

    @classmethod
    def idle(cls) -> "AnalysisState":
        return cls(status=AnalysisStatus.IDLE)


class Analyzer:
    """Runs assessments against a model bundle with an injectable delay.

    Args:
        bundle: Loaded model bundle.
        delay: Seconds to wait before producing the result.
        strict: Reject malformed input instead of coercing it.
        sleep: Awaitable sleep function; ``asyncio.sleep`` by default.
    """
    def __init__(
        self,
        bundle: ModelBundle,
        delay: float = 2.0,
        strict: bool = False,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.bundle = bundle
        self.delay = float(delay)
        self.strict = strict
        self._sleep = sleep
        self._latest_run = 0
        self.state = AnalysisState.idle()

    def _publish(self, state: AnalysisState) -> None:
        if state.run_id == self._latest_run:
            self.state = state
        else:
            logger.debug("Discarding stale state of run %d (latest is %d)", state.run_id, self._latest_run)

    def _fail(self, run_id: int, record: Optional[PatientRecord], error: Exception) -> None:
        if isinstance(error, InvalidInput):
            logger.warning("Analysis run %d rejected input: %s", run_id, error)
        else:
            logger.exception("Analysis run %d failed", run_id)
        self._publish(AnalysisState(
            status=AnalysisStatus.FAILED, run_id=run_id, record=record, error=str(error),
        ))

    def analyze(self, raw: Union[PatientInput, PatientRecord, Mapping[str, Any]]) -> Awaitable[AnalysisState]:
        """Start an assessment of ``raw``; await the return value for the result.

        The input is coerced and the state moves to ANALYZING immediately,
        before anything is awaited.

        Returns
        -------
        Awaitable[AnalysisState]
            Resolves to the COMPLETED state of this run.

        Raises
        ------
        InvalidInput
            In strict mode, when the input is rejected (state becomes FAILED).
        Exception
            Anything raised while scoring is re-raised after the state moves
            to FAILED.
        """
        self._latest_run += 1
        run_id = self._latest_run

        try:
            record = coerce_record(raw, strict=self.strict)
        except Exception as e:
            self._fail(run_id, None, e)
            raise

        self._publish(AnalysisState(status=AnalysisStatus.ANALYZING, run_id=run_id, record=record))
        logger.debug("Analysis run %d started (delay=%.2fs)", run_id, self.delay)
        return self._complete(run_id, record)

    async def _complete(self, run_id: int, record: PatientRecord) -> AnalysisState:
        try:
            if self.delay > 0:
                await self._sleep(self.delay)
            result = self.bundle.score(record)
            factors = tuple(assess_risk_factors(record))
        except Exception as e:
            self._fail(run_id, record, e)
            raise

        done = AnalysisState(
            status=AnalysisStatus.COMPLETED,
            run_id=run_id,
            record=record,
            result=result,
            risk_factors=factors,
        )
        self._publish(done)
        logger.debug("Analysis run %d completed: %s (%d%%)", run_id, result.label, result.confidence_percent)
        return done

    def reset(self) -> None:
        """Return to IDLE; any in-flight run becomes stale."""
        self._latest_run += 1
        self.state = AnalysisState.idle()
