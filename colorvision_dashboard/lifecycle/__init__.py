"""
Job lifecycle: state transitions, simulated derivation, fusion scoring and
deferred dispatch.

Components:
    - engine: conditional-update state transitions for records and analyses
    - derivation: simulated per-modality feature derivation
    - fusion: combined confidence, diagnosis and severity
    - jobs: deferred units of work and the stale-job reconciliation
    - dispatcher: inline and asyncio job dispatchers
"""

from .dispatcher import (
    AsyncioDispatcher,
    InlineDispatcher,
    JobDispatcher,
    JobHandle,
    create_dispatcher,
)
from .engine import (
    AnalysisOutcome,
    AnalysisSuccess,
    Failure,
    JobLifecycleEngine,
    Outcome,
    Success,
)
from .fusion import (
    DIAGNOSIS_DISTRIBUTION,
    FusionResult,
    FusionScorer,
    FusionWeights,
    combine_confidence,
    derive_severity,
    select_diagnosis,
)
from .jobs import Job, JobKind, reconcile_stale_jobs, run_job

__all__ = [
    # Engine
    "JobLifecycleEngine",
    "Success",
    "Failure",
    "AnalysisSuccess",
    "Outcome",
    "AnalysisOutcome",
    # Fusion
    "FusionScorer",
    "FusionResult",
    "FusionWeights",
    "DIAGNOSIS_DISTRIBUTION",
    "combine_confidence",
    "select_diagnosis",
    "derive_severity",
    # Jobs
    "Job",
    "JobKind",
    "run_job",
    "reconcile_stale_jobs",
    # Dispatch
    "JobDispatcher",
    "JobHandle",
    "InlineDispatcher",
    "AsyncioDispatcher",
    "create_dispatcher",
]
