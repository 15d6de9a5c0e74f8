"""Under-determinism analysis over compiled circuits."""
from .findings import (
    AnalysisReport,
    CellReport,
    Finding,
    Outcome,
    UniquenessResult,
    UniquenessVerdict,
)
from .prover import (
    ProverConfig, UnderDeterminismProver, analyze_circuit, default_targets, exclude_target,
)
from .uniqueness import check_uniqueness
from .parallel import analyze_parallel
