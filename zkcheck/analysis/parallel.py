"""Fan the per-target analysis out over independent sessions."""
import logging
from typing import List, Optional, Sequence

from zkcheck.analysis.findings import AnalysisReport, CellReport
from zkcheck.analysis.prover import (
    ProverConfig, UnderDeterminismProver, default_targets, exclude_target,
)
from zkcheck.circuit.model import Circuit
from zkcheck.ff import Cell
from zkcheck.smt.compiler import compile_circuit
from zkcheck.smt.session import SolverSession
from zkcheck.utils.parallel import ParallelExecutor

logger = logging.getLogger(__name__)


def analyze_parallel(circuit: Circuit, targets: Optional[Sequence[Cell]] = None,
                     driving: Sequence[Cell] = (), config: Optional[ProverConfig] = None,
                     backend: Optional[str] = None, jobs: Optional[int] = None,
                     solver_cmd: Optional[List[str]] = None) -> AnalysisReport:
    """Like :func:`analyze_circuit`, with one session per target cell.

    Each task compiles the circuit and opens its own backend, so no solver
    state is shared between threads.  Cell reports keep the target order.
    """
    config = config or ProverConfig()
    if targets is None:
        targets = default_targets(circuit, driving)
    targets = list(targets)

    def open_session() -> SolverSession:
        return SolverSession(compile_circuit(circuit), backend=backend,
                             timeout_ms=config.timeout_ms, solver_cmd=solver_cmd)

    def check_target(target: Cell) -> CellReport:
        drivers, target_config = exclude_target(target, driving, config)
        with open_session() as session:
            return UnderDeterminismProver(session, target_config).check_cell(target, drivers)

    with open_session() as session:
        satisfiable = UnderDeterminismProver(session, config).check_consistency()

    logger.info("Analyzing %d target(s) with %s worker(s)", len(targets), jobs or "default")
    with ParallelExecutor(max_workers=jobs, log_events=True, label=str) as executor:
        cells = executor.run(check_target, targets)
    return AnalysisReport(circuit.modulus, cells=cells, satisfiable=satisfiable)
