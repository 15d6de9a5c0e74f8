"""
Under-determinism prover.

For a target cell ``t`` and driving cells ``D`` the prover asks, for every
candidate assignment of ``D``:

1. is there a witness at all?  If so, remember ``v1 = t``.
2. is there a witness with the same ``D`` and ``t != v1``?

A second witness means ``t`` is not a function of ``D``: the cell is
under-constrained.  Each question lives in its own push/pop scope, so the
session holds only the base assertions between queries.
"""
import itertools
import logging
from dataclasses import dataclass, replace
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from zkcheck.analysis.findings import (
    AnalysisReport, Candidate, CellReport, Finding, Outcome,
)
from zkcheck.circuit.model import Circuit
from zkcheck.ff import Cell, ColumnKind
from zkcheck.smt.commands import cell_differs, cell_equals
from zkcheck.smt.compiler import compile_circuit
from zkcheck.smt.session import SolverSession
from zkcheck.smt.transport import Status
from zkcheck.utils.exceptions import SolverUnknown, VacuousPremise

logger = logging.getLogger(__name__)


@dataclass
class ProverConfig:
    """Knobs of the candidate enumeration and of the solver queries.

    Attributes:
        candidate_bound: driving values range over ``0 .. bound-1``.
        candidates: explicit driving assignments; overrides the bound.
        max_candidates: cap on the number of candidates per target.
        timeout_ms: per check-sat timeout handed to the session.
        stop_on_first: stop a target at its first under-constrained finding.
    """
    candidate_bound: int = 2
    candidates: Optional[Sequence[Sequence[int]]] = None
    max_candidates: Optional[int] = 4096
    timeout_ms: Optional[int] = None
    stop_on_first: bool = False

    def __post_init__(self):
        if self.candidate_bound < 1:
            raise ValueError("candidate_bound must be at least 1")
        if self.max_candidates is not None and self.max_candidates < 1:
            raise ValueError("max_candidates must be at least 1")


class UnderDeterminismProver:
    """Runs candidate queries against one open :class:`SolverSession`."""

    def __init__(self, session: SolverSession, config: Optional[ProverConfig] = None):
        self.session = session
        self.config = config or ProverConfig()
        self.field = session.compiled.field

    def candidates(self, driving: Sequence[Cell]) -> Iterator[Candidate]:
        """Driving assignments to try, in order."""
        driving = tuple(driving)
        if self.config.candidates is not None:
            rows = iter(self.config.candidates)
        else:
            bound = self.config.candidate_bound
            rows = itertools.product(self.field.elements(bound), repeat=len(driving))
        if self.config.max_candidates is not None:
            rows = itertools.islice(rows, self.config.max_candidates)
        for values in rows:
            values = tuple(values)
            if len(values) != len(driving):
                raise ValueError(f"candidate {values} does not match {len(driving)} driving cell(s)")
            yield tuple(zip(driving, (self.field.reduce(v) for v in values)))

    def _witness(self, target: Cell, candidate: Candidate, avoid: Optional[int] = None) -> int:
        """Value of ``target`` in some witness consistent with ``candidate``.

        Raises:
            VacuousPremise: no such witness exists.
            SolverUnknown: the solver could not decide.
        """
        with self.session.scope():
            self.session.add_all(cell_equals(cell, value) for cell, value in candidate)
            if avoid is not None:
                self.session.add(cell_differs(target, avoid))
            response = self.session.check([target])
        if response.status is Status.UNSAT:
            raise VacuousPremise(f"no witness for {target} under {candidate}")
        if response.status is Status.UNKNOWN:
            raise SolverUnknown(response.reason)
        return response.model[target]

    def check_candidate(self, target: Cell, candidate: Candidate) -> Finding:
        try:
            v1 = self._witness(target, candidate)
        except VacuousPremise:
            return Finding(target, Outcome.VACUOUS, candidate)
        except SolverUnknown as e:
            return Finding(target, Outcome.UNKNOWN, candidate, reason=e.reason)

        try:
            v2 = self._witness(target, candidate, avoid=v1)
        except VacuousPremise:
            return Finding(target, Outcome.DETERMINED, candidate, value=v1)
        except SolverUnknown as e:
            return Finding(target, Outcome.UNKNOWN, candidate, value=v1, reason=e.reason)
        logger.debug("%s takes both %d and %d under %s", target, v1, v2, candidate)
        return Finding(target, Outcome.UNDER_CONSTRAINED, candidate, value=v1, alternate=v2)

    def check_cell(self, target: Cell, driving: Sequence[Cell] = ()) -> CellReport:
        if target in driving:
            raise ValueError(f"target {target} is also a driving cell")
        report = CellReport(target)
        for candidate in self.candidates(driving):
            finding = self.check_candidate(target, candidate)
            report.findings.append(finding)
            if finding.is_under_constrained and self.config.stop_on_first:
                break
        logger.info("%s: %d candidate(s), %s", target, len(report.findings),
                    "under-constrained" if report.is_under_constrained else "ok")
        return report

    def check_consistency(self) -> Optional[bool]:
        """Whether the base constraints have a witness (None when unknown)."""
        with self.session.scope():
            response = self.session.check()
        if response.status is Status.UNKNOWN:
            logger.warning("Consistency check inconclusive: %s", response.reason)
            return None
        if response.status is Status.UNSAT:
            logger.warning("Base constraints are unsatisfiable; every finding will be vacuous")
        return response.status is Status.SAT

    def analyze(self, targets: Iterable[Cell], driving: Sequence[Cell] = ()) -> AnalysisReport:
        report = AnalysisReport(self.field.modulus, satisfiable=self.check_consistency())
        for target in targets:
            drivers, config = exclude_target(target, driving, self.config)
            prover = self if config is self.config else UnderDeterminismProver(self.session, config)
            report.cells.append(prover.check_cell(target, drivers))
        return report


def exclude_target(target: Cell, driving: Sequence[Cell],
                   config: ProverConfig) -> Tuple[List[Cell], ProverConfig]:
    """Driving cells and configuration for ``target`` without the target itself.

    Explicit candidate rows lose the target's position as well; rows that
    become equal are kept once.
    """
    keep = [i for i, cell in enumerate(driving) if cell != target]
    drivers = [driving[i] for i in keep]
    if len(keep) == len(driving) or config.candidates is None:
        return drivers, config
    rows = []
    for row in config.candidates:
        if len(row) != len(driving):
            raise ValueError(f"candidate {tuple(row)} does not match {len(driving)} driving cell(s)")
        rows.append(tuple(row[i] for i in keep))
    return drivers, replace(config, candidates=list(dict.fromkeys(rows)))


def default_targets(circuit: Circuit, driving: Sequence[Cell] = ()) -> List[Cell]:
    """Every advice cell that is not a driving cell."""
    driving = set(driving)
    return [c for c in circuit.cells(ColumnKind.ADVICE) if c not in driving]


def analyze_circuit(circuit: Circuit, targets: Optional[Sequence[Cell]] = None,
                    driving: Sequence[Cell] = (), config: Optional[ProverConfig] = None,
                    backend: Optional[str] = None,
                    solver_cmd: Optional[List[str]] = None) -> AnalysisReport:
    """Compile ``circuit`` and analyze ``targets`` in one session."""
    config = config or ProverConfig()
    if targets is None:
        targets = default_targets(circuit, driving)
    compiled = compile_circuit(circuit)
    with SolverSession(compiled, backend=backend, timeout_ms=config.timeout_ms,
                       solver_cmd=solver_cmd) as session:
        prover = UnderDeterminismProver(session, config)
        report = prover.analyze(targets, driving)
        logger.debug("Ran %d check-sat queries (%d solver restarts)",
                     session.check_count, session.restarts)
    return report
