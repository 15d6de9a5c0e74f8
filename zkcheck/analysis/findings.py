"""Result types of the under-determinism analysis."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from zkcheck.circuit.structural import LintReport
from zkcheck.ff import Cell


class Outcome(Enum):
    """Outcome of one (target, candidate) query."""
    DETERMINED = "determined"
    UNDER_CONSTRAINED = "under_constrained"
    VACUOUS = "vacuous"
    UNKNOWN = "unknown"


Candidate = Tuple[Tuple[Cell, int], ...]


@dataclass(frozen=True)
class Finding:
    """What the prover learned about ``cell`` under one driving candidate.

    ``value`` is the first witness value of the target (absent when the
    candidate is vacuous or undecided); ``alternate`` is a second, different
    value for an under-constrained target.
    """
    cell: Cell
    outcome: Outcome
    candidate: Candidate = ()
    value: Optional[int] = None
    alternate: Optional[int] = None
    reason: str = ""

    @property
    def assignment(self) -> Dict[Cell, int]:
        return dict(self.candidate)

    @property
    def is_under_constrained(self) -> bool:
        return self.outcome is Outcome.UNDER_CONSTRAINED

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "cell": str(self.cell),
            "outcome": self.outcome.value,
            "candidate": {str(c): v for c, v in self.candidate},
        }
        if self.value is not None:
            out["value"] = self.value
        if self.alternate is not None:
            out["alternate"] = self.alternate
        if self.reason:
            out["reason"] = self.reason
        return out

    def __str__(self) -> str:
        hyp = ", ".join(f"{c}={v}" for c, v in self.candidate) or "-"
        if self.outcome is Outcome.UNDER_CONSTRAINED:
            return f"{self.cell}: under-constrained under [{hyp}] ({self.value} vs {self.alternate})"
        if self.outcome is Outcome.DETERMINED:
            return f"{self.cell}: determined under [{hyp}] (= {self.value})"
        if self.outcome is Outcome.VACUOUS:
            return f"{self.cell}: no witness under [{hyp}]"
        return f"{self.cell}: unknown under [{hyp}] ({self.reason or 'no reason given'})"


@dataclass
class CellReport:
    """All findings of one target cell."""
    cell: Cell
    findings: List[Finding] = field(default_factory=list)

    @property
    def is_under_constrained(self) -> bool:
        return any(f.is_under_constrained for f in self.findings)

    def outcomes(self) -> List[Outcome]:
        return [f.outcome for f in self.findings]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cell": str(self.cell),
            "under_constrained": self.is_under_constrained,
            "findings": [f.to_dict() for f in self.findings],
        }


class UniquenessVerdict(Enum):
    UNDER_CONSTRAINED = "under_constrained"
    NOT_UNDER_CONSTRAINED = "not_under_constrained"
    NOT_UNDER_CONSTRAINED_LOCAL = "not_under_constrained_local"
    OVER_CONSTRAINED = "over_constrained"
    UNKNOWN = "unknown"


@dataclass
class UniquenessResult:
    """Outcome of the circuit-wide witness uniqueness search."""
    verdict: UniquenessVerdict
    iterations: int = 0
    witness: Dict[Cell, int] = field(default_factory=dict)
    alternate: Dict[Cell, int] = field(default_factory=dict)
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"verdict": self.verdict.value, "iterations": self.iterations}
        if self.witness:
            out["witness"] = {str(c): v for c, v in self.witness.items()}
        if self.alternate:
            out["alternate"] = {str(c): v for c, v in self.alternate.items()}
        if self.reason:
            out["reason"] = self.reason
        return out


@dataclass
class AnalysisReport:
    """Findings for every analyzed cell, plus the optional extra passes."""
    modulus: int
    cells: List[CellReport] = field(default_factory=list)
    satisfiable: Optional[bool] = None
    lints: Optional[LintReport] = None
    uniqueness: Optional[UniquenessResult] = None

    @property
    def findings(self) -> List[Finding]:
        return [f for report in self.cells for f in report.findings]

    @property
    def problematic_cells(self) -> List[Cell]:
        return [r.cell for r in self.cells if r.is_under_constrained]

    @property
    def is_under_constrained(self) -> bool:
        if self.problematic_cells:
            return True
        return (self.uniqueness is not None
                and self.uniqueness.verdict is UniquenessVerdict.UNDER_CONSTRAINED)

    def report_for(self, cell: Cell) -> CellReport:
        for report in self.cells:
            if report.cell == cell:
                return report
        raise KeyError(str(cell))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "modulus": self.modulus,
            "satisfiable": self.satisfiable,
            "under_constrained": [str(c) for c in self.problematic_cells],
            "cells": [r.to_dict() for r in self.cells],
        }
        if self.lints is not None:
            out["lints"] = self.lints.to_dict()
        if self.uniqueness is not None:
            out["uniqueness"] = self.uniqueness.to_dict()
        return out

    def format_text(self) -> str:
        lines = [f"GF({self.modulus}) analysis of {len(self.cells)} cell(s)"]
        if self.satisfiable is False:
            lines.append("base constraints are unsatisfiable (over-constrained circuit)")
        if self.lints is not None:
            lines.extend(self.lints.messages())
        for report in self.cells:
            for finding in report.findings:
                lines.append(f"  {finding}")
        if self.uniqueness is not None:
            lines.append(f"uniqueness: {self.uniqueness.verdict.value} "
                         f"after {self.uniqueness.iterations} iteration(s)")
        problematic = self.problematic_cells
        if problematic:
            lines.append("under-constrained: " + ", ".join(str(c) for c in problematic))
        else:
            lines.append("no under-constrained cells found")
        return "\n".join(lines)
