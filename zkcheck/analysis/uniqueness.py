"""Circuit-wide witness uniqueness search.

Samples a witness, keeps its public cells fixed and asks for a second
witness that differs in at least one private cell.  When there is none the
sampled public assignment is blocked and the next one is tried, up to an
iteration budget.  All blocking clauses live in one outer scope, so the
session is back at its base assertions afterwards.

With explicit ``public_values`` only that single public assignment is
checked.
"""
import logging
from typing import Dict, Iterable, List, Optional

from zkcheck.analysis.findings import UniquenessResult, UniquenessVerdict
from zkcheck.ff import Cell, ColumnKind
from zkcheck.smt.commands import And, Or, cell_differs, cell_equals
from zkcheck.smt.session import SolverSession
from zkcheck.smt.transport import Status

logger = logging.getLogger(__name__)

_PRIVATE_KINDS = (ColumnKind.ADVICE, ColumnKind.INSTANCE)


def check_uniqueness(session: SolverSession, public_cells: Iterable[Cell],
                     iterations: int = 1,
                     public_values: Optional[Dict[Cell, int]] = None) -> UniquenessResult:
    if iterations < 1:
        raise ValueError("iterations must be at least 1")
    public: List[Cell] = list(public_cells)
    if public_values:
        public.extend(c for c in public_values if c not in public)
        iterations = 1
    public_set = set(public)
    cells = list(session.compiled.symbols)
    private = [c for c in cells if c not in public_set and c.column.kind in _PRIVATE_KINDS]

    with session.scope():
        session.add_all(cell_equals(cell, value) for cell, value in (public_values or {}).items())

        first = session.check()
        if first.status is Status.UNSAT:
            return UniquenessResult(UniquenessVerdict.OVER_CONSTRAINED)
        if first.status is Status.UNKNOWN:
            return UniquenessResult(UniquenessVerdict.UNKNOWN, reason=first.reason)

        for i in range(1, iterations + 1):
            sample = session.check(cells)
            if sample.status is Status.UNSAT:
                # Every public assignment has been blocked
                return UniquenessResult(UniquenessVerdict.NOT_UNDER_CONSTRAINED, iterations=i - 1)
            if sample.status is Status.UNKNOWN:
                return UniquenessResult(UniquenessVerdict.UNKNOWN, iterations=i - 1,
                                        reason=sample.reason)
            witness = sample.model
            logger.debug("Model %d to be checked: %s", i,
                         ", ".join(f"{c}={v}" for c, v in witness.items()))

            with session.scope():
                same = tuple(cell_equals(c, witness[c]) for c in public)
                differ = Or(tuple(cell_differs(c, witness[c]) for c in private))
                session.add(And(same + (differ,)))
                other = session.check(cells)
            if other.status is Status.SAT:
                logger.info("Equivalent model for the same public input found at iteration %d", i)
                return UniquenessResult(UniquenessVerdict.UNDER_CONSTRAINED, iterations=i,
                                        witness=witness, alternate=other.model)
            if other.status is Status.UNKNOWN:
                return UniquenessResult(UniquenessVerdict.UNKNOWN, iterations=i,
                                        witness=witness, reason=other.reason)

            if not public:
                return UniquenessResult(UniquenessVerdict.NOT_UNDER_CONSTRAINED, iterations=i,
                                        witness=witness)
            session.add(Or(tuple(cell_differs(c, witness[c]) for c in public)))

    return UniquenessResult(UniquenessVerdict.NOT_UNDER_CONSTRAINED_LOCAL, iterations=iterations)
