"""CLI tool for finding under-constrained cells in a circuit."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from zkcheck import ZKCHECK_DEBUG
from zkcheck.analysis import (
    ProverConfig, analyze_circuit, analyze_parallel, check_uniqueness,
)
from zkcheck.circuit import load_circuit, parse_assignments, parse_cells
from zkcheck.circuit.structural import lint
from zkcheck.ff import ColumnKind
from zkcheck.global_params import global_config
from zkcheck.smt import SolverSession, compile_circuit
from zkcheck.smt.session import BACKENDS
from zkcheck.utils.exceptions import ZKCheckException

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_UNDER_CONSTRAINED = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zkcheck-analyze",
        description="Detect under-constrained cells of a finite-field arithmetic circuit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Exit status: 0 when nothing is under-constrained, "
               "2 when something is, 1 on errors.",
    )
    parser.add_argument("file", type=str, help="Circuit description (.json)")
    parser.add_argument(
        "--target", action="extend", nargs="+", default=None, metavar="COL:ROW",
        help="Cells to analyze (default: every advice cell that is not driving)",
    )
    parser.add_argument(
        "--driving", action="extend", nargs="+", default=[], metavar="COL:ROW",
        help="Cells whose values are enumerated as candidates",
    )
    parser.add_argument(
        "--bound", type=int, default=2,
        help="Driving values range over 0..BOUND-1 (default: 2)",
    )
    parser.add_argument(
        "--max-candidates", type=int, default=4096,
        help="Cap on candidates per target (default: 4096)",
    )
    parser.add_argument(
        "--stop-on-first", action="store_true",
        help="Stop a target at its first under-constrained candidate",
    )
    parser.add_argument(
        "--backend", choices=BACKENDS, default=None,
        help="Solver backend (default: z3, or $ZKCHECK_BACKEND)",
    )
    parser.add_argument(
        "--solver", type=str, default=None,
        help="Path to the cvc5 binary for the cvc5 backend",
    )
    parser.add_argument(
        "--timeout", type=int, default=None, metavar="MS",
        help="Per-query timeout in milliseconds",
    )
    parser.add_argument(
        "--jobs", type=int, default=1,
        help="Analyze targets in parallel with N sessions (default: 1)",
    )
    parser.add_argument("--lint", action="store_true", help="Run the structural passes too")
    parser.add_argument(
        "--uniqueness", action="store_true",
        help="Also search for two witnesses sharing the public cells",
    )
    parser.add_argument(
        "--public", action="extend", nargs="+", default=[], metavar="COL:ROW",
        help="Public cells for --uniqueness (default: every instance cell)",
    )
    parser.add_argument(
        "--iterations", type=int, default=1,
        help="Public assignments tried by --uniqueness (default: 1)",
    )
    parser.add_argument(
        "--public-value", action="extend", nargs="+", default=[], metavar="COL:ROW=V",
        help="Check uniqueness for these public values only (implies --uniqueness)",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--log-level",
        type=str,
        default="DEBUG" if ZKCHECK_DEBUG else "WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING, DEBUG when ZKCHECK_DEBUG is set)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the analyzer CLI."""
    args = _build_parser().parse_args(argv)
    if not Path(args.file).exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return EXIT_FATAL

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        circuit = load_circuit(args.file)
        driving = parse_cells(args.driving, circuit)
        targets = parse_cells(args.target, circuit) if args.target else None
        public_values = parse_assignments(args.public_value, circuit)
        config = ProverConfig(
            candidate_bound=args.bound,
            max_candidates=args.max_candidates,
            timeout_ms=args.timeout,
            stop_on_first=args.stop_on_first,
        )
        solver_cmd = None
        if args.solver:
            global_config.set_solver_path("cvc5", args.solver)
            solver_cmd = global_config.get_solver_command("cvc5", args.timeout)

        logging.info("Loaded %s: %s, %d column(s), %d row(s)", args.file, circuit.field,
                     len(circuit.columns), circuit.num_rows)
        if args.jobs > 1:
            report = analyze_parallel(circuit, targets, driving, config,
                                      backend=args.backend, jobs=args.jobs,
                                      solver_cmd=solver_cmd)
        else:
            report = analyze_circuit(circuit, targets, driving, config,
                                     backend=args.backend, solver_cmd=solver_cmd)

        if args.lint:
            report.lints = lint(circuit)
        if args.uniqueness or args.public_value:
            public = parse_cells(args.public, circuit) if args.public or public_values else \
                list(circuit.cells(ColumnKind.INSTANCE))
            with SolverSession(compile_circuit(circuit), backend=args.backend,
                               timeout_ms=args.timeout, solver_cmd=solver_cmd) as session:
                report.uniqueness = check_uniqueness(session, public, args.iterations,
                                                     public_values=public_values or None)

        if args.json:
            print(json.dumps(report.to_dict(), indent=2))
        else:
            print(report.format_text())
        return EXIT_UNDER_CONSTRAINED if report.is_under_constrained else EXIT_OK
    except (ZKCheckException, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if args.log_level == "DEBUG":
            import traceback

            traceback.print_exc()
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
