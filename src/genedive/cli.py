from __future__ import annotations

import argparse
import logging
import shlex
import sys

from . import __version__
from .config import load_config
from .doctor import run_doctor
from .errors import ConfigurationError, GeneDiveError, StageFailure
from .pipeline import run_pipeline

USAGE = "%(prog)s -a <assembly_directory> -h <hmm_directory> -o <output_directory> [options]"


class _UsageExitParser(argparse.ArgumentParser):
    """Argument errors print usage and exit with status 1."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> _UsageExitParser:
    parser = _UsageExitParser(
        prog="genedive",
        usage=USAGE,
        description=(
            "Run FragGeneScan, hmmsearch, esl filtering and FastTree over every "
            "assembly x HMM profile pair and tabulate Faith's phylogenetic diversity."
        ),
        add_help=False,
    )
    required = parser.add_argument_group("required arguments")
    required.add_argument("-a", dest="assembly_dir", required=True, metavar="DIR",
                          help="Directory of assembly files, one per sample.")
    required.add_argument("-h", dest="hmm_dir", required=True, metavar="DIR",
                          help="Directory of HMM profile files, one per gene.")
    required.add_argument("-o", dest="output_dir", required=True, metavar="DIR",
                          help="Root directory for run artifacts and output_table.csv.")

    options = parser.add_argument_group("options")
    options.add_argument("--help", action="help", help="Show this message and exit.")
    options.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    options.add_argument("--config", default=None, metavar="JSON",
                         help="Tool paths and settings (schema_version 1).")
    options.add_argument("--jobs", type=int, default=None, metavar="N",
                         help="Run up to N assembly x profile pairs concurrently (default 1).")
    options.add_argument("--stage-timeout", type=float, default=None, metavar="SEC",
                         help="Abort if any single tool invocation exceeds SEC seconds.")
    options.add_argument("--aligned-table", action="store_true",
                         help="Write gene names as column headers, aligned across samples.")
    options.add_argument("--no-echo", action="store_true",
                         help="Do not print filtered alignments to stdout.")
    options.add_argument("--skip-doctor", action="store_true",
                         help="Skip the tool availability preflight.")
    options.add_argument("--doctor", action="store_true",
                         help="Only run the preflight checks and print the report.")
    verbosity = options.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("genedive").setLevel(level)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(raw_argv)
    _configure_logging(args)

    try:
        config = load_config(
            args.config,
            jobs=args.jobs,
            stage_timeout_sec=args.stage_timeout,
            table_layout="aligned" if args.aligned_table else None,
            echo_alignment=False if args.no_echo else None,
        )
    except ConfigurationError as exc:
        parser.print_usage(sys.stderr)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.doctor:
        report = run_doctor(config, output_dir=args.output_dir)
        print(report.render())
        return 1 if report.has_failures else 0

    try:
        report = run_pipeline(
            args.assembly_dir,
            args.hmm_dir,
            args.output_dir,
            config,
            preflight=not args.skip_doctor,
            command_line="genedive " + shlex.join(raw_argv),
        )
    except StageFailure as exc:
        print(str(exc), file=sys.stderr)
        if exc.stderr_tail:
            print(exc.stderr_tail, file=sys.stderr)
        return 1
    except GeneDiveError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"Runs completed: {report.n_runs}")
    print(f"Output table: {report.table_path.resolve()}")
    if report.manifest_path is not None:
        print(f"Run manifest: {report.manifest_path.resolve()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
