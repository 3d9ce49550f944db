"""CLI entrypoints for git-hook-installer commands."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional

from . import __version__
from .config import load_config
from .errors import (
    EXIT_FAILURE,
    EXIT_OK,
    AmbiguousManifestDirectory,
    HookInstallerError,
)
from .git.repo import find_repo, relative_display
from .git.scan import ScanEngine, resolve_scan_depth
from .logging import configure_logging, get_logger
from .models import InstallOptions
from .orchestrator import (
    COMMAND_DISABLE,
    COMMAND_INSTALL,
    COMMAND_UNINSTALL,
    InstallOrchestrator,
)
from .prompts import Prompter
from .status import build_status

COMMAND_STATUS = "status"

_COMMAND_HELP = {
    COMMAND_INSTALL: "Install or refresh the managed pre-commit hook (default).",
    COMMAND_DISABLE: "Keep the managed block but turn it into a pass-through.",
    COMMAND_UNINSTALL: "Remove the managed block; delete the hook if nothing else remains.",
    COMMAND_STATUS: "Report the state of the pre-commit hook without changing it.",
}


def _add_shared_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    def default(value: object) -> object:
        return argparse.SUPPRESS if suppress_default else value

    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        default=default(False),
        help="Answer yes to confirmations, including modifying an existing unmanaged hook.",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        default=default(False),
        help="Never prompt; ambiguities and conflicts become errors.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        default=default(False),
        help="Proceed without confirmation and replace a corrupt hook after snapshotting it.",
    )
    parser.add_argument(
        "--manifest-dir",
        type=Path,
        default=default(None),
        help="Directory containing the Cargo.toml the Rust section should use.",
    )
    parser.add_argument(
        "--recursive",
        action="store_true",
        default=default(False),
        help="Apply the command to every repository found below the scan root.",
    )
    parser.add_argument(
        "--dir",
        type=Path,
        default=default(None),
        help="Scan root for bulk mode (defaults to the current directory).",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=default(None),
        help="How many directory levels below the scan root to search for repositories.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=default(None),
        help="User configuration file (defaults to ~/.config/git-hook-installer/config.yml).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default(False),
        help="Report detected toolchains and increase log verbosity.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-hook-installer",
        description="Install and manage a generated, idempotent git pre-commit hook.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_shared_options(parser)
    subparsers = parser.add_subparsers(dest="command")
    for command, help_text in _COMMAND_HELP.items():
        subparser = subparsers.add_parser(command, help=help_text)
        _add_shared_options(subparser, suppress_default=True)
    return parser


def main(
    argv: list[str] | None = None,
    *,
    prompter: Prompter | None = None,
    echo: Callable[[str], None] | None = None,
    cwd: Path | None = None,
) -> int:
    """CLI entrypoint; returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    command = args.command or COMMAND_INSTALL
    out = echo or print
    start = (cwd or Path.cwd()).resolve()

    try:
        config = load_config(args.config)
    except HookInstallerError as exc:
        configure_logging(verbose=bool(args.verbose))
        _print_error(command, exc)
        return exc.exit_code
    configure_logging(verbose=bool(args.verbose), log_file=config.log_file)
    logger = get_logger("cli")

    try:
        max_depth = resolve_scan_depth(
            recursive=bool(args.recursive), directory=args.dir, max_depth=args.max_depth
        )
    except ValueError as exc:
        parser.error(str(exc))

    options = InstallOptions(
        yes=bool(args.yes),
        non_interactive=bool(args.non_interactive) or command == COMMAND_STATUS,
        force=bool(args.force),
        verbose=bool(args.verbose),
    )
    if options.interactive and prompter is None and not sys.stdin.isatty():
        logger.debug("stdin is not a terminal; continuing non-interactively")
        options = replace(options, non_interactive=True)

    orchestrator = InstallOrchestrator(config, options, prompter=prompter, echo=out)
    manifest_dir = args.manifest_dir

    if max_depth is not None:
        scan_root = (args.dir if args.dir is not None else start).expanduser()
        if not scan_root.is_absolute():
            scan_root = start / scan_root
        return _run_bulk(
            command, orchestrator, scan_root, max_depth, config.scan.max_entries, manifest_dir, out
        )

    try:
        repo = find_repo(start)
        if command == COMMAND_STATUS:
            report = build_status(
                repo,
                orchestrator,
                verbose=options.verbose,
                manifest_dir=manifest_dir,
                cwd=start,
            )
            for line in report.lines(verbose=options.verbose):
                out(line)
            return EXIT_OK
        outcome = orchestrator.run(command, repo, manifest_dir=manifest_dir, cwd=start)
    except HookInstallerError as exc:
        _print_error(command, exc)
        return exc.exit_code

    if outcome.message:
        out(outcome.message)
    if outcome.decision is not None and outcome.decision.snapshot is not None:
        out(f"Snapshot of previous hook: {outcome.decision.snapshot}")
    return outcome.exit_code


def _run_bulk(
    command: str,
    orchestrator: InstallOrchestrator,
    scan_root: Path,
    max_depth: int,
    max_entries: int,
    manifest_dir: Optional[Path],
    out: Callable[[str], None],
) -> int:
    engine = ScanEngine(max_entries=max_entries)
    try:
        targets = engine.scan(scan_root, max_depth)
    except HookInstallerError as exc:
        _print_error(command, exc)
        return exc.exit_code

    if not targets:
        out(f"No git repositories found under {scan_root} (max depth {max_depth})")
        return EXIT_OK

    if command == COMMAND_STATUS:
        verbose = orchestrator.options.verbose
        exit_code = EXIT_OK
        for target in targets:
            try:
                report = build_status(target.repo, orchestrator, verbose=verbose)
            except HookInstallerError as exc:
                _print_error(command, exc)
                exit_code = max(exit_code, exc.exit_code)
                continue
            for line in report.lines(verbose=verbose):
                out(line)
            out("")
        return exit_code

    summary = orchestrator.run_bulk(command, targets, manifest_dir=manifest_dir)
    for outcome in summary.outcomes:
        label = relative_display(scan_root, outcome.repo.path)
        detail = outcome.message or outcome.status
        out(f"[{outcome.status}] {label}: {detail}")
    out(f"{command}: {summary.describe()}")
    return summary.exit_code


def _print_error(command: str, exc: HookInstallerError) -> None:
    lines: List[str] = [f"git-hook-installer {command} failed: {exc}"]
    if isinstance(exc, AmbiguousManifestDirectory):
        lines.extend(f"  candidate: {path}" for path in exc.candidates)
    if exc.exit_code == EXIT_FAILURE:
        lines.append("Run with --verbose for more details.")
    print("\n".join(lines), file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
