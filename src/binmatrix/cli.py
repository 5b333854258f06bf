"""Command-line entry point for the binary build pipeline.

Usage:
    binmatrix plan [--platform ID] [--node VERSION]
    binmatrix build [--platform ID] [--node VERSION] [--single] [--dry-run] [--manifest-cbor]
    binmatrix verify [--file PATH [--hash DIGEST]] [--manifest]
    binmatrix package [--file PATH]
    binmatrix clean [--force]

Every command exits 0 on full success and 1 otherwise.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from binmatrix import __version__
from binmatrix.backends import BACKEND_NAMES, get_backend
from binmatrix.clean import clean_output_dir
from binmatrix.config import DEFAULT_CONFIG_PATH, BuildConfig, load_config
from binmatrix.errors import BinmatrixError, PlanEmptyError
from binmatrix.models import BuildResult
from binmatrix.observability import StructuredLogger
from binmatrix.packaging import PackageResult, Packager
from binmatrix.pipeline import BuildPipeline
from binmatrix.planner import describe_plan, plan_jobs
from binmatrix.verify import (
    VerificationReport,
    VerificationResult,
    verify_digest,
    verify_directory,
    verify_manifest,
    verify_sidecar,
)

_RULE = "=" * 59
_PREVIEW_LIMIT = 10
_TITLES = {
    "plan": "Build Matrix",
    "build": "MJML Binary Builder",
    "verify": "Hash Verification",
    "package": "Binary Packaging",
    "clean": "Clean Build",
}


def cmd_plan(args: argparse.Namespace, config: BuildConfig, logger: StructuredLogger) -> int:
    jobs = plan_jobs(config, platform=args.platform, runtime=args.node)
    if not jobs:
        raise _empty_plan(args)
    print(f"Build matrix: {len(jobs)} target(s)")
    for line in describe_plan(jobs):
        print(f"   - {line}")
    return 0


def cmd_build(args: argparse.Namespace, config: BuildConfig, logger: StructuredLogger) -> int:
    root = _root(args)
    backend = get_backend(args.backend, project_root=root, timeout=config.build.timeout)
    pipeline = BuildPipeline(config=config, backend=backend, project_root=root, logger=logger)

    jobs = pipeline.plan(platform=args.platform, runtime=args.node)
    if not jobs:
        raise _empty_plan(args)

    print(f"Build matrix: {len(jobs)} target(s)")
    for job in jobs:
        print(f"   - {job.output_name}")
    if config.build.clean_before_build and not args.single and not args.dry_run:
        print("\nCleaning output directory...")

    print("\nStarting builds...")
    run = pipeline.build(
        jobs,
        dry_run=args.dry_run,
        clean=False if args.single else None,
        on_result=lambda result: _print_build_result(result, verbose=args.verbose),
        manifest_cbor=args.manifest_cbor,
    )

    summary = run.summary
    _banner("Build Summary")
    print(f"   Total:      {summary.total}")
    print(f"   Successful: {summary.successful}")
    print(f"   Failed:     {summary.failed}")
    print(f"   Duration:   {summary.duration:.1f}s")
    print(_RULE)
    if run.manifest_path is not None:
        print(f"Manifest written: {run.manifest_path}")
    return 0 if summary.ok else 1


def cmd_verify(args: argparse.Namespace, config: BuildConfig, logger: StructuredLogger) -> int:
    algorithm = config.output.hash_algorithm
    if args.file:
        if args.hash:
            result = verify_digest(args.file, args.hash, algorithm=algorithm)
        else:
            result = verify_sidecar(args.file, algorithm=algorithm)
        report = VerificationReport(results=(result,))
    elif args.manifest:
        report = verify_manifest(config.output_dir(_root(args)), algorithm=algorithm, logger=logger)
        print(f"Verifying {len(report.results)} binaries from manifest")
        if report.manifest is not None:
            print(f"   Build Version: {report.manifest.version}")
            print(f"   Build Time:    {report.manifest.build_time}\n")
    else:
        output_dir = config.output_dir(_root(args))
        report = verify_directory(output_dir, algorithm=algorithm, logger=logger)
        if not report.results:
            print("No binary files found to verify")
        else:
            print(f"Verifying {len(report.results)} binaries\n")

    for result in report.results:
        _print_verification(result, verbose=args.verbose)

    failed = len(report.failures)
    _banner("Verification Summary")
    print(f"   Total:      {len(report.results)}")
    print(f"   Passed:     {len(report.results) - failed}")
    print(f"   Failed:     {failed}")
    print(_RULE)
    print("All hashes verified" if report.ok else "Verification failed")
    return 0 if report.ok else 1


def cmd_package(args: argparse.Namespace, config: BuildConfig, logger: StructuredLogger) -> int:
    packager = Packager(
        project_root=_root(args),
        hash_algorithm=config.output.hash_algorithm,
        compression_level=config.output.compression_level,
        extensions=config.executable_extensions(),
        logger=logger,
    )
    if args.file:
        results: tuple[PackageResult, ...] = (packager.package_artifact(args.file),)
    else:
        results = packager.package_directory(config.output_dir(_root(args))).results
        if not results:
            print("No binary files found to package")
        else:
            print(f"Packaging {len(results)} binaries\n")

    for result in results:
        _print_package_result(result)

    failed = sum(1 for result in results if not result.ok)
    _banner("Packaging Summary")
    print(f"   Total:      {len(results)}")
    print(f"   Packaged:   {len(results) - failed}")
    print(f"   Failed:     {failed}")
    print(_RULE)
    print("Packaging complete" if failed == 0 else "Packaging failed")
    return 0 if failed == 0 else 1


def cmd_clean(args: argparse.Namespace, config: BuildConfig, logger: StructuredLogger) -> int:
    report = clean_output_dir(config.output_dir(_root(args)), force=args.force, logger=logger)
    if not report.existed:
        print("Output directory does not exist. Nothing to clean.")
        return 0
    if not report.entries:
        print("Output directory is already empty.")
        return 0

    print(f"Output directory: {report.output_dir}")
    print(f"Files to remove: {len(report.entries)}\n")
    if report.previewed:
        print("   Files:")
        for name in report.entries[:_PREVIEW_LIMIT]:
            print(f"   - {name}")
        if len(report.entries) > _PREVIEW_LIMIT:
            print(f"   ... and {len(report.entries) - _PREVIEW_LIMIT} more")
        print("\n   Use --force to confirm deletion.")
        return 0

    print(f"Removed {report.removed} file(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="binmatrix",
        description="Build, verify, and package standalone MJML binaries",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--root",
        default=".",
        help="Project root; relative config and output paths resolve against it",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Build config JSON (default: config/build-config.json)",
    )
    parser.add_argument("--log-json", help="Write structured log records as JSON lines")
    sub = parser.add_subparsers(dest="command", required=True)

    plan_p = sub.add_parser("plan", help="Show the build matrix")
    _add_filters(plan_p)

    build_p = sub.add_parser("build", help="Build binaries for the configured matrix")
    _add_filters(build_p)
    build_p.add_argument(
        "--single", action="store_true", help="Do not clean the output directory first"
    )
    build_p.add_argument("--dry-run", action="store_true", help="Plan and report only")
    build_p.add_argument(
        "--manifest-cbor",
        action="store_true",
        help="Also write manifest.cbor beside manifest.json",
    )
    build_p.add_argument("--backend", choices=BACKEND_NAMES, default="pkg")
    build_p.add_argument("-v", "--verbose", action="store_true")

    verify_p = sub.add_parser("verify", help="Verify artifact hashes")
    verify_p.add_argument("--file", help="Verify a single artifact")
    verify_p.add_argument("--hash", help="Expected digest for --file instead of its sidecar")
    verify_p.add_argument("--manifest", action="store_true", help="Verify from manifest.json")
    verify_p.add_argument("-v", "--verbose", action="store_true")

    package_p = sub.add_parser("package", help="Create one zip archive per artifact")
    package_p.add_argument("--file", help="Package a single artifact")

    clean_p = sub.add_parser("clean", help="Remove build artifacts")
    clean_p.add_argument("-f", "--force", action="store_true", help="Confirm deletion")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = StructuredLogger()
    commands = {
        "plan": cmd_plan,
        "build": cmd_build,
        "verify": cmd_verify,
        "package": cmd_package,
        "clean": cmd_clean,
    }
    _banner(_TITLES[args.command])
    try:
        config = load_config(_config_path(args))
        status = commands[args.command](args, config, logger)
    except BinmatrixError as exc:
        print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
        status = 1
    finally:
        if args.log_json:
            logger.to_json_lines(args.log_json)
    return status


def _add_filters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--platform", help="Only build this platform id")
    parser.add_argument("--node", help="Only build this Node.js version id")


def _root(args: argparse.Namespace) -> Path:
    return Path(args.root).resolve()


def _config_path(args: argparse.Namespace) -> Path:
    path = Path(args.config)
    return path if path.is_absolute() else _root(args) / path


def _empty_plan(args: argparse.Namespace) -> PlanEmptyError:
    return PlanEmptyError(
        "No build targets enabled.",
        hint="Check the enabled platforms and node versions in your build config.",
        context={"platform": args.platform or "", "node": args.node or ""},
    )


def _banner(title: str) -> None:
    print(_RULE)
    print(title.center(len(_RULE)).rstrip())
    print(_RULE)


def _print_build_result(result: BuildResult, *, verbose: bool) -> None:
    job = result.job
    print(f"\nBuilding: {job.output_name}")
    print(f"   Target: {job.target}")
    if result.dry_run:
        print(f"   [DRY RUN] Would build to: {result.output_path}")
    elif result.success and result.size is not None and result.digest is not None:
        print(f"   Success: {result.size / 1024 / 1024:.2f} MB")
        print(f"   Hash: {result.digest if verbose else result.digest[:16] + '...'}")
    else:
        print(f"   Failed: {result.error}")


def _print_verification(result: VerificationResult, *, verbose: bool) -> None:
    if result.ok:
        print(f"   OK   {result.name}")
        if verbose:
            print(f"      Hash: {result.actual}")
        return
    print(f"   FAIL {result.name}")
    if result.reason == "hash_mismatch":
        print(f"      Expected: {result.expected}")
        print(f"      Actual:   {result.actual}")
    else:
        print(f"      Error: {result.error}")


def _print_package_result(result: PackageResult) -> None:
    if result.ok and result.archive is not None and result.size is not None:
        print(f"   Created: {result.archive.name} ({result.size / 1024 / 1024:.2f} MB)")
    else:
        print(f"   Failed: {result.artifact.name}: {result.error}")


if __name__ == "__main__":
    sys.exit(main())
