import json
from pathlib import Path

import pytest

from binmatrix.cli import main


def _run(project_root: Path, *argv: str) -> int:
    return main(["--root", str(project_root), *argv])


def test_plan_lists_matrix(project_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(project_root, "plan") == 0

    out = capsys.readouterr().out
    assert "Build matrix: 4 target(s)" in out
    assert "mjml-win-x64-node18.exe (node18-win-x64)" in out


def test_plan_with_no_match_exits_one(
    project_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert _run(project_root, "plan", "--platform", "macos-arm64") == 1

    err = capsys.readouterr().err
    assert "Error [E_PLAN_EMPTY]: No build targets enabled." in err


def test_build_verify_and_package_round(
    project_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert _run(project_root, "build", "--backend", "inprocess") == 0
    out = capsys.readouterr().out
    assert "Successful: 4" in out
    assert "Manifest written:" in out

    assert _run(project_root, "verify") == 0
    assert "All hashes verified" in capsys.readouterr().out

    assert _run(project_root, "verify", "--manifest") == 0
    out = capsys.readouterr().out
    assert "Verifying 4 binaries from manifest" in out
    assert "Build Version: 4.15.3" in out

    assert _run(project_root, "package") == 0
    assert "Packaging complete" in capsys.readouterr().out
    assert (project_root / "dist" / "mjml-win-x64-node20.zip").is_file()


def test_verify_detects_tampered_artifact(
    project_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert _run(project_root, "build", "--backend", "inprocess", "--node", "20") == 0
    artifact = project_root / "dist" / "mjml-linux-x64-node20"
    artifact.write_bytes(artifact.read_bytes() + b"x")
    capsys.readouterr()

    assert _run(project_root, "verify") == 1

    out = capsys.readouterr().out
    assert "FAIL mjml-linux-x64-node20" in out
    assert "OK   mjml-win-x64-node20.exe" in out
    assert "Failed:     1" in out


def test_verify_single_file_with_explicit_hash(
    project_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    artifact = project_root / "binary"
    artifact.write_bytes(b"abc")
    digest = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    assert _run(project_root, "verify", "--file", str(artifact), "--hash", digest) == 0
    assert _run(project_root, "verify", "--file", str(artifact), "--hash", "0" * 64) == 1

    out = capsys.readouterr().out
    assert f"Expected: {'0' * 64}" in out


def test_verify_manifest_without_build_exits_one(
    project_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert _run(project_root, "verify", "--manifest") == 1
    assert "E_MANIFEST_NOT_FOUND" in capsys.readouterr().err


def test_dry_run_builds_nothing(project_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(project_root, "build", "--backend", "inprocess", "--dry-run") == 0

    assert "[DRY RUN] Would build to:" in capsys.readouterr().out
    assert not (project_root / "dist").exists()


def test_clean_previews_then_removes(
    project_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    dist = project_root / "dist"
    dist.mkdir()
    for index in range(12):
        (dist / f"file-{index:02d}").write_bytes(b"x")

    assert _run(project_root, "clean") == 0
    out = capsys.readouterr().out
    assert "Files to remove: 12" in out
    assert "... and 2 more" in out
    assert "Use --force to confirm deletion." in out
    assert len(list(dist.iterdir())) == 12

    assert _run(project_root, "clean", "--force") == 0
    assert "Removed 12 file(s)" in capsys.readouterr().out
    assert list(dist.iterdir()) == []


def test_missing_config_exits_one(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--root", str(tmp_path), "plan"]) == 1
    assert "E_CONFIG" in capsys.readouterr().err


def test_log_json_records_plan_and_build_phases(project_root: Path, tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "run.jsonl"

    status = _run(
        project_root,
        "--log-json",
        str(log_path),
        "build",
        "--backend",
        "inprocess",
        "--platform",
        "linux-x64",
    )

    assert status == 0
    records = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert {record["phase"] for record in records} >= {"plan", "build"}


def test_verify_without_output_dir_exits_one(
    project_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert _run(project_root, "verify") == 1

    captured = capsys.readouterr()
    assert "Error [E_OUTPUT_NOT_FOUND]: Output directory not found." in captured.err
    assert "All hashes verified" not in captured.out


def test_build_can_export_cbor_manifest(project_root: Path) -> None:
    status = _run(project_root, "build", "--backend", "inprocess", "--manifest-cbor")

    assert status == 0
    assert (project_root / "dist" / "manifest.cbor").is_file()
