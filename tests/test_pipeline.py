import json
from pathlib import Path

import cbor2

from binmatrix.backends import InProcessBackend
from binmatrix.manifest import read_manifest
from binmatrix.pipeline import BuildPipeline
from binmatrix.verify import verify_directory, verify_manifest

from conftest import ConfigFactory, RecordingBackend


def test_full_run_writes_artifacts_sidecars_and_manifest(
    tmp_path: Path,
    make_config: ConfigFactory,
) -> None:
    pipeline = BuildPipeline(
        config=make_config(build={"parallel": True}),
        backend=InProcessBackend(),
        project_root=tmp_path,
    )

    run = pipeline.build(pipeline.plan())

    assert run.summary.total == 4
    assert run.summary.ok is True
    assert run.manifest_path == tmp_path / "dist" / "manifest.json"
    manifest = read_manifest(tmp_path / "dist")
    assert manifest == run.manifest
    assert manifest.version == "4.15.3"
    assert [entry.name for entry in manifest.builds] == [
        "mjml-linux-x64-node20",
        "mjml-linux-x64-node18",
        "mjml-win-x64-node20.exe",
        "mjml-win-x64-node18.exe",
    ]
    assert verify_directory(run.output_dir).ok is True
    assert verify_manifest(run.output_dir).ok is True


def test_manifest_lists_only_successful_jobs(
    tmp_path: Path,
    make_config: ConfigFactory,
    recording_backend: RecordingBackend,
) -> None:
    recording_backend.fail_targets = {"node20-win-x64"}
    pipeline = BuildPipeline(
        config=make_config(),
        backend=recording_backend,
        project_root=tmp_path,
    )

    run = pipeline.build(pipeline.plan())

    assert recording_backend.prepared is True
    assert run.summary.ok is False
    assert run.summary.failed == 1
    assert run.manifest is not None
    assert [entry.name for entry in run.manifest.builds] == [
        "mjml-linux-x64-node20",
        "mjml-linux-x64-node18",
        "mjml-win-x64-node18.exe",
    ]
    build_records = pipeline.logger.records_for_phase("build")
    assert any(record["operation"] == "build_job_failed" for record in build_records)
    summary_record = next(r for r in build_records if r["operation"] == "build_summary")
    assert summary_record["level"] == "error"


def test_no_manifest_when_every_job_fails(
    tmp_path: Path,
    make_config: ConfigFactory,
    recording_backend: RecordingBackend,
) -> None:
    recording_backend.fail_targets = {"node20-linux-x64"}
    pipeline = BuildPipeline(
        config=make_config(),
        backend=recording_backend,
        project_root=tmp_path,
    )

    run = pipeline.build(pipeline.plan(platform="linux-x64", runtime="20"))

    assert run.summary.failed == 1
    assert run.manifest is None
    assert not (tmp_path / "dist" / "manifest.json").exists()


def test_dry_run_touches_nothing(
    tmp_path: Path,
    make_config: ConfigFactory,
    recording_backend: RecordingBackend,
) -> None:
    pipeline = BuildPipeline(
        config=make_config(build={"cleanBeforeBuild": True}),
        backend=recording_backend,
        project_root=tmp_path,
    )

    run = pipeline.build(pipeline.plan(), dry_run=True)

    assert recording_backend.prepared is False
    assert recording_backend.calls == []
    assert run.summary.successful == 4
    assert all(result.dry_run for result in run.results)
    assert run.manifest is None
    assert not (tmp_path / "dist").exists()


def test_clean_before_build_removes_stale_artifacts(
    tmp_path: Path,
    make_config: ConfigFactory,
) -> None:
    stale = tmp_path / "dist" / "mjml-macos-x64-node16"
    stale.parent.mkdir()
    stale.write_bytes(b"old")
    pipeline = BuildPipeline(
        config=make_config(build={"cleanBeforeBuild": True}),
        backend=InProcessBackend(),
        project_root=tmp_path,
    )

    pipeline.build(pipeline.plan(platform="linux-x64"))

    assert not stale.exists()
    assert sorted(path.name for path in (tmp_path / "dist").iterdir()) == [
        "manifest.json",
        "mjml-linux-x64-node18",
        "mjml-linux-x64-node18.sha256",
        "mjml-linux-x64-node20",
        "mjml-linux-x64-node20.sha256",
    ]


def test_clean_override_keeps_previous_artifacts(
    tmp_path: Path,
    make_config: ConfigFactory,
) -> None:
    kept = tmp_path / "dist" / "mjml-linux-x64-node18"
    kept.parent.mkdir()
    kept.write_bytes(b"previous")
    pipeline = BuildPipeline(
        config=make_config(build={"cleanBeforeBuild": True}),
        backend=InProcessBackend(),
        project_root=tmp_path,
    )

    run = pipeline.build(pipeline.plan(platform="linux-x64", runtime="20"), clean=False)

    assert kept.read_bytes() == b"previous"
    assert run.manifest is not None
    assert [entry.name for entry in run.manifest.builds] == ["mjml-linux-x64-node20"]


def test_plan_is_logged(tmp_path: Path, make_config: ConfigFactory) -> None:
    pipeline = BuildPipeline(
        config=make_config(),
        backend=InProcessBackend(),
        project_root=tmp_path,
    )

    jobs = pipeline.plan(platform="win-x64")

    [record] = pipeline.logger.records_for_phase("plan")
    assert record["extra"]["jobs"] == [job.output_name for job in jobs]
    assert record["extra"]["platform"] == "win-x64"


def test_cbor_manifest_written_on_request_and_dropped_otherwise(
    tmp_path: Path,
    make_config: ConfigFactory,
) -> None:
    pipeline = BuildPipeline(
        config=make_config(),
        backend=InProcessBackend(),
        project_root=tmp_path,
    )
    cbor_path = tmp_path / "dist" / "manifest.cbor"

    run = pipeline.build(pipeline.plan(platform="linux-x64"), manifest_cbor=True)

    assert run.manifest is not None
    assert cbor2.loads(cbor_path.read_bytes()) == json.loads(run.manifest.to_json())
    assert verify_directory(run.output_dir).ok is True

    pipeline.build(pipeline.plan(platform="linux-x64"))

    assert not cbor_path.exists()
