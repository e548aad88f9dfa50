"""
Tests for the mod synchronizer.

These tests verify that:
1. A fresh target receives every declared artifact with one event per unit
2. Re-running against an unchanged manifest mutates nothing
3. Obsolete artifacts are removed and corrupted ones re-downloaded
4. A checksum or download failure deletes the artifact and aborts the remaining work
5. Stages with nothing to process emit no events
"""

import asyncio

import pytest

from modsync.download import ProgressStream
from modsync.exceptions import ValidationError
from modsync.models import ArtifactRecord, ErrorKind, SyncStage
from modsync.services import ArtifactSynchronizer
from tests.helpers import sha256_hex

pytest_plugins = ("pytest_asyncio",)

MODS = {
    "alpha.jar": b"alpha mod contents",
    "beta.jar": b"beta mod contents" * 100,
    "gamma.jar": b"gamma mod contents",
}


def serve_manifest(stub, files, bad_checksum=(), key="artifacts"):
    entries = []
    for name, data in files.items():
        entries.append(
            {
                "fileName": name,
                "downloadUrl": stub.add(f"/files/{name}", data),
                "checksum": sha256_hex(b"wrong") if name in bad_checksum else sha256_hex(data),
                "fileSize": len(data),
                "version": "1.0",
                "required": True,
            }
        )
    stub.routes["/api/mods/manifest"] = [{key: entries, "version": "3", "lastUpdated": "2024-01-01"}]


@pytest.fixture
def synchronizer(http, downloader, paths):
    return ArtifactSynchronizer(http, downloader, paths)


def stages(events):
    return [e.stage for e in events]


@pytest.mark.asyncio
async def test_fresh_install(stub, synchronizer, paths):
    serve_manifest(stub, MODS)
    events = []

    outcome = await synchronizer.sync("survival", stub.url("/"), events.append)

    assert outcome
    assert stages(events) == [
        SyncStage.FETCHING_MANIFEST,
        SyncStage.COMPARING_MODS,
        SyncStage.DOWNLOADING_NEW,
        SyncStage.DOWNLOADING_NEW,
        SyncStage.DOWNLOADING_NEW,
        SyncStage.VERIFYING_INTEGRITY,
        SyncStage.COMPLETE,
    ]
    assert events[1].total_units == 3
    assert [e.processed_units for e in events[2:5]] == [1, 2, 3]
    percents = [e.percent for e in events[1:]]
    assert percents == sorted(percents)
    assert events[-1].percent == 100
    mods_dir = paths.target_artifacts_dir("survival")
    assert sorted(p.name for p in mods_dir.iterdir()) == sorted(MODS)
    assert (mods_dir / "beta.jar").read_bytes() == MODS["beta.jar"]


@pytest.mark.asyncio
async def test_second_run_is_idempotent(stub, synchronizer, paths):
    serve_manifest(stub, MODS)
    base_url = stub.url("/")
    assert await synchronizer.sync("survival", base_url)
    mods_dir = paths.target_artifacts_dir("survival")
    before = {p.name: p.stat().st_mtime_ns for p in mods_dir.iterdir()}
    events = []

    outcome = await synchronizer.sync("survival", base_url, events.append)

    assert outcome
    assert stages(events) == [
        SyncStage.FETCHING_MANIFEST,
        SyncStage.COMPARING_MODS,
        SyncStage.VERIFYING_INTEGRITY,
        SyncStage.COMPLETE,
    ]
    assert events[-1].total_units == 0
    assert events[-1].processed_units == 0
    assert {p.name: p.stat().st_mtime_ns for p in mods_dir.iterdir()} == before
    assert all(stub.hits[f"/files/{name}"] == 1 for name in MODS)


@pytest.mark.asyncio
async def test_obsolete_artifact_is_removed(stub, synchronizer, paths):
    files = {k: MODS[k] for k in ("alpha.jar", "beta.jar")}
    serve_manifest(stub, files)
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    (mods_dir / "old.jar").write_bytes(b"old")
    events = []

    outcome = await synchronizer.sync("survival", stub.url("/"), events.append)

    assert outcome
    deleting = [e for e in events if e.stage is SyncStage.DELETING_OBSOLETE]
    assert [e.current_label for e in deleting] == ["old.jar"]
    assert stages(events).index(SyncStage.DELETING_OBSOLETE) < stages(events).index(
        SyncStage.DOWNLOADING_NEW
    )
    assert sorted(p.name for p in mods_dir.iterdir()) == ["alpha.jar", "beta.jar"]


@pytest.mark.asyncio
async def test_corrupted_artifact_is_updated(stub, synchronizer, paths):
    serve_manifest(stub, MODS)
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    for name, data in MODS.items():
        (mods_dir / name).write_bytes(data)
    (mods_dir / "gamma.jar").write_bytes(b"tampered")
    events = []

    outcome = await synchronizer.sync("survival", stub.url("/"), events.append)

    assert outcome
    assert stages(events).count(SyncStage.DOWNLOADING_UPDATES) == 1
    assert SyncStage.DOWNLOADING_NEW not in stages(events)
    assert (mods_dir / "gamma.jar").read_bytes() == MODS["gamma.jar"]
    assert stub.hits["/files/alpha.jar"] == 0


@pytest.mark.asyncio
async def test_checksum_failure_aborts_sync(stub, synchronizer, paths):
    serve_manifest(stub, MODS, bad_checksum=("beta.jar",))
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    (mods_dir / "old.jar").write_bytes(b"old")
    events = []

    outcome = await synchronizer.sync("survival", stub.url("/"), events.append)

    assert not outcome
    assert outcome.error is ErrorKind.INTEGRITY
    assert not (mods_dir / "beta.jar").exists()
    assert not (mods_dir / "old.jar").exists()
    assert (mods_dir / "alpha.jar").exists()
    assert stub.hits["/files/gamma.jar"] == 0
    assert SyncStage.COMPLETE not in stages(events)


@pytest.mark.asyncio
async def test_failed_download_aborts_sync(stub, synchronizer, paths):
    serve_manifest(stub, MODS)
    stub.routes["/files/alpha.jar"] = [404]

    outcome = await synchronizer.sync("survival", stub.url("/"))

    assert not outcome
    assert synchronizer.list_installed("survival") == []


@pytest.mark.asyncio
async def test_unreachable_manifest_changes_nothing(stub, synchronizer, paths):
    stub.routes["/api/mods/manifest"] = [404]
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    (mods_dir / "keep.jar").write_bytes(b"keep")
    events = []

    outcome = await synchronizer.sync("survival", stub.url("/"), events.append)

    assert outcome.error is ErrorKind.NETWORK
    assert stages(events) == [SyncStage.FETCHING_MANIFEST]
    assert (mods_dir / "keep.jar").exists()


@pytest.mark.asyncio
async def test_legacy_manifest_and_trailing_slash(stub, synchronizer):
    serve_manifest(stub, {"alpha.jar": MODS["alpha.jar"]}, key="mods")

    manifest = await synchronizer.fetch_manifest(stub.url("/") + "/")

    assert manifest.file_names == ["alpha.jar"]
    assert manifest.artifacts[0].size == len(MODS["alpha.jar"])
    assert manifest.version == "3"


@pytest.mark.asyncio
async def test_unsafe_file_name_rejects_manifest(stub, synchronizer):
    stub.routes["/api/mods/manifest"] = [
        {"artifacts": [{"fileName": "../evil.jar", "downloadUrl": "http://x/e", "checksum": "ab"}]}
    ]

    assert await synchronizer.fetch_manifest(stub.url("/")) is None


@pytest.mark.asyncio
async def test_part_files_are_not_installed(synchronizer, paths):
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    (mods_dir / "alpha.jar").write_bytes(b"a")
    (mods_dir / "beta.jar.part").write_bytes(b"partial")
    (mods_dir / "config").mkdir()

    assert synchronizer.list_installed("survival") == ["alpha.jar"]
    assert synchronizer.list_installed("other") == []


@pytest.mark.asyncio
async def test_delete_is_idempotent(synchronizer, paths):
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    (mods_dir / "old.jar").write_bytes(b"old")

    assert await synchronizer.delete_artifact("survival", "old.jar")
    assert await synchronizer.delete_artifact("survival", "old.jar")
    assert not (mods_dir / "old.jar").exists()


@pytest.mark.asyncio
async def test_download_artifact_verifies_checksum(stub, synchronizer, paths):
    record = ArtifactRecord(
        file_name="alpha.jar",
        download_url=stub.add("/files/alpha.jar", MODS["alpha.jar"]),
        checksum=sha256_hex(b"something else"),
    )

    assert not await synchronizer.download_artifact(record, "survival")
    assert not (paths.target_artifacts_dir("survival") / "alpha.jar").exists()


@pytest.mark.asyncio
async def test_progress_stream_delivers_events(stub, synchronizer):
    serve_manifest(stub, MODS)
    stream = ProgressStream()

    task = stream.attach(
        asyncio.ensure_future(synchronizer.sync("survival", stub.url("/"), stream))
    )
    received = [event async for event in stream]

    assert (await task).ok
    assert received[-1].stage is SyncStage.COMPLETE


@pytest.mark.asyncio
async def test_empty_identifiers_are_rejected(synchronizer):
    with pytest.raises(ValidationError):
        await synchronizer.sync("", "http://localhost")
    with pytest.raises(ValidationError):
        await synchronizer.sync("survival", "  ")


@pytest.mark.asyncio
async def test_failed_update_removes_corrupt_file(stub, synchronizer, paths):
    serve_manifest(stub, MODS)
    stub.routes["/files/gamma.jar"] = [404]
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    for name, data in MODS.items():
        (mods_dir / name).write_bytes(data)
    (mods_dir / "gamma.jar").write_bytes(b"tampered")

    outcome = await synchronizer.sync("survival", stub.url("/"))

    assert not outcome
    assert outcome.error is ErrorKind.INTEGRITY
    assert not (mods_dir / "gamma.jar").exists()
    assert (mods_dir / "alpha.jar").read_bytes() == MODS["alpha.jar"]


@pytest.mark.asyncio
async def test_update_failing_verification_removes_file(stub, synchronizer, paths):
    serve_manifest(stub, MODS, bad_checksum=("gamma.jar",))
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    for name, data in MODS.items():
        (mods_dir / name).write_bytes(data)
    (mods_dir / "gamma.jar").write_bytes(b"tampered")
    events = []

    outcome = await synchronizer.sync("survival", stub.url("/"), events.append)

    assert not outcome
    assert outcome.error is ErrorKind.INTEGRITY
    assert stub.hits["/files/gamma.jar"] == 1
    assert not (mods_dir / "gamma.jar").exists()
    assert SyncStage.COMPLETE not in stages(events)


@pytest.mark.asyncio
async def test_empty_manifest_skips_integrity_stage(stub, synchronizer, paths):
    serve_manifest(stub, {})
    mods_dir = paths.target_artifacts_dir("survival")
    mods_dir.mkdir(parents=True)
    (mods_dir / "old.jar").write_bytes(b"old")
    events = []

    outcome = await synchronizer.sync("survival", stub.url("/"), events.append)

    assert outcome
    assert stages(events) == [
        SyncStage.FETCHING_MANIFEST,
        SyncStage.COMPARING_MODS,
        SyncStage.DELETING_OBSOLETE,
        SyncStage.COMPLETE,
    ]
    assert synchronizer.list_installed("survival") == []
