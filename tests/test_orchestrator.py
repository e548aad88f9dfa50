import json

import pytest

from modsync.models import EndpointsConfig, LauncherConfig, LoaderKind, ProfileConfig
from modsync.orchestrator import LAST_LAUNCH_FILE, Launcher
from tests.helpers import sha1_hex

pytest_plugins = ("pytest_asyncio",)


def make_config(tmp_path, stub=None, java_path="java"):
    endpoints = EndpointsConfig()
    if stub is not None:
        endpoints = EndpointsConfig(version_manifest=stub.url("/manifest.json"))
    return LauncherConfig(
        root_dir=str(tmp_path / "root"),
        minecraft_dir=str(tmp_path / "minecraft"),
        java_path=java_path,
        endpoints=endpoints,
    )


def make_profile(**overrides):
    data = {"id": "survival", "minecraft_version": "1.20.1"}
    data.update(overrides)
    return ProfileConfig.from_dict(data)


def install_version(launcher, version_id="1.20.1"):
    directory = launcher.paths.version_dir(version_id)
    directory.mkdir(parents=True)
    (directory / f"{version_id}.json").write_text(
        json.dumps({"id": version_id, "assetIndex": {"id": "5"}, "libraries": []})
    )
    (directory / f"{version_id}.jar").write_bytes(b"client")


@pytest.mark.asyncio
async def test_prepare_installs_version(stub, tmp_path):
    jar = b"client jar"
    detail = {
        "id": "1.20.1",
        "downloads": {"client": {"url": stub.add("/client.jar", jar), "sha1": sha1_hex(jar)}},
    }
    stub.add(
        "/manifest.json",
        {"versions": [{"id": "1.20.1", "type": "release", "url": stub.add("/1.20.1.json", detail)}]},
    )
    progress = []

    async with Launcher(make_config(tmp_path, stub)) as launcher:
        outcome = await launcher.prepare(make_profile(), progress.append)

        assert outcome
        assert launcher.validate_installation("1.20.1")
        assert launcher.paths.logs_dir.is_dir()
    assert progress[-1] == 100
    assert progress == sorted(progress)


@pytest.mark.asyncio
async def test_launch_requires_installed_version(tmp_path):
    async with Launcher(make_config(tmp_path)) as launcher:
        result = await launcher.launch(make_profile(), "Steve")

    assert not result.success
    assert "1.20.1" in result.error_message


@pytest.mark.asyncio
async def test_launch_requires_loader(tmp_path):
    async with Launcher(make_config(tmp_path)) as launcher:
        install_version(launcher)
        result = await launcher.launch(make_profile(loader="fabric"), "Steve")

    assert not result.success
    assert "fabric" in result.error_message


@pytest.mark.asyncio
async def test_sync_failure_does_not_block_launch(stub, tmp_path):
    stub.add("/api/mods/manifest", 500)
    config = make_config(tmp_path, java_path=str(tmp_path / "missing-java"))
    profile = make_profile(mod_server_url=stub.url("/"), server_address="mc.example.com:25570")

    async with Launcher(config) as launcher:
        install_version(launcher)
        result = await launcher.launch(profile, "Steve")
        recorded = (launcher.paths.logs_dir / LAST_LAUNCH_FILE).read_text(encoding="utf-8")

    assert stub.hits["/api/mods/manifest"] == 1
    assert not result.success
    assert result.error_message == "游戏进程启动失败"
    assert result.command_line.strip() == recorded.strip()
    assert "--port 25570" in recorded
    assert str(tmp_path / "root" / "profiles" / "survival") in recorded


@pytest.mark.asyncio
async def test_sync_is_skipped_without_mod_server(tmp_path):
    async with Launcher(make_config(tmp_path)) as launcher:
        outcome = await launcher.sync(make_profile())

    assert outcome
    assert outcome.message == "no mod server"


@pytest.mark.asyncio
async def test_kill_without_process_is_noop(tmp_path):
    async with Launcher(make_config(tmp_path)) as launcher:
        await launcher.kill()

        assert launcher.handle is None


def test_profile_loader_parse():
    assert make_profile(loader="FABRIC").loader is LoaderKind.FABRIC


@pytest.mark.asyncio
async def test_loader_scratch_files_live_in_cache(tmp_path):
    async with Launcher(make_config(tmp_path)) as launcher:
        assert launcher.loaders.scratch_dir == launcher.paths.cache_dir
        launcher.paths.ensure_directories()

        assert launcher.paths.cache_dir.is_dir()
