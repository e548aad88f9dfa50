"""
CLI 模块

命令行接口实现。
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import click
import toml
import yaml
from loguru import logger

from modsync import __version__
from modsync.exceptions import ConfigParseError, ModSyncError
from modsync.logger import setup_logger
from modsync.models import LauncherConfig, LoaderKind, ProfileConfig, SyncProgress
from modsync.orchestrator import Launcher
from modsync.paths import LauncherPaths

LOADER_CHOICES = [kind.value for kind in LoaderKind]


def load_config(config_path: str) -> dict:
    """加载配置文件"""
    path = Path(config_path)

    if not path.exists():
        raise click.ClickException(f"配置文件不存在: {config_path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            return toml.load(config_path)
        elif suffix == ".json":
            return json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (toml.TomlDecodeError, yaml.YAMLError, ValueError) as e:
        raise ConfigParseError(f"配置文件解析失败: {e}", context={"path": config_path})
    raise click.ClickException(f"不支持的配置文件格式: {suffix}")


def percent_printer(label: str):
    """在同一行刷新百分比进度"""

    def _print(percent: int) -> None:
        click.echo(f"\r[{label}] {percent:3d}%", nl=False)
        if percent >= 100:
            click.echo()

    return _print


def sync_printer(event: SyncProgress) -> None:
    label = f" {event.current_label}" if event.current_label else ""
    click.echo(
        f"[{event.stage.value}] {event.processed_units}/{event.total_units}{label}"
    )


def run(coro):
    """运行协程，把 ModSync 异常转换为命令行错误"""
    try:
        return asyncio.run(coro)
    except ModSyncError as e:
        logger.error(f"运行失败: {e}")
        raise click.ClickException(str(e))


def get_profile(ctx: click.Context, profile_id: str) -> ProfileConfig:
    profile = ctx.obj["config"].get_profile(profile_id)
    if profile is None:
        raise click.ClickException(f"档案不存在: {profile_id}")
    return profile


def make_launcher(ctx: click.Context) -> Launcher:
    return Launcher(ctx.obj["config"], ctx.obj["paths"])


@click.group()
@click.option(
    "-c", "--config", "config_path", type=click.Path(), help="配置文件 (toml/yaml/json)"
)
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], debug: bool):
    """ModSync - Minecraft 版本安装、模组同步与启动工具"""
    try:
        config = (
            LauncherConfig.from_dict(load_config(config_path))
            if config_path
            else LauncherConfig()
        )
    except ModSyncError as e:
        raise click.ClickException(f"配置错误: {e}")

    paths = LauncherPaths(config.root_dir, config.minecraft_dir)
    setup_logger(level="DEBUG" if debug else None, log_dir=paths.logs_dir)
    ctx.obj = {"config": config, "paths": paths}


@main.command()
@click.option("--installed", is_flag=True, help="只列出已安装的版本")
@click.option("--all", "show_all", is_flag=True, help="包含快照等非正式版本")
@click.pass_context
def versions(ctx: click.Context, installed: bool, show_all: bool):
    """列出游戏版本"""

    async def _run():
        async with make_launcher(ctx) as launcher:
            if installed:
                for version_id in launcher.versions.list_installed():
                    click.echo(version_id)
                return

            manifest = await launcher.versions.fetch_manifest()
            if manifest is None:
                raise click.ClickException("无法获取版本清单")
            for entry in manifest.versions:
                if show_all or entry.type == "release":
                    click.echo(f"{entry.id}\t{entry.type}")

    run(_run())


@main.command()
@click.argument("version")
@click.option(
    "--loader", type=click.Choice(LOADER_CHOICES), default="none", help="加载器"
)
@click.pass_context
def install(ctx: click.Context, version: str, loader: str):
    """安装游戏版本（以及可选的加载器）"""
    kind = LoaderKind.parse(loader)

    async def _run():
        async with make_launcher(ctx) as launcher:
            launcher.paths.ensure_directories()
            outcome = await launcher.versions.install(version, percent_printer(version))
            if not outcome:
                raise click.ClickException(f"安装失败 ({outcome.error.value}): {outcome.message}")
            if kind is not LoaderKind.NONE:
                outcome = await launcher.loaders.install(
                    version, kind, percent_printer(kind.value)
                )
                if not outcome:
                    raise click.ClickException(
                        f"加载器安装失败 ({outcome.error.value}): {outcome.message}"
                    )

    run(_run())


@main.command()
@click.argument("version")
@click.option("--loader", type=click.Choice(["forge", "fabric"]), required=True)
@click.pass_context
def loaders(ctx: click.Context, version: str, loader: str):
    """列出可用的加载器版本"""

    async def _run():
        async with make_launcher(ctx) as launcher:
            for loader_version in await launcher.loaders.list_available_versions(
                version, LoaderKind.parse(loader)
            ):
                click.echo(loader_version)

    run(_run())


@main.command()
@click.argument("profile_id")
@click.pass_context
def sync(ctx: click.Context, profile_id: str):
    """同步档案的模组"""
    profile = get_profile(ctx, profile_id)
    if not profile.syncs_mods:
        raise click.ClickException(f"档案 {profile_id} 没有配置 http(s) 模组服务器")

    async def _run():
        async with make_launcher(ctx) as launcher:
            outcome = await launcher.sync(profile, sync_printer)
            if not outcome:
                raise click.ClickException(f"同步失败 ({outcome.error.value}): {outcome.message}")

    run(_run())


@main.command()
@click.argument("profile_id")
@click.pass_context
def prepare(ctx: click.Context, profile_id: str):
    """安装档案所需的版本与加载器"""
    profile = get_profile(ctx, profile_id)

    async def _run():
        async with make_launcher(ctx) as launcher:
            outcome = await launcher.prepare(profile, percent_printer(profile.id))
            if not outcome:
                raise click.ClickException(f"准备失败 ({outcome.error.value}): {outcome.message}")

    run(_run())


@main.command()
@click.argument("profile_id")
@click.option("-u", "--username", required=True, help="玩家名（离线模式）")
@click.option("--wait", is_flag=True, help="等待游戏退出")
@click.pass_context
def launch(ctx: click.Context, profile_id: str, username: str, wait: bool):
    """启动档案"""
    profile = get_profile(ctx, profile_id)

    async def _run():
        async with make_launcher(ctx) as launcher:
            result = await launcher.launch(profile, username, sync_printer)
            if not result.success:
                raise click.ClickException(result.error_message or "启动失败")
            click.echo(f"PID {result.handle.pid}")
            if wait:
                try:
                    code = await result.handle.wait()
                except asyncio.CancelledError:
                    await launcher.kill()
                    raise
                click.echo(f"游戏已退出 ({code})")

    run(_run())


if __name__ == "__main__":
    main()
