"""
natives 解压

把当前平台的本地库从运行库 jar 中平铺解压到 <版本目录>/<id>-natives。
"""

import os
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from loguru import logger as default_logger

from modsync.launch.rules import is_library_allowed, library_path
from modsync.models import Library, NativesReport, Platform

PLATFORM_MARKERS: Dict[Platform, Tuple[str, ...]] = {
    Platform.WINDOWS: ("natives-windows",),
    Platform.LINUX: ("natives-linux",),
    Platform.OSX: ("natives-macos", "natives-osx"),
}

PLATFORM_SUFFIXES: Dict[Platform, Tuple[str, ...]] = {
    Platform.WINDOWS: (".dll",),
    Platform.LINUX: (".so",),
    Platform.OSX: (".dylib", ".jnilib"),
}


def is_native_for(library: Library, platform: Platform) -> bool:
    """四段式名称的 classifier 中包含平台标记即为本平台 natives"""
    classifier = (library.classifier or "").lower()
    if not classifier:
        return False
    return any(marker in classifier for marker in PLATFORM_MARKERS.get(platform, ()))


def is_native_file(name: str, platform: Platform) -> bool:
    return name.lower().endswith(PLATFORM_SUFFIXES.get(platform, ()))


def has_natives(directory: Path, platform: Platform) -> bool:
    if not directory.is_dir():
        return False
    return any(
        entry.is_file() and is_native_file(entry.name, platform)
        for entry in directory.iterdir()
    )


def native_candidates(
    libraries: Iterable[Library], platform: Platform
) -> List[Library]:
    return [
        lib
        for lib in libraries
        if is_native_for(lib, platform) and is_library_allowed(lib, platform)
    ]


def stage_natives(
    libraries: Iterable[Library],
    libraries_dir: Path,
    natives_dir: Path,
    platform: Platform,
    logger=None,
) -> NativesReport:
    """
    解压 natives

    Args:
        libraries: 版本 JSON 中的运行库（按清单顺序）
        libraries_dir: 运行库根目录
        natives_dir: 解压目标目录
        platform: 目标平台

    Returns:
        NativesReport；目录中已有本平台 natives 时直接复用
    """
    logger = logger or default_logger
    report = NativesReport(natives_dir=natives_dir)

    if has_natives(natives_dir, platform):
        logger.debug(f"[natives] 复用已有目录: {natives_dir}")
        report.reused = True
        return report

    candidates = native_candidates(libraries, platform)
    report.candidates = len(candidates)
    natives_dir.mkdir(parents=True, exist_ok=True)

    for library in candidates:
        jar = library_path(libraries_dir, library, library.classifier)
        if jar is None:
            logger.warning(f"[natives] 找不到 {library.name} 的 jar")
            continue

        try:
            with zipfile.ZipFile(jar) as archive:
                for info in archive.infolist():
                    if info.is_dir():
                        continue
                    name = os.path.basename(info.filename)
                    if not name or not is_native_file(name, platform):
                        continue
                    target = natives_dir / name
                    # 先解压者优先，不覆盖
                    if target.exists():
                        continue
                    with archive.open(info) as src, open(target, "wb") as dst:
                        dst.write(src.read())
                    report.extracted.append(name)
        except (zipfile.BadZipFile, OSError) as e:
            logger.warning(f"[natives] 解压 {jar.name} 失败: {e}")

    if candidates and not report.extracted:
        logger.error(
            f"[natives] {len(candidates)} 个 natives 库都没有解压出文件，游戏很可能无法启动"
        )
    else:
        logger.info(f"[natives] 解压了 {len(report.extracted)} 个本地库到 {natives_dir}")
    return report
