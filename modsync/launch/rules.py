"""
运行库规则判定与路径解析
"""

import sys
from pathlib import Path
from typing import Iterable, Optional

from modsync.models import Action, Library, Platform, Rule


def evaluate_rules(rules: Optional[Iterable[Rule]], platform: Platform) -> bool:
    """
    判定规则列表是否允许当前平台

    没有规则时允许；否则按顺序检查，不限平台或平台相同的规则视为匹配，
    最后一条匹配规则的动作决定结果。无法识别的平台名永不匹配。
    """
    if not rules:
        return True

    allowed = True
    for rule in rules:
        if rule.platform is Platform.UNKNOWN:
            continue
        if rule.platform is None or rule.platform == platform:
            allowed = rule.action is Action.ALLOW
    return allowed


def is_library_allowed(library: Library, platform: Platform) -> bool:
    return evaluate_rules(library.rules, platform)


def arch_bits() -> str:
    return "64" if sys.maxsize > 2**32 else "32"


def derived_library_path(
    libraries_dir: Path, library: Library, classifier: Optional[str] = None
) -> Optional[Path]:
    """
    按 maven 约定推导 jar 路径

    group:artifact:version → group/artifact/version/artifact-version[-classifier].jar
    """
    parts = library.parts
    if len(parts) < 3:
        return None

    group, artifact, version = parts[0], parts[1], parts[2]
    file_name = f"{artifact}-{version}"
    if classifier:
        file_name += "-" + classifier.replace("${arch}", arch_bits())
    return (
        libraries_dir.joinpath(*group.split("."))
        / artifact
        / version
        / f"{file_name}.jar"
    )


def library_path(
    libraries_dir: Path, library: Library, classifier: Optional[str] = None
) -> Optional[Path]:
    """优先使用声明的下载路径，其次推导路径；两者都不存在时返回 None"""
    if library.artifact_path:
        declared = libraries_dir / library.artifact_path
        if declared.is_file():
            return declared

    derived = derived_library_path(libraries_dir, library, classifier)
    if derived is not None and derived.is_file():
        return derived
    return None
