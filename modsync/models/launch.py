"""
启动数据模型
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional


@dataclass
class LaunchPlan:
    """
    一次启动所需的完整命令。

    classpath 中客户端 jar 排在首位，其后按清单顺序排列各运行库。
    """

    java_path: str
    classpath: List[Path]
    natives_dir: Path
    jvm_args: List[str]
    main_class: str
    game_args: List[str]
    working_dir: Path

    def command(self) -> List[str]:
        """组装完整的进程参数"""
        return [self.java_path, *self.jvm_args, self.main_class, *self.game_args]

    def command_line(self) -> str:
        """便于日志记录的命令行字符串"""
        return " ".join(
            f'"{arg}"' if " " in arg else arg for arg in self.command()
        )


@dataclass
class LaunchResult:
    """启动结果"""

    success: bool
    handle: Optional[Any] = None
    error_message: Optional[str] = None
    command_line: Optional[str] = None


@dataclass
class NativesReport:
    """natives 解压统计"""

    natives_dir: Path
    candidates: int = 0
    extracted: List[str] = field(default_factory=list)
    reused: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.extracted and not self.reused
