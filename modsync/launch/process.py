"""
游戏进程管理

启动游戏进程，并在需要时终止整个进程树（先子进程后根进程）。
进程树的枚举与终止通过 ProcessTree 接口完成，按平台选择实现。
"""

import asyncio
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

import psutil
from loguru import logger as default_logger

from modsync.models import LaunchPlan

CHILD_WAIT_TIMEOUT = 2.0
ROOT_WAIT_TIMEOUT = 5.0


class ProcessTree(ABC):
    """进程树操作接口；失败时抛出 OSError"""

    @abstractmethod
    def children(self, pid: int) -> List[int]:
        """直接子进程"""
        pass

    @abstractmethod
    def kill(self, pid: int) -> None:
        pass

    def wait(self, pids: Iterable[int], timeout: float) -> None:
        """等待进程退出，超时不报错"""
        procs = []
        for pid in pids:
            try:
                procs.append(psutil.Process(pid))
            except psutil.NoSuchProcess:
                continue
        if procs:
            psutil.wait_procs(procs, timeout=timeout)


def _translate(pid: int, error: psutil.Error) -> OSError:
    if isinstance(error, psutil.NoSuchProcess):
        return ProcessLookupError(f"进程 {pid} 不存在")
    if isinstance(error, psutil.AccessDenied):
        return PermissionError(f"无权操作进程 {pid}")
    return OSError(f"进程 {pid}: {error}")


class PosixProcessTree(ProcessTree):
    """Linux / macOS：通过 psutil 的父子关系枚举，发送 SIGKILL"""

    def children(self, pid: int) -> List[int]:
        try:
            return [child.pid for child in psutil.Process(pid).children()]
        except psutil.Error as e:
            raise _translate(pid, e)

    def kill(self, pid: int) -> None:
        try:
            psutil.Process(pid).kill()
        except psutil.Error as e:
            raise _translate(pid, e)


class WindowsProcessTree(ProcessTree):
    """
    Windows：按 ppid 快照枚举子进程。

    Windows 会复用 pid，子进程的创建时间早于父进程时视为无关进程。
    """

    def children(self, pid: int) -> List[int]:
        try:
            parent_created = psutil.Process(pid).create_time()
        except psutil.Error as e:
            raise _translate(pid, e)

        result = []
        for proc in psutil.process_iter(["pid", "ppid", "create_time"]):
            info = proc.info
            if info.get("ppid") != pid or info.get("pid") == pid:
                continue
            if (info.get("create_time") or 0) < parent_created:
                continue
            result.append(info["pid"])
        return result

    def kill(self, pid: int) -> None:
        try:
            psutil.Process(pid).terminate()
        except psutil.Error as e:
            raise _translate(pid, e)


def default_process_tree() -> ProcessTree:
    """按当前平台选择进程树实现"""
    if sys.platform.startswith("win"):
        return WindowsProcessTree()
    return PosixProcessTree()


@dataclass
class ProcessHandle:
    """已启动的游戏进程"""

    process: asyncio.subprocess.Process
    command_line: str = ""
    disposed: bool = field(default=False, init=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def running(self) -> bool:
        return not self.disposed and self.process.returncode is None

    async def wait(self) -> int:
        return await self.process.wait()


class ProcessSupervisor:
    """游戏进程管理器"""

    def __init__(self, tree: Optional[ProcessTree] = None, logger=None):
        self.tree = tree or default_process_tree()
        self.logger = logger or default_logger

    async def start(self, plan: LaunchPlan) -> Optional[ProcessHandle]:
        """
        启动进程

        Args:
            plan: 启动计划

        Returns:
            ProcessHandle 或 None（启动失败，不重试）
        """
        try:
            plan.working_dir.mkdir(parents=True, exist_ok=True)
            process = await asyncio.create_subprocess_exec(
                *plan.command(), cwd=str(plan.working_dir)
            )
        except OSError as e:
            self.logger.error(f"[进程] 启动失败 ({plan.java_path}): {e}")
            return None

        self.logger.success(f"[进程] 游戏已启动 (PID {process.pid})")
        return ProcessHandle(process=process, command_line=plan.command_line())

    def _leaves_first(self, pid: int, seen: Set[int]) -> List[int]:
        """后序遍历：子孙在前，自身在后"""
        order: List[int] = []
        try:
            children = self.tree.children(pid)
        except OSError as e:
            self.logger.debug(f"[进程] 无法枚举 {pid} 的子进程: {e}")
            children = []

        for child in children:
            if child in seen:
                continue
            seen.add(child)
            order.extend(self._leaves_first(child, seen))
        order.append(pid)
        return order

    async def kill(self, handle: Optional[ProcessHandle]) -> None:
        """终止进程树，单个进程失败不影响其他进程"""
        if handle is None or handle.disposed:
            return

        if handle.returncode is not None:
            self.logger.info(f"[进程] 进程 {handle.pid} 已退出 ({handle.returncode})")
            handle.disposed = True
            return

        order = self._leaves_first(handle.pid, {handle.pid})
        self.logger.info(f"[进程] 终止进程树 {handle.pid}，共 {len(order)} 个进程")

        for pid in order:
            try:
                self.tree.kill(pid)
                self.logger.debug(f"[进程] 已终止 {pid}")
            except OSError as e:
                self.logger.warning(f"[进程] 终止 {pid} 失败: {e}")

        children = order[:-1]
        if children:
            await asyncio.to_thread(self.tree.wait, children, CHILD_WAIT_TIMEOUT)

        try:
            await asyncio.wait_for(handle.wait(), ROOT_WAIT_TIMEOUT)
        except asyncio.TimeoutError:
            self.logger.warning(f"[进程] 等待 {handle.pid} 退出超时")

        handle.disposed = True
