"""
ModSync - Minecraft 版本安装、模组同步与启动引擎
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
