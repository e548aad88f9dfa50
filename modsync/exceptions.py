"""
ModSync 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional

import aiohttp


class ModSyncError(Exception):
    """ModSync 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(ModSyncError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(ModSyncError):
    """HTTP 请求相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        self.status: Optional[int] = None
        if response is not None:
            self.status = response.status
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"

    @classmethod
    def from_response(cls, response: aiohttp.ClientResponse) -> "APIError":
        """按状态码选择合适的异常子类"""
        status = response.status
        if status == 404:
            error_cls = APINotFoundError
        elif status == 429:
            error_cls = APIRateLimitError
        elif status >= 500:
            error_cls = APIServerError
        else:
            error_cls = APIError
        return error_cls(
            f"HTTP 请求失败 (状态码: {status}, URL: {response.url})",
            response=response,
        )


class APINotFoundError(APIError):
    """资源不存在"""

    def _get_default_code(self) -> str:
        return "E404"


class APIRateLimitError(APIError):
    """速率限制"""

    def _get_default_code(self) -> str:
        return "E429"


class APIServerError(APIError):
    """服务器错误"""

    def _get_default_code(self) -> str:
        return "E500"


class ValidationError(ModSyncError):
    """参数验证错误（必填标识为空等）"""

    def _get_default_code(self) -> str:
        return "E501"


class ManifestError(ModSyncError):
    """清单（版本清单 / 模组清单）解析错误"""

    def _get_default_code(self) -> str:
        return "E600"


def require(value: Optional[str], name: str) -> str:
    """校验必填标识，为空时立即拒绝"""
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} 不能为空", context={"field": name})
    return value


__all__ = [
    # 基础异常
    "ModSyncError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # HTTP 异常
    "APIError",
    "APINotFoundError",
    "APIRateLimitError",
    "APIServerError",
    # 其他
    "ValidationError",
    "ManifestError",
    "require",
]
