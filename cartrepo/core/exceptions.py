"""统一异常体系

所有业务异常继承 CartRepoError，替代散落的 ValueError / KeyError / RuntimeError。
CLI 层可据此输出友好提示；每个异常都携带足够的结构化上下文
（期望/实际校验和、失败的结构检查项、请求的完整 key），调用方无需二次推导。
"""

from __future__ import annotations


class CartRepoError(Exception):
    """cartrepo 基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(CartRepoError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class InvalidArgumentError(CartRepoError, ValueError):
    """参数无效：路径非法、缺少 manifest、安装源等于仓库根目录等"""

    code = "INVALID_ARGUMENT"


class ManifestParseError(CartRepoError):
    """manifest.yml 语法或结构无效"""

    code = "MANIFEST_ERROR"


class CartridgeNotFoundError(CartRepoError, KeyError):
    """索引中不存在请求的 (name, version, cartridge_version)"""

    code = "NOT_FOUND"

    def __init__(
        self, name: str, version: str | None = None,
        cartridge_version: str | None = None,
    ) -> None:
        super().__init__(
            f"key not found: ({name}, {version}, {cartridge_version})"
        )
        self.name = name
        self.version = version
        self.cartridge_version = cartridge_version

    @property
    def key(self) -> tuple[str, str | None, str | None]:
        return self.name, self.version, self.cartridge_version

    def __str__(self) -> str:
        # KeyError 默认会给消息加引号
        return str(self.args[0])


class IntegrityError(CartRepoError):
    """下载内容校验和不匹配"""

    code = "INTEGRITY_ERROR"

    def __init__(self, url: str, expected: str, actual: str) -> None:
        super().__init__(
            f"下载 cartridge 失败，校验和不匹配: {url} "
            f"期望 {expected}, 实际 {actual}"
        )
        self.url = url
        self.expected = expected
        self.actual = actual


class UnsupportedSourceError(CartRepoError):
    """不支持的 cartridge 来源 URL"""

    code = "UNSUPPORTED_SOURCE"

    def __init__(self, url: str) -> None:
        super().__init__(f"不支持的 cartridge 下载地址: {url}")
        self.url = url


class ExecutionError(CartRepoError):
    """外部命令返回了非预期的退出码"""

    code = "EXECUTION_ERROR"

    def __init__(
        self, message: str, returncode: int | None = None, stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class CommandTimeoutError(CartRepoError, TimeoutError):
    """外部命令超时（进程已被终止）"""

    code = "TIMEOUT"

    def __init__(self, message: str, timeout: float | None = None) -> None:
        super().__init__(message)
        self.timeout = timeout


class DownloadTimeoutError(CommandTimeoutError):
    """下载超出时间预算"""

    def __init__(self, url: str, timeout: float | None = None) -> None:
        super().__init__(f"下载超时 ({timeout}s): {url}", timeout=timeout)
        self.url = url


class MalformedCartridgeError(CartRepoError):
    """实例化后的 cartridge 目录结构不合法

    message 只给出概要；details 列出全部失败的检查项。
    """

    code = "MALFORMED_CARTRIDGE"

    def __init__(
        self,
        message: str,
        details: list[str] | None = None,
        key: tuple[str, str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or []
        self.key = key

    def __str__(self) -> str:
        return f"{super().__str__()}:\n{', '.join(self.details)}"
