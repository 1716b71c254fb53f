"""统一异常体系

所有业务异常继承 YodaError。CLI 层据此输出友好提示并以非零码退出。

注意: 系统包确认失败（缺少必需变量）不是异常，解析器会记录诊断信息后
回退到源码构建路径。
"""

from __future__ import annotations


class YodaError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(YodaError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ArgumentError(YodaError):
    """关键字参数无法识别、重复或互相冲突"""

    code = "ARGUMENT_ERROR"


class MissingArgumentError(ArgumentError):
    """必填参数缺失（包名、构建版本等）"""

    code = "MISSING_ARGUMENT"

    def __init__(self, argument: str) -> None:
        super().__init__(f"缺少必填参数: {argument}")
        self.argument = argument


class DependencyError(YodaError):
    """依赖图错误（循环依赖、未知目标等）"""

    code = "DEPENDENCY_ERROR"


class MissingVariablesError(DependencyError):
    """源码构建注册后仍有必需变量未定义"""

    code = "MISSING_VARIABLES"

    def __init__(self, package: str, missing: list[str]) -> None:
        super().__init__(
            f"依赖包 '{package}' 构建后缺少必需变量: {', '.join(missing)}"
        )
        self.package = package
        self.missing = list(missing)


class ExecutionError(YodaError):
    """外部命令执行失败"""

    code = "EXECUTION_ERROR"
