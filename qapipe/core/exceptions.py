"""统一异常体系

所有业务异常继承 QAPipeError，替代散落的 ValueError / RuntimeError。
CLI 层可据此输出友好提示并映射退出码。

分类:
  - ValidationError: 前置条件失败（必填字段缺失），在任何副作用之前抛出
  - ExecutionError:  外部命令非零退出，携带退出码
  - StateError:      流水线未初始化即调用阶段方法
  - ConfigError:     全局配置缺失或无效
"""

from __future__ import annotations


class QAPipeError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(QAPipeError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ValidationError(QAPipeError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ExecutionError(QAPipeError):
    """外部命令执行失败"""

    code = "EXECUTION_ERROR"

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class StateError(QAPipeError):
    """流水线状态未初始化"""

    code = "STATE_ERROR"


def require_fields(owner: str, values: dict[str, object]) -> None:
    """校验必填字段，缺失时一次性列出全部缺失项"""
    missing = [k for k, v in values.items() if v in (None, "", [], {})]
    if missing:
        raise ValidationError(
            f"{owner} 缺少必填字段: {', '.join(missing)}", details=missing,
        )
