"""airgap 流水线状态

PipelineState 是单次构建的上下文对象: 有序的键值表（解析后的配置）
加上两个类型化的标记。由流水线控制器持有，阶段方法原地修改。

    container_prepared - 镜像/共享卷/SSH 密钥已就绪，不再重复准备
    cleanup_completed  - 资源清理已执行，不再重复清理
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Any


class PipelineState(MutableMapping):
    """有序状态表 + 幂等标记"""

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self.container_prepared = False
        self.cleanup_completed = False

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"PipelineState(keys={list(self._values)}, "
            f"container_prepared={self.container_prepared}, "
            f"cleanup_completed={self.cleanup_completed})"
        )

    def text(self, key: str, default: str = "") -> str:
        """取字符串值，None 视为缺省"""
        value = self._values.get(key)
        return default if value is None else str(value)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self._values)
        data["CONTAINER_PREPARED"] = self.container_prepared
        data["CLEANUP_COMPLETED"] = self.cleanup_completed
        return data
