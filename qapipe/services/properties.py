"""参数与凭据注入

use_with_properties() 在代码块执行期间把构建参数和凭据叠加到运行时环境，
退出时（包括异常）恢复原环境。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager

from qapipe.core.runtime import BuildRuntime

logger = logging.getLogger(__name__)


def params_to_env(params: Mapping[str, object] | None) -> dict[str, str]:
    """参数转字符串，None 和空白值丢弃"""
    env: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        text = str(value).lower() if isinstance(value, bool) else str(value)
        if text.strip():
            env[key] = text
    return env


@contextmanager
def use_with_properties(
    runtime: BuildRuntime,
    credentials: Iterable[str] = (),
    params: Mapping[str, object] | None = None,
) -> Iterator[dict[str, str]]:
    """叠加参数与凭据到 runtime.env，yield 叠加后的环境

    凭据解析失败（ConfigError）在修改环境之前抛出。
    """
    overlay = params_to_env(params)
    creds = list(credentials)
    if creds:
        overlay.update(runtime.credentials(creds))

    saved = dict(runtime.env)
    runtime.env.update(overlay)
    logger.debug("注入环境变量: %s", ", ".join(sorted(overlay)))
    try:
        yield runtime.env
    finally:
        runtime.env.clear()
        runtime.env.update(saved)
