"""ArtifactManager 单元测试"""

from __future__ import annotations

import pytest

from qapipe.core.exceptions import ValidationError
from qapipe.services.artifacts import extraction_script


def test_extraction_script_lists_files() -> None:
    script = extraction_script(["kubeconfig.yaml", "deployment-summary.json"])
    assert "for file in kubeconfig.yaml deployment-summary.json; do" in script
    assert script.startswith("set -e")


class TestArtifactManager:
    def test_extract_requires_volume(self, services, executor) -> None:
        with pytest.raises(ValidationError) as exc:
            services.artifacts.extract_from_volume("")
        assert exc.value.details == ["VALIDATION_VOLUME"]
        assert executor.calls == []

    def test_extract(self, services, executor, runtime) -> None:
        assert services.artifacts.extract_from_volume("vol-1") == "artifacts"
        assert (runtime.workspace / "artifacts").is_dir()
        cmd = executor.calls[0].cmd
        assert "vol-1:/source" in cmd
        assert f"{runtime.workspace / 'artifacts'}:/dest" in cmd
        assert "alpine:latest" in cmd
        assert "infrastructure-outputs.json" in cmd[-1]

    def test_archive_empty_list(self, services, runtime) -> None:
        assert services.artifacts.archive_artifacts([]) == []
        assert not runtime.archive_dir.exists()

    def test_archive(self, services, runtime) -> None:
        (runtime.workspace / "artifacts").mkdir()
        (runtime.workspace / "artifacts" / "tofu.log").write_text("log", encoding="utf-8")
        archived = services.artifacts.archive_artifacts(["artifacts/**", "kubeconfig.yaml"])
        assert archived == ["artifacts/tofu.log"]
