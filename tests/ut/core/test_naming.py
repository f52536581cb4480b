"""naming.py 单元测试"""

from __future__ import annotations

from datetime import datetime

import pytest

from qapipe.core.config import Config, NamingConfig
from qapipe.core.exceptions import ValidationError
from qapipe.core.naming import (
    generate_env_file_name,
    generate_multiple_names,
    generate_names,
    generate_report_names,
    generate_ssh_key_names,
    generate_workspace_name,
    sanitize_name,
    validate_name,
)


class TestGenerateNames:
    def test_uses_last_job_segment(self) -> None:
        n = generate_names("folder/my-job", 42, suffix="airgap")
        assert n.container == "my-job42_airgap"
        assert n.image == "rancher-validation-my-job42"

    def test_deterministic(self) -> None:
        assert generate_names("a/b", "7") == generate_names("a/b", "7")

    def test_defaults_for_missing_inputs(self) -> None:
        n = generate_names(None, None)
        assert n.container == "unknown0_test"
        assert n.image == "rancher-validation-unknown0"

    def test_defaults_from_config(self) -> None:
        cfg = Config(naming=NamingConfig(container_suffix="e2e", image_prefix="qa-"))
        n = generate_names("job", 1, config=cfg)
        assert n.container == "job1_e2e"
        assert n.image == "qa-job1"


class TestWorkspaceName:
    def test_full_form(self) -> None:
        name = generate_workspace_name(
            42, suffix="my feature", now=datetime(2024, 1, 2, 3, 4, 5),
        )
        assert name == "jenkins_workspace_42_my-feature_20240102030405"

    def test_without_timestamp(self) -> None:
        assert generate_workspace_name(42, include_timestamp=False) == "jenkins_workspace_42"

    def test_custom_prefix_and_missing_build(self) -> None:
        assert generate_workspace_name(None, prefix="ws", include_timestamp=False) == "ws_unknown"


class TestMultipleNames:
    def test_capped_at_max_count(self) -> None:
        names = generate_multiple_names("folder/job", 3, count=20)
        assert len(names) == 10

    def test_indexed_names(self) -> None:
        names = generate_multiple_names("job", 3, count=2)
        assert [n.container for n in names] == ["job-3-test-1", "job-3-test-2"]
        assert names[0].image == "rancher-validation-job-3-1"


class TestFileNames:
    def test_ssh_key_names(self) -> None:
        assert generate_ssh_key_names() == {"private_key": "id_rsa.pem", "public_key": "id_rsa.pub"}
        assert generate_ssh_key_names("key", "jenkins")["private_key"] == "jenkins.key"

    def test_report_names(self) -> None:
        assert generate_report_names("results", "-smoke") == {
            "xml": "results-smoke.xml", "json": "results-smoke.json",
        }

    def test_env_file_name(self) -> None:
        assert generate_env_file_name() == ".env"
        assert generate_env_file_name("env", "-prod") == "env-prod.env"


class TestSanitize:
    @pytest.mark.parametrize(("raw", "replacement", "expected"), [
        ("my job/name#1", "-", "my-job-name-1"),
        ("  spaced  ", "_", "spaced"),
        ("a//b", "_", "a_b"),
        ("##", "_", "resource"),
        ("a b", "/", "a_b"),
    ])
    def test_sanitize(self, raw: str, replacement: str, expected: str) -> None:
        assert sanitize_name(raw, replacement=replacement) == expected

    def test_result_charset(self) -> None:
        assert validate_name(sanitize_name("weird:name*with?chars"))

    def test_empty_raises(self) -> None:
        with pytest.raises(ValidationError):
            sanitize_name("")


class TestValidateName:
    def test_valid(self) -> None:
        assert validate_name("ok-name_1.2") is True

    def test_invalid_chars(self) -> None:
        with pytest.raises(ValidationError, match="非法字符"):
            validate_name("bad name!")

    def test_reports_all_violations(self) -> None:
        with pytest.raises(ValidationError) as exc:
            validate_name("a" * 256 + "!")
        assert len(exc.value.details) == 2

    def test_min_length(self) -> None:
        with pytest.raises(ValidationError, match="至少"):
            validate_name("ab", min_length=3)
