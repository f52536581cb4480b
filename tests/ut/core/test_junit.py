"""junit.py 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from qapipe.core.exceptions import ValidationError
from qapipe.core.junit import parse_junit

_REPORT = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="validation">
  <testsuite name="provisioning" tests="4">
    <testcase classname="prov" name="TestCreate" time="1.5"/>
    <testcase classname="prov" name="TestUpgrade" time="2">
      <failure message="upgrade timed out">stack</failure>
    </testcase>
    <testcase classname="prov" name="TestDelete" time="bad">
      <skipped message="not supported"/>
    </testcase>
    <testcase classname="prov" name="TestPanic">
      <error>panic: nil map</error>
    </testcase>
  </testsuite>
</testsuites>
"""


def test_parse_testsuites(tmp_path: Path) -> None:
    path = tmp_path / "results.xml"
    path.write_text(_REPORT, encoding="utf-8")
    suite = parse_junit(path)
    assert suite.suite_name == "validation"
    assert (suite.total, suite.passed, suite.failed, suite.errors, suite.skipped) == (4, 1, 1, 1, 1)
    by_name = {r.name: r for r in suite.results}
    assert by_name["TestUpgrade"].message == "upgrade timed out"
    assert by_name["TestPanic"].message == "panic: nil map"
    assert by_name["TestDelete"].duration == 0.0
    assert by_name["TestCreate"].classname == "prov"


def test_parse_single_suite(tmp_path: Path) -> None:
    path = tmp_path / "smoke.xml"
    path.write_text('<testsuite><testcase name="a"/></testsuite>', encoding="utf-8")
    suite = parse_junit(path)
    assert suite.suite_name == "smoke"
    assert suite.success


def test_malformed_report(tmp_path: Path) -> None:
    path = tmp_path / "broken.xml"
    path.write_text("<testsuite>", encoding="utf-8")
    with pytest.raises(ValidationError, match="格式错误"):
        parse_junit(path)
