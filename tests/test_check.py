from __future__ import annotations

from pathlib import Path

from gohtmlx.check import BlockIssue, check_text, check_tree


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_balanced_file_has_no_issues() -> None:
    text = (
        '<!-- * define "imports" -->\n"fmt"\n<!-- * end -->\n'
        '<!-- + define "A" -->\n<!-- | define "html" --><p/><!-- | end -->\n<!-- + end -->\n'
    )
    assert check_text(text) == []


def test_unexpected_end() -> None:
    issues = check_text("<p/>\n<!-- + end -->\n", "a.html")
    assert issues == [BlockIssue("a.html", 2, "unexpected <!-- + end --> (no open block)")]
    assert str(issues[0]) == "a.html:2: unexpected <!-- + end --> (no open block)"


def test_mismatched_end() -> None:
    issues = check_text('<!-- + define "A" -->\n<!-- | end -->\n')
    assert issues[0].line == 2
    assert "does not match open <!-- + define -->" in issues[0].message


def test_unclosed_blocks_reported_at_end_of_file() -> None:
    text = '<!-- + define "A" -->\n<!-- | define "html" -->\n<p/>'
    (issue,) = check_text(text, "a.html")
    assert issue.line == 3
    assert issue.message == "unclosed block(s) <!-- +, | define --> (missing <!-- | end -->)"


def test_check_tree_reports_each_file(tmp_path: Path) -> None:
    _write(tmp_path / "ok.html", '<!-- + define "A" --><!-- + end -->')
    _write(tmp_path / "sub" / "bad.html", "<!-- + end -->")
    _write(tmp_path / "ignored.txt", "<!-- + end -->")
    issues = check_tree(tmp_path)
    assert [Path(i.path).name for i in issues] == ["bad.html"]


def test_check_tree_reports_unreadable_files(tmp_path: Path) -> None:
    (tmp_path / "bin.html").write_bytes(b"\xff\xfe\x00bad")
    (issue,) = check_tree(tmp_path)
    assert issue.line == 0
    assert issue.message.startswith("read:")
