#!/usr/bin/env python3
"""
End-to-end tests for verify_mdx: per-document verification, discovery,
batch runs and the command-line entry point.
"""

import pytest
from diagnostics import ErrorType
from verify_config import VerifyConfig
from verify_mdx import discover_files, main, verify_files, verify_mdx

FRONTMATTER = "---\ntitle: Test\nfreshnessValidatedDate: never\n---\n\n"

VALID_STEPS = FRONTMATTER + "<Steps>\n<Step>\nOne\n</Step>\n<Step>\nTwo\n</Step>\n</Steps>\n"

INVALID_STEPS = FRONTMATTER + "<Steps>\nSome stray text\n<Step>\nOne\n</Step>\n</Steps>\n"


def write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return path


@pytest.fixture
def docs(tmp_path):
    return tmp_path / "docs"


# ============================================================================
# Single Document Tests
# ============================================================================

def test_valid_document(docs):
    page = write(docs / "page.mdx", VALID_STEPS)
    result = verify_mdx(page)

    assert result.ok
    assert result.file_path == str(page)


def test_structural_error(docs):
    page = write(docs / "page.mdx", INVALID_STEPS)
    result = verify_mdx(page)

    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.kind == ErrorType.VALIDATION_ERROR
    assert (error.line, error.column) == (7, 1)
    assert error.file_path == str(page)
    assert error.reason == (
        '<Steps> component must only contain <Step> components as immediate children '
        'but found "Some stray text"'
    )


def test_parse_failure_replaces_structural_checks(docs):
    page = write(docs / "page.mdx", FRONTMATTER + "<Steps>\n<Step>\n</Steps>\n")
    result = verify_mdx(page)

    assert len(result.errors) == 1
    assert result.errors[0].kind == ErrorType.MDX_ERROR
    assert result.errors[0].line == 8


def test_missing_freshness_date(docs):
    page = write(docs / "page.mdx", "# Page\n")
    result = verify_mdx(page)

    assert [error.kind for error in result.errors] == [ErrorType.FRONTMATTER_FIELD_ERROR]
    assert result.errors[0].line is None


def test_malformed_frontmatter_reported_once(docs):
    page = write(docs / "page.mdx", "---\ntitle: a: b\n---\n\n# Page\n")
    result = verify_mdx(page)

    assert [error.kind for error in result.errors] == [ErrorType.FRONTMATTER_ERROR]
    assert result.errors[0].snippet


def test_release_notes_require_release_date(tmp_path):
    page = write(
        tmp_path / "src/content/docs/release-notes/agent-release-notes/java/java-8-1-0.mdx",
        "---\ntitle: Java agent v8.1.0\n---\n\nNotes\n",
    )
    result = verify_mdx(page)

    # Release notes are exempt from the freshness check
    assert [error.reason for error in result.errors] == ["Missing required frontmatter field: releaseDate"]


def test_freshness_max_age_from_config(docs):
    page = write(docs / "page.mdx", "---\nfreshnessValidatedDate: 2001-01-01\n---\n")
    result = verify_mdx(page, VerifyConfig(freshness_max_age_days=365))

    assert len(result.errors) == 1
    assert "older than 365 days" in result.errors[0].reason


# ============================================================================
# Discovery and Batch Tests
# ============================================================================

def test_discover_files(docs):
    write(docs / "b.mdx", VALID_STEPS)
    write(docs / "a.md", VALID_STEPS)
    write(docs / "nested/c.mdx", VALID_STEPS)
    write(docs / "notes.txt", "not a document")
    write(docs / "node_modules/pkg/readme.md", "# Vendored")

    found = discover_files([docs], VerifyConfig())

    assert found == [docs / "a.md", docs / "b.mdx", docs / "nested/c.mdx"]


def test_discover_files_explicit_file_and_missing_path(docs):
    page = write(docs / "page.mdx", VALID_STEPS)
    assert discover_files([page, docs / "missing"], VerifyConfig()) == [page]


def test_verify_files_preserves_order(docs):
    pages = [
        write(docs / "1.mdx", INVALID_STEPS),
        write(docs / "2.mdx", VALID_STEPS),
        write(docs / "3.mdx", INVALID_STEPS),
    ]
    results = verify_files(pages, VerifyConfig(), jobs=2)

    assert [result.file_path for result in results] == [str(page) for page in pages]
    assert [result.ok for result in results] == [False, True, False]


def test_undecodable_bytes_do_not_stop_batch(docs):
    bad = docs / "bad.mdx"
    bad.parent.mkdir(parents=True, exist_ok=True)
    bad.write_bytes(INVALID_STEPS.encode("utf-8") + b"\n\xff\xfe\n")
    good = write(docs / "good.mdx", VALID_STEPS)

    results = verify_files([bad, good], VerifyConfig())

    assert [result.file_path for result in results] == [str(bad), str(good)]
    assert [error.line for error in results[0].errors] == [7]
    assert results[1].ok


def test_undecodable_bytes_in_image_check(tmp_path, docs, monkeypatch):
    page = docs / "page.mdx"
    page.parent.mkdir(parents=True, exist_ok=True)
    page.write_bytes(VALID_STEPS.encode("utf-8") + b"\xff\n")
    monkeypatch.chdir(tmp_path)

    assert main([str(docs)]) == 0


# ============================================================================
# Command Line Tests
# ============================================================================

def test_main_passes(tmp_path, docs, monkeypatch, capsys):
    write(docs / "page.mdx", VALID_STEPS)
    monkeypatch.chdir(tmp_path)

    assert main([str(docs)]) == 0
    assert "MDX verification passed: 1 documents" in capsys.readouterr().out


def test_main_fails(tmp_path, docs, monkeypatch, capsys):
    write(docs / "good.mdx", VALID_STEPS)
    write(docs / "bad.mdx", INVALID_STEPS)
    monkeypatch.chdir(tmp_path)

    assert main([str(docs), "--skip-images"]) == 1
    captured = capsys.readouterr()
    assert "1 error(s) in 1 of 2 documents" in captured.out
    assert "[VALIDATION_ERROR]" in captured.err


def test_main_counts_image_errors(tmp_path, docs, monkeypatch):
    write(docs / "page.mdx", FRONTMATTER + "import shot from './shot.png'\n\n<img src={shot} />\n")
    monkeypatch.chdir(tmp_path)

    assert main([str(docs)]) == 1
    assert main([str(docs), "--skip-images"]) == 0


def test_main_config_error(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    assert main(["--config", "missing.yml"]) == 2
    assert "[ERROR]" in capsys.readouterr().err
