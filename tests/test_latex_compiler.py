import subprocess

import pytest

import CheatSheetModule.latex_compiler as lc
from CheatSheetModule.errors import CompilationFailed

VALID = (
    "\\documentclass{article}\n"
    "\\begin{document}\n"
    "Hello $x^2$\n"
    "\\end{document}\n"
)
BROKEN = "\\documentclass{article}\n\\begin{document}\n\\undefinedmacro\n\\end{document}\n"


def test_compile_returns_pdf_and_cleans_up(fake_engine, temp_dir):
    pdf = lc.LatexCompiler(engine="pdflatex").compile(VALID, request_id="req1")
    assert pdf == b"%PDF-1.5 fake"
    command = fake_engine["calls"][0]
    assert command[0] == "pdflatex"
    assert "-interaction=nonstopmode" in command
    assert command[-1].endswith("cheatsheet.tex")
    assert any(arg.startswith("-output-directory=") for arg in command)
    assert list(temp_dir.iterdir()) == []


def test_compile_failure_carries_stderr(fake_engine, temp_dir):
    fake_engine["returncode"] = 1
    fake_engine["stderr"] = b"! Undefined control sequence."
    with pytest.raises(CompilationFailed) as excinfo:
        lc.LatexCompiler().compile(BROKEN)
    assert excinfo.value.stderr == "! Undefined control sequence."
    assert excinfo.value.stdout == "transcript"
    assert excinfo.value.returncode == 1
    assert list(temp_dir.iterdir()) == []


def test_compile_without_output_pdf_fails(fake_engine, temp_dir):
    fake_engine["write_pdf"] = False
    with pytest.raises(CompilationFailed, match="no PDF"):
        lc.LatexCompiler().compile(VALID)
    assert list(temp_dir.iterdir()) == []


def test_compile_missing_engine(temp_dir):
    compiler = lc.LatexCompiler(engine="definitely-not-a-tex-engine")
    with pytest.raises(CompilationFailed, match="not installed"):
        compiler.compile(VALID)
    assert list(temp_dir.iterdir()) == []


def test_compile_timeout(monkeypatch, temp_dir):
    def slow_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs.get("timeout"), stderr=b"late")

    monkeypatch.setattr(lc.subprocess, "run", slow_run)
    with pytest.raises(CompilationFailed, match="timed out") as excinfo:
        lc.LatexCompiler(timeout=0.1).compile(VALID)
    assert excinfo.value.stderr == "late"
    assert list(temp_dir.iterdir()) == []


def test_engine_from_environment(monkeypatch):
    monkeypatch.setenv("LATEX_ENGINE", "lualatex")
    monkeypatch.setenv("LATEX_TIMEOUT_SECONDS", "30")
    compiler = lc.LatexCompiler()
    assert compiler.engine == "lualatex"
    assert compiler.timeout == 30.0


requires_pdflatex = pytest.mark.skipif(
    not lc.LatexCompiler.is_available("pdflatex"), reason="pdflatex not installed"
)


@requires_pdflatex
def test_real_pdflatex_compiles(temp_dir):
    pdf = lc.LatexCompiler(engine="pdflatex").compile(VALID)
    assert pdf.startswith(b"%PDF")
    assert list(temp_dir.iterdir()) == []


@requires_pdflatex
def test_real_pdflatex_reports_errors(temp_dir):
    with pytest.raises(CompilationFailed) as excinfo:
        lc.LatexCompiler(engine="pdflatex").compile(BROKEN)
    assert excinfo.value.returncode != 0
    assert "Undefined control sequence" in excinfo.value.stdout
    assert list(temp_dir.iterdir()) == []
