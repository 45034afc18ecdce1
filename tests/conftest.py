import io
import subprocess

import docx
import fitz
import pytest
from langchain_core.runnables import Runnable


class FakeLLM(Runnable):
    """Returns canned replies in order and records every prompt it received."""

    def __init__(self, *replies, **kwargs):
        self.replies = list(replies) or ["\\documentclass{article}\n\\end{document}"]
        self.prompts = []

    def invoke(self, prompt, config=None, **kwargs):
        self.prompts.append(prompt.to_string() if hasattr(prompt, "to_string") else str(prompt))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply

        class Msg:
            content = reply

        return Msg()


class FakeOCR:
    def __init__(self, text="ocr text"):
        self.text = text
        self.calls = 0

    def extract_text_from_image(self, image_data):
        self.calls += 1
        return self.text


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep temp files and the LLM audit log inside the test's tmp dir."""
    tmp_dir = tmp_path / "cheatsheet_tmp"
    tmp_dir.mkdir()
    monkeypatch.setenv("CHEATSHEET_TMP_DIR", str(tmp_dir))
    monkeypatch.setenv("LLM_LOG_PATH", str(tmp_path / "llm_log.jsonl"))
    return tmp_dir


@pytest.fixture
def temp_dir(isolated_dirs):
    return isolated_dirs


@pytest.fixture
def make_pdf():
    def _make(*page_texts):
        pdf = fitz.open()
        for text in page_texts:
            page = pdf.new_page()
            if text:
                page.insert_text((72, 72), text)
        data = pdf.tobytes()
        pdf.close()
        return data

    return _make


@pytest.fixture
def make_docx():
    def _make(*paragraphs):
        document = docx.Document()
        for paragraph in paragraphs:
            document.add_paragraph(paragraph)
        buf = io.BytesIO()
        document.save(buf)
        return buf.getvalue()

    return _make


@pytest.fixture
def fake_engine(monkeypatch):
    """Replace the LaTeX engine subprocess with a stub that writes a PDF."""
    import CheatSheetModule.latex_compiler as lc

    state = {
        "calls": [],
        "returncode": 0,
        "stderr": b"",
        "stdout": b"transcript",
        "write_pdf": True,
    }

    def fake_run(command, cwd=None, **kwargs):
        state["calls"].append(command)
        tex_path = command[-1]
        if state["write_pdf"] and state["returncode"] == 0:
            with open(tex_path[:-4] + ".pdf", "wb") as f:
                f.write(b"%PDF-1.5 fake")
            with open(tex_path[:-4] + ".aux", "w") as f:
                f.write("aux")
        return subprocess.CompletedProcess(
            command, state["returncode"], stdout=state["stdout"], stderr=state["stderr"]
        )

    monkeypatch.setattr(lc.subprocess, "run", fake_run)
    return state
