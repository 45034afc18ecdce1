import logging
import os
import shutil
import subprocess
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from tools.temp_files import scoped_temp_dir

from .errors import CompilationFailed

load_dotenv()
logger = logging.getLogger(__name__)


def _env_timeout() -> Optional[float]:
    raw = os.getenv("LATEX_TIMEOUT_SECONDS")
    return float(raw) if raw else None


class LatexCompiler:
    """Compiles a LaTeX document to PDF with an external engine.

    The engine is treated as an opaque command: it gets a ``.tex`` path and an
    output directory, and either leaves a PDF there or exits nonzero. Every
    compile runs in its own temp directory which is removed afterwards,
    together with the ``.aux``/``.log`` byproducts.
    """

    def __init__(
        self,
        engine: Optional[str] = None,
        extra_args: Sequence[str] = ("-interaction=nonstopmode", "-halt-on-error"),
        timeout: Optional[float] = None,
    ):
        self.engine = engine or os.getenv("LATEX_ENGINE", "pdflatex")
        self.extra_args = list(extra_args)
        self.timeout = timeout if timeout is not None else _env_timeout()

    def build_command(self, tex_path: str, output_dir: str) -> List[str]:
        return [
            self.engine,
            *self.extra_args,
            f"-output-directory={output_dir}",
            tex_path,
        ]

    def compile(self, latex: str, request_id: Optional[str] = None) -> bytes:
        with scoped_temp_dir("cheatsheet", request_id) as workdir:
            tex_path = workdir / "cheatsheet.tex"
            pdf_path = workdir / "cheatsheet.pdf"
            tex_path.write_text(latex, encoding="utf-8")

            command = self.build_command(str(tex_path), str(workdir))
            logger.info("Compiling %s with %s", tex_path.name, self.engine)
            try:
                result = subprocess.run(
                    command,
                    cwd=str(workdir),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=self.timeout,
                )
            except FileNotFoundError as e:
                logger.error("LaTeX engine '%s' not found on PATH", self.engine)
                raise CompilationFailed(
                    f"LaTeX engine '{self.engine}' is not installed", stderr=str(e)
                ) from e
            except subprocess.TimeoutExpired as e:
                raise CompilationFailed(
                    f"LaTeX compilation timed out after {self.timeout}s",
                    stderr=_decode(e.stderr),
                    stdout=_decode(e.stdout),
                ) from e

            stderr = _decode(result.stderr)
            stdout = _decode(result.stdout)
            if result.returncode != 0:
                logger.error(
                    "LaTeX compilation failed with exit code %s: %s",
                    result.returncode,
                    stderr or _tail(stdout),
                )
                raise CompilationFailed(
                    f"LaTeX compilation failed with exit code {result.returncode}",
                    stderr=stderr,
                    stdout=stdout,
                    returncode=result.returncode,
                )
            if not pdf_path.exists():
                raise CompilationFailed(
                    "LaTeX engine exited cleanly but produced no PDF",
                    stderr=stderr,
                    stdout=stdout,
                    returncode=result.returncode,
                )

            pdf = pdf_path.read_bytes()
            logger.info("Compiled cheat sheet PDF (%d bytes)", len(pdf))
            return pdf

    @staticmethod
    def is_available(engine: Optional[str] = None) -> bool:
        return shutil.which(engine or os.getenv("LATEX_ENGINE", "pdflatex")) is not None


def _decode(stream) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", "ignore")
    return stream


def _tail(text: str, lines: int = 20) -> str:
    return "\n".join(text.splitlines()[-lines:])
