"""Failure types raised by the cheat sheet pipeline.

Every stage raises a subclass of :class:`CheatSheetError`, so callers can
catch a single type and still tell which stage failed via ``stage`` and
``error_code``.
"""

from typing import Any, Optional


class CheatSheetError(Exception):
    """Base class for all pipeline failures.

    Attributes:
        message: Human-readable error message
        stage: Pipeline state in which the failure happened
        error_code: Stable machine-readable code
        http_status: Status code a transport layer should use
    """

    error_code = "CHEATSHEET_ERROR"
    http_status = 500

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.error_code,
            "stage": self.stage,
            "message": self.message,
        }


class InvalidConstraints(CheatSheetError):
    error_code = "INVALID_CONSTRAINTS"
    http_status = 400


class NoDocuments(CheatSheetError):
    error_code = "NO_DOCUMENTS"
    http_status = 400


class UnsupportedFormat(CheatSheetError):
    error_code = "UNSUPPORTED_FORMAT"
    http_status = 415

    def __init__(self, mime_type: str, original_name: str = "", stage=None):
        super().__init__(
            f"Unsupported document type '{mime_type}' for '{original_name}'",
            stage=stage,
        )
        self.mime_type = mime_type
        self.original_name = original_name


class ExtractionFailed(CheatSheetError):
    error_code = "EXTRACTION_FAILED"
    http_status = 422

    def __init__(self, message: str, original_name: str = "", stage=None):
        super().__init__(message, stage=stage)
        self.original_name = original_name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["document"] = self.original_name
        return data


class SynthesisFailed(CheatSheetError):
    error_code = "SYNTHESIS_FAILED"
    http_status = 502


class RefinementFailed(CheatSheetError):
    error_code = "REFINEMENT_FAILED"
    http_status = 502


class CompilationFailed(CheatSheetError):
    """The LaTeX engine rejected the document.

    ``stderr`` is the raw diagnostic stream of the engine, ``stdout`` its
    transcript (pdflatex reports most TeX errors there).
    """

    error_code = "COMPILATION_FAILED"
    http_status = 500

    def __init__(
        self,
        message: str,
        stderr: str = "",
        stdout: str = "",
        returncode: Optional[int] = None,
        stage=None,
    ):
        super().__init__(message, stage=stage)
        self.stderr = stderr
        self.stdout = stdout
        self.returncode = returncode

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["returncode"] = self.returncode
        data["stderr"] = self.stderr
        data["log"] = self.log_tail()
        return data

    def log_tail(self, lines: int = 40) -> str:
        """Last ``lines`` lines of the engine transcript."""
        return "\n".join(self.stdout.splitlines()[-lines:])
