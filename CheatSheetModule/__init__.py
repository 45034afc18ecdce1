"""
CheatSheetModule
----------------
Turns uploaded documents (PDF, Word, images, plain text) into a compact,
layout-constrained cheat sheet PDF. Text is extracted per document, summarized
into LaTeX by an LLM, re-flowed to the requested columns and pages, repaired
and compiled with a LaTeX engine.
"""

from .cheatsheet_generator import DraftSynthesizer, LayoutRefiner
from .errors import (
    CheatSheetError,
    CompilationFailed,
    ExtractionFailed,
    InvalidConstraints,
    NoDocuments,
    RefinementFailed,
    SynthesisFailed,
    UnsupportedFormat,
)
from .latex_compiler import LatexCompiler
from .latex_sanitizer import sanitize
from .models import CheatSheetResult, LayoutConstraints, PipelineState, SourceDocument
from .pipeline import CheatSheetPipeline
from .text_extractor import TextExtractor

__all__ = [
    "CheatSheetPipeline",
    "CheatSheetResult",
    "CheatSheetError",
    "CompilationFailed",
    "DraftSynthesizer",
    "ExtractionFailed",
    "InvalidConstraints",
    "LatexCompiler",
    "LayoutConstraints",
    "LayoutRefiner",
    "NoDocuments",
    "PipelineState",
    "RefinementFailed",
    "SourceDocument",
    "SynthesisFailed",
    "TextExtractor",
    "UnsupportedFormat",
    "sanitize",
]
