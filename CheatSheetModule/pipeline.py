"""End-to-end cheat sheet generation.

Documents are extracted in upload order, concatenated, summarized into a LaTeX
draft, sanitized, re-flowed to the requested layout and compiled to PDF. The
run moves strictly forward through :class:`PipelineState`; the first failure
aborts it and no partial PDF is ever returned.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from tools.temp_files import new_request_id

from .cheatsheet_generator import DraftSynthesizer, LayoutRefiner
from .errors import CheatSheetError, NoDocuments
from .latex_compiler import LatexCompiler
from .latex_sanitizer import sanitize
from .models import CheatSheetResult, LayoutConstraints, PipelineState, SourceDocument
from .text_extractor import TextExtractor

logger = logging.getLogger(__name__)


class _Run:
    """Per-request state tracker; the pipeline itself holds none."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        self.state: Optional[PipelineState] = None

    def advance(self, state: PipelineState):
        logger.info(
            "[%s] %s -> %s",
            self.request_id,
            self.state.value if self.state else "start",
            state.value,
        )
        self.state = state


class CheatSheetPipeline:
    def __init__(
        self,
        extractor: Optional[TextExtractor] = None,
        synthesizer: Optional[DraftSynthesizer] = None,
        refiner: Optional[LayoutRefiner] = None,
        compiler: Optional[LatexCompiler] = None,
    ):
        self.extractor = extractor or TextExtractor()
        self.synthesizer = synthesizer or DraftSynthesizer()
        self.refiner = refiner or LayoutRefiner()
        self.compiler = compiler or LatexCompiler()

    def generate(
        self,
        documents: Sequence[SourceDocument],
        columns: int,
        pages: int,
        request_id: Optional[str] = None,
    ) -> CheatSheetResult:
        """Validate raw layout values, then :meth:`run` the pipeline."""
        constraints = LayoutConstraints(columns=columns, pages=pages)
        return self.run(documents, constraints, request_id=request_id)

    def run(
        self,
        documents: Sequence[SourceDocument],
        constraints: LayoutConstraints,
        request_id: Optional[str] = None,
    ) -> CheatSheetResult:
        run = _Run(request_id or new_request_id())
        if not documents:
            raise NoDocuments("No documents were uploaded", stage=PipelineState.FAILED.value)

        try:
            run.advance(PipelineState.EXTRACTING)
            combined_text = self.combine_text(documents, run.request_id)

            run.advance(PipelineState.SYNTHESIZING)
            draft = sanitize(self.synthesizer.synthesize(combined_text))

            run.advance(PipelineState.REFINING)
            markup = self.refiner.refine(draft, constraints)

            run.advance(PipelineState.COMPILING)
            pdf = self.compiler.compile(markup, request_id=run.request_id)
        except CheatSheetError as e:
            if e.stage is None:
                e.stage = run.state.value
            logger.error(
                "[%s] cheat sheet generation failed while %s: %s",
                run.request_id,
                e.stage,
                e.message,
            )
            run.advance(PipelineState.FAILED)
            raise

        run.advance(PipelineState.DONE)
        return CheatSheetResult(
            request_id=run.request_id,
            pdf=pdf,
            markup=markup,
            combined_text=combined_text,
        )

    def combine_text(self, documents: Sequence[SourceDocument], request_id: str) -> str:
        """Extract every document and join the texts in upload order.

        The first failed document (in upload order) aborts the run.
        """
        results = self.extractor.extract_all(documents, request_id=request_id)
        for result in results:
            if not result.ok:
                raise result.error
        return "\n".join(result.text for result in results)
