from langchain_openai import ChatOpenAI
from langchain_core.prompts import PromptTemplate
import logging
from tools.llm_logger import get_llm_logger

from .errors import RefinementFailed, SynthesisFailed
from .latex_sanitizer import (
    REQUIRED_PACKAGES,
    add_missing_packages,
    sanitize,
    wrap_exponents_outside_math_mode,
)
from .models import LayoutConstraints

logger = logging.getLogger(__name__)
from dotenv import load_dotenv
import os

load_dotenv()
model_name = os.environ.get("model_name")
base_url = os.environ.get("base_url")
api_key = os.environ.get("api_key")
temperature = float(os.environ.get("LLM_TEMPERATURE", 0))

DRAFT_PROMPT = PromptTemplate.from_template(
    """Create LaTeX code concisely summarizing the following information.
Your raw output must be a single compileable LaTeX document, and you must use
very small margins, line spacing, lists, and font size to cram everything into
1 page. Do not use math mode unless for equations.

{text}
"""
)

REFINE_PROMPT = PromptTemplate.from_template(
    """Format this LaTeX code to have {columns} column(s) and ensure that margins,
line spacing, and font size are small so that it fits in {pages} page(s).
Also ensure that all math control sequences are properly closed.
Return only the LaTeX document, without any commentary.

{latex}
"""
)


def _content_of(response) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        # multi-part messages: keep the text blocks only
        content = "".join(
            part if isinstance(part, str) else part.get("text", "")
            for part in content
        )
    return content or ""


def _build_llm(llm=None):
    if llm is not None:
        return llm
    return ChatOpenAI(
        model=model_name, temperature=temperature, base_url=base_url, api_key=api_key
    )


class DraftSynthesizer:
    """
    Turns the combined text of all uploaded documents into a first LaTeX
    cheat sheet with one LLM call. There is no retry.
    """

    def __init__(self, llm=None):
        self.llm = _build_llm(llm)
        self.prompt = DRAFT_PROMPT

    def synthesize(self, text: str) -> str:
        """
        Generate the draft LaTeX document.

        Args:
            text: combined plain text of the uploaded documents

        Returns:
            Raw LaTeX exactly as returned by the model.

        Raises:
            SynthesisFailed: the model call errored or produced no content
        """
        logger.info("Requesting draft cheat sheet for %d characters of text", len(text))
        try:
            response = (self.prompt | self.llm).invoke({"text": text})
        except Exception as e:
            logger.error("Draft synthesis call failed: %s", e)
            raise SynthesisFailed(f"Error generating cheat sheet: {e}") from e

        get_llm_logger().log_llm_call(
            messages=[{"role": "user", "content": self.prompt.format(text=text)}],
            response=response,
            model=model_name,
            module="CheatSheetModule.cheatsheet_generator",
            metadata={"function": "synthesize", "input_chars": len(text)},
        )

        latex = _content_of(response)
        if not latex.strip():
            raise SynthesisFailed("Model returned an empty cheat sheet")
        return latex


class LayoutRefiner:
    """
    Second LLM pass that re-flows the draft into the requested number of
    columns and pages, followed by the deterministic LaTeX repairs.
    """

    def __init__(self, llm=None):
        self.llm = _build_llm(llm)
        self.prompt = REFINE_PROMPT

    def refine(self, latex: str, constraints: LayoutConstraints) -> str:
        variables = {
            "latex": latex,
            "columns": constraints.columns,
            "pages": constraints.pages,
        }
        logger.info(
            "Refining cheat sheet layout: %d column(s), %d page(s)",
            constraints.columns,
            constraints.pages,
        )
        try:
            response = (self.prompt | self.llm).invoke(variables)
        except Exception as e:
            logger.error("Layout refinement call failed: %s", e)
            raise RefinementFailed(f"Error refining cheat sheet: {e}") from e

        get_llm_logger().log_llm_call(
            messages=[{"role": "user", "content": self.prompt.format(**variables)}],
            response=response,
            model=model_name,
            module="CheatSheetModule.cheatsheet_generator",
            metadata={
                "function": "refine",
                "columns": constraints.columns,
                "pages": constraints.pages,
            },
        )

        refined = _content_of(response)
        if not refined.strip():
            raise RefinementFailed("Model returned an empty refined cheat sheet")

        return self.repair(refined, constraints)

    @staticmethod
    def repair(latex: str, constraints: LayoutConstraints) -> str:
        """Deterministic post-processing applied to the model's output."""
        packages = list(REQUIRED_PACKAGES)
        if constraints.columns > 1:
            packages.append("multicol")
        latex = sanitize(latex)
        latex = add_missing_packages(latex, packages)
        return wrap_exponents_outside_math_mode(latex)
