"""Deterministic clean-up of LLM generated LaTeX.

``sanitize`` is run after every generation step; ``add_missing_packages``
and ``wrap_exponents_outside_math_mode`` are only applied to the refined
document.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Set

END_MARKER = r"\end{document}"

REQUIRED_PACKAGES = ("amsmath", "amsfonts", "enumitem", "amssymb")

_FENCE_LINE = re.compile(r"^[ \t]*```.*$\n?", re.MULTILINE)
_FENCE_RUN = re.compile(r"`{3,}")
_BARE_AMPERSAND = re.compile(r"(?<=\s)&(?=\s)")
_USEPACKAGE = re.compile(r"\\usepackage\s*(?:\[[^\]]*\])?\s*\{([^}]*)\}")
_EXPONENT = re.compile(r"[a-zA-Z]\^\d+")
_COMMENT = re.compile(r"(?<!\\)%.*")
_MATH_ENV = re.compile(
    r"\\begin\{(equation\*?|align\*?|gather\*?|multline\*?|eqnarray\*?|displaymath|math)\}"
)


def sanitize(raw: str) -> str:
    """Strip model artifacts from generated LaTeX.

    Removes code fences, everything after ``\\end{document}``, null bytes,
    and escapes ampersands that stand alone between whitespace.
    """
    # null bytes go first so their removal cannot expose new fences or "&"
    text = raw.replace("\0", "")
    text = _FENCE_LINE.sub("", text)
    text = _FENCE_RUN.sub("", text)

    index = text.find(END_MARKER)
    if index != -1:
        text = text[: index + len(END_MARKER)]

    return _BARE_AMPERSAND.sub(r"\\&", text)


def declared_packages(latex: str) -> Set[str]:
    """Return the names of all packages loaded via ``\\usepackage``.

    Commented-out declarations do not count.
    """
    names = set()
    for match in _USEPACKAGE.finditer(_COMMENT.sub("", latex)):
        names.update(name.strip() for name in match.group(1).split(",") if name.strip())
    return names


def add_missing_packages(latex: str, packages: Iterable[str] = REQUIRED_PACKAGES) -> str:
    """Insert ``\\usepackage`` lines right after the document class line.

    Packages already declared anywhere in the document are skipped, so
    applying this twice yields the same text.
    """
    present = declared_packages(latex)
    missing: List[str] = []
    for name in packages:
        if name not in present and name not in missing:
            missing.append(name)
    if not missing:
        return latex

    lines = latex.split("\n")
    anchor = next(
        (i for i, line in enumerate(lines) if "\\documentclass" in _COMMENT.sub("", line)),
        0,
    )
    lines[anchor + 1 : anchor + 1] = [f"\\usepackage{{{name}}}" for name in missing]
    return "\n".join(lines)


def _is_escaped(text: str, index: int) -> bool:
    backslashes = 0
    i = index - 1
    while i >= 0 and text[i] == "\\":
        backslashes += 1
        i -= 1
    return backslashes % 2 == 1


def _math_opener(latex: str, i: int):
    """Return ``(opener, closer)`` if a math region starts at ``i``."""
    char = latex[i]
    if char == "$":
        delimiter = "$$" if latex.startswith("$$", i) else "$"
        return delimiter, delimiter
    if char == "\\":
        nxt = latex[i + 1 : i + 2]
        if nxt == "(":
            return "\\(", "\\)"
        if nxt == "[":
            return "\\[", "\\]"
        match = _MATH_ENV.match(latex, i)
        if match:
            return match.group(0), f"\\end{{{match.group(1)}}}"
    return None


def wrap_exponents_outside_math_mode(latex: str) -> str:
    """Wrap ``x^2`` style exponents that sit outside math mode in ``$...$``.

    Math mode is entered by an unescaped ``$``, ``$$``, ``\\(``, ``\\[`` or a
    math environment and left by the matching closer; ``\\$`` is a literal
    dollar. Text inside math mode is copied unchanged.
    """
    out = []
    closer = None
    i = 0
    n = len(latex)
    while i < n:
        escaped = _is_escaped(latex, i)
        if closer is not None:
            if not escaped and latex.startswith(closer, i):
                out.append(closer)
                i += len(closer)
                closer = None
                continue
        elif not escaped:
            opened = _math_opener(latex, i)
            if opened:
                out.append(opened[0])
                i += len(opened[0])
                closer = opened[1]
                continue

            match = _EXPONENT.match(latex, i)
            if match:
                out.append(f"${match.group(0)}$")
                i = match.end()
                continue

        out.append(latex[i])
        i += 1
    return "".join(out)
