from dotenv import load_dotenv
from CheatSheetModule import CheatSheetError, CheatSheetPipeline, SourceDocument
from CheatSheetModule.models import DOCX_MIME
import argparse
import logging
import mimetypes
import os
import sys
from pathlib import Path

# Load environment variables from .env
dotenv_path = os.path.join(os.path.dirname(__file__), ".env")
load_dotenv(dotenv_path)

mimetypes.add_type(DOCX_MIME, ".docx")
mimetypes.add_type("text/markdown", ".md")


def load_document(path: Path) -> SourceDocument:
    """Read ``path`` into a SourceDocument, guessing its mime type from the name."""
    mime_type, _ = mimetypes.guess_type(path.name)
    return SourceDocument(
        data=path.read_bytes(),
        mime_type=mime_type or "application/octet-stream",
        original_name=path.name,
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate a LaTeX cheat sheet PDF from documents"
    )
    parser.add_argument("files", nargs="+", help="PDF, DOCX, image or text files")
    parser.add_argument("--columns", type=int, default=1, help="Number of columns")
    parser.add_argument("--pages", type=int, default=1, help="Maximum number of pages")
    parser.add_argument(
        "-o", "--output", default="cheatsheet.pdf", help="Where to write the PDF"
    )
    parser.add_argument(
        "--keep-tex", default=None, help="Also write the final LaTeX source here"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not os.getenv("api_key"):
        print("Error: api_key environment variable is not set. "
              "Please set it before running the application.")
        return 1

    try:
        documents = [load_document(Path(f)) for f in args.files]
    except OSError as e:
        print(f"Error: could not read input file: {e}")
        return 1

    try:
        result = CheatSheetPipeline().generate(documents, args.columns, args.pages)
    except CheatSheetError as e:
        print(f"Error ({e.error_code}, stage={e.stage}): {e.message}")
        stderr = getattr(e, "stderr", "")
        if stderr:
            print(stderr, file=sys.stderr)
        return 1

    Path(args.output).write_bytes(result.pdf)
    if args.keep_tex:
        Path(args.keep_tex).write_text(result.markup, encoding="utf-8")
    print(f"Cheat sheet written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
