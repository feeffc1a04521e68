"""Entry-point for the minutes typesetting and export pipeline."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from ata_renderer.model.document_model import MinutesDocument
from ata_renderer.model.elements import ExportProgress, ExportRequest, HeaderTemplate, MeetingMetadata, SignatureEntry
from ata_renderer.model.errors import ExportPreconditionError, RasterizationError
from ata_renderer.model.layout_config import LayoutConfig, load_layout_config
from ata_renderer.parser.content_parser import minutes_to_html, to_continuous_text, to_paragraphs
from ata_renderer.parser.header_template import DEFAULT_HEADER_HTML
from ata_renderer.parser.layout_calculator import LayoutCalculator
from ata_renderer.parser.template_store import HeaderTemplateStore
from ata_renderer.renderer.export_session import ExportSession
from ata_renderer.renderer.html_renderer import PreviewHtmlRenderer
from ata_renderer.utils.debug import DebugDumper
from ata_renderer.utils.logger import get_logger, set_verbose

LOGGER = get_logger(__name__)

TEXT_SUFFIXES = {".txt", ".md"}


def build_preview_model(content_html: str, config: Optional[LayoutConfig] = None) -> MinutesDocument:
    """Parse, wrap and paginate minutes HTML for the live preview."""
    return LayoutCalculator(config or LayoutConfig()).calculate(content_html)


def load_content(content_path: Path) -> str:
    """Read editor HTML, converting plain minutes text when the file is .txt/.md."""
    if not content_path.exists():
        raise FileNotFoundError(f"Minutes file not found: {content_path}")
    raw = content_path.read_text(encoding="utf-8")
    if content_path.suffix.lower() in TEXT_SUFFIXES:
        return minutes_to_html(raw)
    return raw


def load_header(store_path: Optional[Path] = None, template_id: Optional[str] = None,
                header_file: Optional[Path] = None, footer_text: str = "") -> HeaderTemplate:
    """Resolve the header from the template store, a markup file or the stock table."""
    if template_id:
        if store_path is None:
            raise ValueError("--template-id requires --templates")
        template = HeaderTemplateStore(store_path).get(template_id)
        if footer_text:
            template.footer_text = footer_text
        return template
    if header_file is not None:
        if not header_file.exists():
            raise FileNotFoundError(f"Header file not found: {header_file}")
        return HeaderTemplate(id="file", name=header_file.stem, html=header_file.read_text(encoding="utf-8"),
                              footer_text=footer_text)
    return HeaderTemplate(id="default", name="Padrão", html=DEFAULT_HEADER_HTML, footer_text=footer_text)


def parse_signature(value: str, index: int = 1) -> SignatureEntry:
    """Parse ``"Name:Role"``; the role may be omitted."""
    name, _, role = value.partition(":")
    if not name.strip():
        raise ValueError(f"Invalid signature (expected NAME:ROLE): {value!r}")
    return SignatureEntry(id=index, name=name.strip(), role=role.strip())


def render_outputs(request: ExportRequest, output_dir: Path, config: Optional[LayoutConfig] = None, *,
                   preview: bool = True, pdf: bool = False, docx: bool = False,
                   debug: Optional[DebugDumper] = None) -> List[Path]:
    """Render the requested formats into ``output_dir`` and return the written paths."""
    config = config or LayoutConfig()
    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []

    if preview:
        model = build_preview_model(request.content_html, config)
        path = output_dir / "preview.html"
        PreviewHtmlRenderer(path, config, request.metadata).render(model)
        written.append(path)
        if debug is not None:
            debug.dump(model)

    if pdf or docx:
        session = ExportSession(config, debug=debug)
        artifacts = asyncio.run(_run_exports(session, request, pdf=pdf, docx=docx))
        for artifact in artifacts:
            path = output_dir / artifact.filename
            path.write_bytes(artifact.content)
            written.append(path)
    return written


async def _run_exports(session: ExportSession, request: ExportRequest, *, pdf: bool, docx: bool):
    artifacts = []
    if pdf:
        artifacts.append(await session.export_pdf(request, _log_progress))
    if docx:
        artifacts.append(await session.export_docx(request, _log_progress))
    return artifacts


def _log_progress(event: ExportProgress) -> None:
    if event.stage == "page":
        LOGGER.info("Page %d/%d done", event.page, event.total_pages)
    else:
        LOGGER.debug("Export stage: %s", event.stage)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Typeset condo meeting minutes into preview HTML, PDF and DOCX")
    parser.add_argument("content_file", help="Minutes body as editor HTML (or .txt/.md minutes text)")
    parser.add_argument("--output", help="Directory to write generated artifacts")
    parser.add_argument("--pdf", action="store_true", help="Export the raster-sliced PDF")
    parser.add_argument("--docx", action="store_true", help="Export the DOCX document")
    parser.add_argument("--no-preview", action="store_true", help="Skip the printable HTML preview")

    meeting = parser.add_argument_group("meeting")
    meeting.add_argument("--condo", default="", help="Condominium name (required for exports)")
    meeting.add_argument("--company", default="", help="Administrator company name")
    meeting.add_argument("--date", default="")
    meeting.add_argument("--start-time", default="")
    meeting.add_argument("--end-time", default="")
    meeting.add_argument("--year", default="")
    meeting.add_argument("--cnpj", default="")
    meeting.add_argument("--company-logo", help="Company logo path or URL")
    meeting.add_argument("--condo-logo", help="Condominium logo path or URL")
    meeting.add_argument("--signature", action="append", default=[], metavar="NAME:ROLE",
                         help="Signer appended to the document (repeatable)")

    layout = parser.add_argument_group("layout")
    layout.add_argument("--templates", help="JSON file with saved header templates")
    layout.add_argument("--template-id", help="Saved header template to use")
    layout.add_argument("--header-file", help="Header template markup file")
    layout.add_argument("--footer", default="", help="Footer text (placeholders allowed)")
    layout.add_argument("--no-line-numbers", action="store_true", help="Hide the line-number gutter in the PDF")
    layout.add_argument("--unaligned-header", action="store_true",
                        help="Draw the header over the text column only instead of the full width")
    layout.add_argument("--continuous", action="store_true", help="Collapse the body into one paragraph")
    layout.add_argument("--sentences-per-paragraph", type=int,
                        help="Regroup the body into paragraphs of N sentences")
    layout.add_argument("--config", help="JSON file overriding layout settings")

    parser.add_argument("--debug", action="store_true", help="Dump intermediate models into <output>/debug")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the minutes → preview/PDF/DOCX pipeline."""
    args = build_arg_parser().parse_args(argv)
    set_verbose(args.verbose)

    content_path = Path(args.content_file).resolve()
    config = load_layout_config(Path(args.config) if args.config else None)
    content_html = load_content(content_path)
    if args.continuous:
        content_html = to_continuous_text(content_html)
    elif args.sentences_per_paragraph:
        content_html = to_paragraphs(content_html, args.sentences_per_paragraph)

    header = load_header(
        Path(args.templates) if args.templates else None,
        args.template_id,
        Path(args.header_file) if args.header_file else None,
        args.footer,
    )
    metadata = MeetingMetadata(
        condo_name=args.condo,
        company_name=args.company,
        date=args.date,
        start_time=args.start_time,
        end_time=args.end_time,
        year=args.year,
        cnpj=args.cnpj,
        company_logo_url=args.company_logo,
        condo_logo_url=args.condo_logo,
    )
    request = ExportRequest(
        content_html=content_html,
        metadata=metadata,
        header=header,
        signatures=[parse_signature(value, index) for index, value in enumerate(args.signature, start=1)],
        show_line_numbers=not args.no_line_numbers,
        align_header_to_content=not args.unaligned_header,
    )

    output_path = Path(args.output or content_path.with_suffix("")).resolve()
    debug = DebugDumper(output_path / "debug") if args.debug else None
    LOGGER.info("Rendering outputs into %s", output_path)
    try:
        written = render_outputs(request, output_path, config, preview=not args.no_preview,
                                 pdf=args.pdf, docx=args.docx, debug=debug)
    except ExportPreconditionError as e:
        LOGGER.error("%s", e)
        return 2
    except RasterizationError as e:
        LOGGER.error("Export failed: %s", e)
        return 1

    for path in written:
        LOGGER.info("Wrote %s", path)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
