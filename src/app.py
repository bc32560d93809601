"""
Command line runner: complete a file at a cursor position.

Reads settings from QSettings, applies command line overrides and runs one
completion on a qasync event loop.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication
from qasync import QEventLoop

from ai.completion import CompletionManager, CompletionResult
from ai.context import DocumentSnapshot, Position
from ai.prompts import FimTemplate
from ai.providers.registry import PROVIDER_NAMES
from core.languages import get_language_id_from_path
from core.settings import CompletionConfig, SettingsManager

logger = logging.getLogger(__name__)


def parse_position(value: str) -> Position:
    """Parse a 1-based LINE:COL argument into a 0-based Position."""
    try:
        line, col = value.split(":")
        return Position(int(line) - 1, int(col) - 1)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected LINE:COL, got '{value}'") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inline-fim",
        description="Complete a source file at a cursor position using a local FIM model.",
    )
    parser.add_argument("file", type=Path, help="file to complete")
    parser.add_argument("position", type=parse_position, help="cursor position as LINE:COL (1-based)")
    parser.add_argument("--provider", choices=PROVIDER_NAMES, help="inference server type")
    parser.add_argument("--model", help="FIM model name")
    parser.add_argument("--host", help="inference server hostname")
    parser.add_argument("--port", type=int, help="inference server port")
    parser.add_argument(
        "--template", choices=[t.value for t in FimTemplate], help="FIM prompt format"
    )
    parser.add_argument("--single-line", action="store_true", help="stop at the first line break")
    parser.add_argument(
        "--context-file",
        action="append",
        type=Path,
        default=[],
        help="other open file to consider for file context (repeatable)",
    )
    parser.add_argument("--save", action="store_true", help="persist the overrides as settings")
    parser.add_argument("-v", "--verbose", action="store_true", help="log pipeline details")
    return parser


def apply_overrides(config: CompletionConfig, args: argparse.Namespace) -> CompletionConfig:
    """Merge command line options into the stored config."""
    changes = {}
    if args.provider:
        changes["provider"] = args.provider
    if args.model:
        changes["model"] = args.model
    if args.host:
        changes["api_hostname"] = args.host
    if args.port:
        changes["api_port"] = args.port
    if args.template:
        changes["template_format"] = args.template
    if args.single_line:
        changes["use_multiline"] = False
    if args.context_file:
        changes["use_file_context"] = True
    return config.replace(**changes)


def load_document(path: Path) -> DocumentSnapshot:
    resolved = path.resolve()
    return DocumentSnapshot(
        path=resolved.as_posix(),
        text=resolved.read_text(encoding="utf-8"),
        language_id=get_language_id_from_path(resolved.name),
    )


async def complete_file(
    manager: CompletionManager,
    document: DocumentSnapshot,
    position: Position,
    open_documents: list[DocumentSnapshot],
) -> CompletionResult | None:
    """Run a single completion request."""
    return await manager.request_completion(document, position, open_documents=open_documents)


def run_app(argv: list[str] | None = None) -> int:
    """Parse arguments, run one completion and print the insertion."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName("InlineFim")
    app.setOrganizationName("InlineFim")

    settings = SettingsManager()
    config = apply_overrides(settings.get_completion_config(), args)
    if args.save:
        settings.set_completion_config(config)

    try:
        document = load_document(args.file)
        open_documents = [load_document(path) for path in args.context_file]
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read input: {e}", file=sys.stderr)
        return 2

    # No keystrokes to coalesce on the command line
    manager = CompletionManager(config.replace(debounce_wait=0))

    # Set up async event loop with Qt integration
    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)

    with loop:
        result = loop.run_until_complete(
            complete_file(manager, document, args.position, open_documents)
        )

    if result is None:
        logger.info("No completion (status: %s)", manager.status.value)
        return 1

    sys.stdout.write(result.text)
    if not result.text.endswith("\n"):
        sys.stdout.write("\n")
    return 0
