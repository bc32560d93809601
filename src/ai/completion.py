"""
Async inline completion manager.

Debounces editor triggers, builds a FIM prompt, streams the completion from
the configured inference server and post-processes it into ghost text.
Runs on the asyncio loop (qasync in the application), no threads needed.
Only one request runs at a time: a new request cancels the previous one.
"""

import asyncio
import contextlib
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum, auto

from PyQt6.QtCore import QObject, pyqtSignal

from ai.cache import CompletionCache
from ai.context import (
    CursorContext,
    DocumentSnapshot,
    Position,
    build_file_context,
    build_file_header,
    collect_related_files,
    extract_context,
    lines_below_cursor,
    text_after_cursor,
)
from ai.errors import ConfigurationError, TransportError
from ai.postprocess import format_completion, strip_stop_sequences
from ai.prompts import FimPromptSpec, FimTemplate
from ai.providers.registry import build_fim_request, get_provider
from ai.stream import FimStreamClient, StreamHandle
from core.settings import CompletionConfig

logger = logging.getLogger(__name__)


class CompletionStatus(Enum):
    """Three-state indicator shown by the host."""

    IDLE = "idle"
    GENERATING = "generating"
    ALERT = "alert"


class TriggerKind(Enum):
    """Why the host asked for a completion."""

    INVOKE = auto()  # explicit request or regular typing
    TRIGGER_CHARACTER = auto()  # auto-suggest character typed


@dataclass(frozen=True)
class CompletionRequest:
    """Everything the host hands over for one completion."""

    document: DocumentSnapshot
    position: Position
    language_id: str
    trigger_kind: TriggerKind = TriggerKind.INVOKE
    open_documents: tuple[DocumentSnapshot, ...] = ()


@dataclass(frozen=True)
class CompletionResult:
    """Text that can be inserted at position without further edits."""

    position: Position
    text: str


@dataclass
class StreamSession:
    """State of the one stream a manager may have open."""

    nonce: int
    handle: StreamHandle
    accumulated_text: str = ""
    chunk_count: int = 0
    line_count: int = 0
    stop_reason: str | None = field(default=None)


def has_line_break(fragment: str) -> bool:
    return "\n" in fragment or "\r" in fragment


def consume_chunk(
    session: StreamSession,
    fragment: str,
    stop: Sequence[str],
    use_multiline: bool,
    max_lines: int,
) -> str | None:
    """Add a decoded fragment to the session and check the stop conditions.

    Returns:
        The reason to stop streaming, or None to keep reading.
    """
    session.accumulated_text += fragment
    session.chunk_count += 1
    line_break = has_line_break(fragment)

    if not use_multiline and session.chunk_count > 1 and line_break:
        return "line break"

    if line_break:
        session.line_count += 1

    if session.line_count > max_lines:
        return "max lines"
    if any(stop_sequence in session.accumulated_text for stop_sequence in stop if stop_sequence):
        return "stop sequence"
    return None


class CompletionManager(QObject):
    """Manages inline completion requests for one editor.

    Call request_completion() on every editor trigger; only the most recent
    trigger in a debounce window reaches the server. Results are also emitted
    through suggestion_ready for signal-driven hosts.
    """

    suggestion_ready = pyqtSignal(object)  # CompletionResult
    suggestion_cleared = pyqtSignal()
    status_changed = pyqtSignal(object)  # CompletionStatus

    def __init__(
        self,
        config: CompletionConfig | None = None,
        client: FimStreamClient | None = None,
        cache: CompletionCache | None = None,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self._config = config or CompletionConfig()
        self._client = client or FimStreamClient()
        self._cache = cache if cache is not None else CompletionCache()
        self._current_task: asyncio.Task | None = None
        self._session: StreamSession | None = None
        self._nonce = 0
        self._status = CompletionStatus.IDLE

    @property
    def config(self) -> CompletionConfig:
        return self._config

    @property
    def cache(self) -> CompletionCache:
        return self._cache

    @property
    def session(self) -> StreamSession | None:
        """The open stream, if any."""
        return self._session

    @property
    def status(self) -> CompletionStatus:
        return self._status

    @property
    def nonce(self) -> int:
        return self._nonce

    def is_enabled(self) -> bool:
        """Check if completion is enabled."""
        return self._config.enabled

    def update_config(self, config: CompletionConfig) -> None:
        """Replace the whole configuration.

        A stream that is already open keeps the config it started with.
        """
        self._config = config

    def clear_cache(self) -> None:
        """Forget every cached completion."""
        self._cache.clear()

    def stop_generation(self) -> None:
        """Cancel any pending or in-flight completion request."""
        self._cancel_current()
        self._set_status(CompletionStatus.IDLE)
        self.suggestion_cleared.emit()

    async def request_completion(
        self,
        document: DocumentSnapshot,
        position: Position,
        language_id: str | None = None,
        trigger_kind: TriggerKind = TriggerKind.INVOKE,
        open_documents: Iterable[DocumentSnapshot] = (),
    ) -> CompletionResult | None:
        """Request an inline completion at the cursor.

        Cancels any previous pending request before starting a new one.

        Args:
            document: Snapshot of the active document
            position: Cursor position in the document
            language_id: Editor language id (defaults to the document's)
            trigger_kind: Whether an auto-suggest character started the request
            open_documents: Other open documents, used for file context

        Returns:
            The completion, or None when there is nothing to suggest or the
            request was superseded or stopped.

        Raises:
            asyncio.CancelledError: The awaiting task itself was cancelled.
        """
        if trigger_kind is TriggerKind.TRIGGER_CHARACTER and not self._config.auto_suggest:
            logger.debug("Ignoring trigger character: auto-suggest disabled")
            return None

        self._cancel_current()

        request = CompletionRequest(
            document=document,
            position=position,
            language_id=language_id or document.language_id,
            trigger_kind=trigger_kind,
            open_documents=tuple(open_documents),
        )
        task = asyncio.ensure_future(self._run_completion(request))
        self._current_task = task

        try:
            result = await task
        except asyncio.CancelledError:
            # Superseded or stopped: no result. Cancellation of the caller propagates.
            current = asyncio.current_task()
            if not task.cancelled() or (current is not None and current.cancelling()):
                raise
            result = None
        finally:
            if self._current_task is task:
                self._current_task = None

        if result is not None:
            self.suggestion_ready.emit(result)
        return result

    # ─── Internal ───

    def _set_status(self, status: CompletionStatus) -> None:
        if status is not self._status:
            self._status = status
            self.status_changed.emit(status)

    def _destroy_session(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            session.handle.destroy()
            self._set_status(CompletionStatus.IDLE)

    def _cancel_current(self) -> None:
        self._destroy_session()
        task = self._current_task
        self._current_task = None
        if task is not None and not task.done():
            task.cancel()

    def _build_prompt(
        self, request: CompletionRequest, config: CompletionConfig
    ) -> tuple[CursorContext, FimPromptSpec]:
        document = request.document
        context = extract_context(document.text, request.position, config.context_length)

        file_context = ""
        if config.use_file_context:
            snippets = collect_related_files(document, request.open_documents)
            file_context = build_file_context(snippets)

        template = FimTemplate.from_name(config.template_format)
        prompt_spec = template.render(
            prefix=context.prefix,
            suffix=context.suffix,
            header=build_file_header(request.language_id, document.path),
            file_context=file_context,
            use_file_context=config.use_file_context,
        )
        return context, prompt_spec

    async def _run_completion(self, request: CompletionRequest) -> CompletionResult | None:
        """Debounce, then serve the request from the cache or a new stream."""
        nonce = self._nonce
        try:
            await asyncio.sleep(self._config.debounce_wait / 1000)

            config = self._config
            if not config.enabled:
                logger.debug("Streaming response end as completions disabled")
                return None

            self._nonce += 1
            nonce = self._nonce

            context, prompt_spec = self._build_prompt(request, config)

            if config.completion_cache:
                cached = self._cache.get(context.prefix, context.suffix)
                if cached:
                    logger.debug("Streaming response end using cache %d: %r", nonce, cached)
                    return CompletionResult(request.position, cached)

            if not prompt_spec.prompt or not (context.prefix or context.suffix):
                logger.debug("Streaming response end prompt not found %d", nonce)
                return None

            completion = await self._stream(nonce, prompt_spec, config)
            return self._finalize(request, context, prompt_spec, completion, config)
        except asyncio.CancelledError:
            logger.debug("Completion request %d cancelled", nonce)
            raise
        except (ConfigurationError, TransportError) as e:
            logger.warning("Completion request %d failed: %s", nonce, e)
            self._set_status(CompletionStatus.ALERT)
            return None
        except Exception:
            logger.exception("Completion request %d failed", nonce)
            self._set_status(CompletionStatus.ALERT)
            return None

    async def _stream(
        self, nonce: int, prompt_spec: FimPromptSpec, config: CompletionConfig
    ) -> str:
        """Open the stream and read it until a stop condition or end of data."""
        provider = get_provider(config.provider)
        fim_request = build_fim_request(config, prompt_spec.prompt)

        # At most one stream per manager
        self._destroy_session()
        handle = self._client.open_stream(fim_request, provider)
        session = StreamSession(nonce=nonce, handle=handle)
        self._session = session
        self._set_status(CompletionStatus.GENERATING)

        try:
            async with contextlib.aclosing(handle.chunks()) as chunks:
                async for fragment in chunks:
                    if handle.destroyed:
                        raise asyncio.CancelledError
                    reason = consume_chunk(
                        session, fragment, prompt_spec.stop, config.use_multiline, config.max_lines
                    )
                    if reason:
                        session.stop_reason = reason
                        break
        finally:
            handle.destroy()
            if self._session is session:
                self._session = None
                self._set_status(CompletionStatus.IDLE)

        logger.debug(
            "Streaming response end due to %s %d: %r",
            session.stop_reason or "request end",
            nonce,
            session.accumulated_text,
        )
        return session.accumulated_text

    def _finalize(
        self,
        request: CompletionRequest,
        context: CursorContext,
        prompt_spec: FimPromptSpec,
        completion: str,
        config: CompletionConfig,
    ) -> CompletionResult | None:
        """Strip stop sequences, post-process and cache the completion."""
        document = request.document
        completion = strip_stop_sequences(completion, prompt_spec.stop)
        text = format_completion(
            completion,
            text_after_cursor=text_after_cursor(document.text, request.position),
            lines_below=lines_below_cursor(document.text, request.position, config.context_length),
            use_multiline=config.use_multiline,
        )

        logger.debug("Inline completion triggered: formatted completion: %r", text)
        if not text:
            return None

        if config.completion_cache:
            self._cache.set(context.prefix, context.suffix, text)
        return CompletionResult(request.position, text)
