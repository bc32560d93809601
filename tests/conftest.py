# =============================================================================
# tests/conftest.py: Shared pytest fixtures for the completion pipeline
# =============================================================================
#
# This file is auto-loaded by pytest before any test module runs.
# It provides:
#   - QCoreApplication lifecycle management (one instance per session)
#   - Fake stream client that replays scripted chunks without network calls
#   - Sample documents for context and post-processing tests
#   - Settings isolation so tests never touch the real QSettings store
#
# =============================================================================

import asyncio
import sys

import pytest

from ai.context import DocumentSnapshot
from core.settings import CompletionConfig

# ---------------------------------------------------------------------------
# QCoreApplication singleton: Qt allows exactly one per process
# ---------------------------------------------------------------------------
# Only QtCore is used (QObject signals, QSettings), so no window system or
# offscreen platform is needed.


@pytest.fixture(scope="session")
def qapp():
    """Create or reuse a QCoreApplication for the test session."""
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1])
        app.setApplicationName("InlineFim-Tests")

    yield app

    # Note: We do NOT call app.quit() here. Destroying the application in a
    # session fixture can crash while QObjects are still referenced.


# ---------------------------------------------------------------------------
# Fake streaming: scripted chunks instead of an inference server
# ---------------------------------------------------------------------------


class FakeStreamHandle:
    """Stands in for ai.stream.StreamHandle.

    Yields the scripted fragments, then optionally raises an error or hangs
    like a server that never closes the connection.
    """

    def __init__(self, request, provider, fragments, hang=False, error=None):
        self.request = request
        self.provider = provider
        self._fragments = list(fragments)
        self._hang = hang
        self._error = error
        self.destroyed = False
        self.delivered = 0

    def destroy(self):
        self.destroyed = True

    async def chunks(self):
        for fragment in self._fragments:
            if self.destroyed:
                return
            await asyncio.sleep(0)
            self.delivered += 1
            yield fragment
        if self._error is not None:
            raise self._error
        if self._hang:
            await asyncio.Event().wait()


class FakeStreamClient:
    """Records every opened stream; each one replays the same script."""

    def __init__(self, fragments=(), hang=False, error=None):
        self.fragments = list(fragments)
        self.hang = hang
        self.error = error
        self.handles: list[FakeStreamHandle] = []

    def open_stream(self, request, provider):
        handle = FakeStreamHandle(request, provider, self.fragments, self.hang, self.error)
        self.handles.append(handle)
        return handle

    @property
    def active_handles(self) -> list[FakeStreamHandle]:
        return [handle for handle in self.handles if not handle.destroyed]


@pytest.fixture
def fake_client():
    """Factory for FakeStreamClient.

    Usage:
        def test_stream(fake_client):
            client = fake_client(["x = ", "1"])
    """

    def _factory(fragments=(), hang=False, error=None):
        return FakeStreamClient(fragments, hang=hang, error=error)

    return _factory


@pytest.fixture
def fast_config():
    """Config with no debounce delay and the cache disabled."""
    return CompletionConfig(debounce_wait=0, completion_cache=False)


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------


@pytest.fixture
def python_document():
    """A small Python document; the cursor usually sits after 'return '."""
    return DocumentSnapshot(
        path="/project/src/utils.py",
        text="def add(a, b):\n    return \n\n\nprint(add(1, 2))\n",
        language_id="python",
    )


# ---------------------------------------------------------------------------
# Settings isolation: prevent tests from reading/writing real settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """
    Redirect QSettings to a temp directory so tests never touch real config.

    This runs automatically for every test (autouse=True).
    """
    from PyQt6.QtCore import QSettings

    # Use IniFormat in a temp directory instead of system registry/plist
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)
    QSettings.setPath(
        QSettings.Format.IniFormat,
        QSettings.Scope.UserScope,
        str(tmp_path / "settings"),
    )
    # QSettings(organization, application) uses NativeFormat, so redirect it too
    QSettings.setPath(
        QSettings.Format.NativeFormat,
        QSettings.Scope.UserScope,
        str(tmp_path / "settings"),
    )
