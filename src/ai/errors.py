"""
Error types raised by the completion pipeline.

Cancellation is not modelled here: a superseded or stopped request raises
asyncio.CancelledError like any other cancelled task.
"""


class CompletionError(Exception):
    """Base class for completion pipeline failures."""


class ConfigurationError(CompletionError):
    """Unknown provider id or a required setting is missing."""


class TransportError(CompletionError):
    """The inference server could not be reached or answered with an error."""


class DecodeError(CompletionError):
    """A streamed chunk could not be parsed with the provider's schema."""
