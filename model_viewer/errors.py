#
# PROJECT: model-viewer-core
# MODULE: model_viewer/errors.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#


class ViewerError(Exception):
    """Base class for every error raised by the viewer core."""


class UnsupportedFormat(ViewerError):
    """No decoder is registered for the file's extension or signature."""

    def __init__(self, filename: str, extension: str = ""):
        self.filename = filename
        self.extension = extension
        label = extension or "<none>"
        super().__init__(f"Unsupported file format '{label}' ({filename})")


class ParseFailure(ViewerError):
    """A decoder rejected the content. The cause is chained via ``from``."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Failed to parse {filename}: {reason}")


class MissingSubresource(ViewerError):
    """A referenced buffer, geometry or material could not be resolved.

    Raised internally by decoders and healed with a safe default; it never
    reaches the upload boundary.
    """

    def __init__(self, uri: str, reason: str = "not available"):
        self.uri = uri
        self.reason = reason
        super().__init__(f"Missing sub-resource {uri}: {reason}")


class SceneNotReady(ViewerError):
    """Content replacement was requested before the scene was initialized."""


class ContentEncodingError(ViewerError, TypeError):
    """Text content given to a binary decoder, or the other way round."""

    def __init__(self, filename: str, expected: str, got: type):
        self.filename = filename
        self.expected = expected
        super().__init__(
            f"{filename}: expected {expected} content, got {got.__name__}")
