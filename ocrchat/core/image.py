"""ImageArtifact: the user's image bytes plus the display URI and base64 data URI derived from them."""

import base64
import io
import logging
import os
import tempfile
from functools import cached_property
from pathlib import Path

from PIL import Image, ImageGrab, UnidentifiedImageError

from ocrchat.core.errors import InvalidInputError
from ocrchat.core.file_extensions import IMAGE_EXTENSIONS, PIL_FORMAT_MIME_TYPES

_log = logging.getLogger(__name__)


def detect_mime_type(data: bytes) -> str:
    """Return the MIME type of an image payload. Raises InvalidInputError for anything Pillow can't identify."""
    if not data:
        raise InvalidInputError("The image is empty.")
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidInputError("The file is not a supported image.") from e
    mime = PIL_FORMAT_MIME_TYPES.get(fmt or "")
    if mime is None:
        raise InvalidInputError(f"Unsupported image format: {fmt}")
    return mime


class ImageArtifact:
    """
    Immutable image payload owned by the session controller.

    data_uri is computed once on first access. display_uri points at a temporary copy of the
    bytes that lives until release() (or the context manager exit) removes it.
    """

    def __init__(self, data: bytes, mime_type: str | None = None, name: str | None = None) -> None:
        self._bytes = bytes(data)
        self.mime_type = mime_type or detect_mime_type(self._bytes)
        self.name = name
        self._display_path: Path | None = None
        self._released = False

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageArtifact":
        path = Path(path)
        if path.suffix.lower() not in IMAGE_EXTENSIONS:
            raise InvalidInputError(f"Unsupported file type: {path.suffix or path.name}")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise InvalidInputError(f"Cannot read image {path}: {e.strerror or e}") from e
        return cls(data, name=path.name)

    @classmethod
    def from_clipboard(cls) -> "ImageArtifact":
        """Capture the image currently on the clipboard (paste)."""
        try:
            grabbed = ImageGrab.grabclipboard()
        except (NotImplementedError, OSError) as e:
            raise InvalidInputError(f"Clipboard is not available: {e}") from e
        if not isinstance(grabbed, Image.Image):
            raise InvalidInputError("The clipboard does not contain an image.")
        buffered = io.BytesIO()
        grabbed.save(buffered, format="PNG")
        return cls(buffered.getvalue(), mime_type="image/png", name="clipboard.png")

    @property
    def bytes(self) -> bytes:
        return self._bytes

    @property
    def size(self) -> int:
        return len(self._bytes)

    @property
    def released(self) -> bool:
        return self._released

    @cached_property
    def data_uri(self) -> str:
        b64 = base64.b64encode(self._bytes).decode("ascii")
        return f"data:{self.mime_type};base64,{b64}"

    @property
    def display_uri(self) -> str:
        if self._released:
            raise InvalidInputError("The image has been released.")
        if self._display_path is None:
            suffix = "." + self.mime_type.split("/", 1)[1]
            fd, name = tempfile.mkstemp(prefix="ocrchat-", suffix=suffix)
            with os.fdopen(fd, "wb") as f:
                f.write(self._bytes)
            self._display_path = Path(name)
        return self._display_path.as_uri()

    def release(self) -> None:
        """Drop the display copy. Safe to call more than once."""
        if self._display_path is not None:
            try:
                self._display_path.unlink()
            except FileNotFoundError:
                pass
            _log.debug("Released display copy %s", self._display_path)
            self._display_path = None
        self._released = True

    def __enter__(self) -> "ImageArtifact":
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"ImageArtifact(name={self.name!r}, mime_type={self.mime_type!r}, size={self.size})"
