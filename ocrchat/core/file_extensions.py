"""Single source of truth for supported image types (file picker, upload, clipboard)."""

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif", ".tif", ".tiff"}

# Pillow format name -> MIME type sent to providers.
PIL_FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "GIF": "image/gif",
    "TIFF": "image/tiff",
}

SUPPORTED_MIME_TYPES = frozenset(PIL_FORMAT_MIME_TYPES.values())

IMAGE_EXTENSIONS_LIST = sorted(IMAGE_EXTENSIONS)
