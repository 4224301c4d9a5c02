"""
LC-3 Virtual Machine — Object Image Loader

Image format:

  +--------+--------+--------+-----
  | origin | word 0 | word 1 | ...
  +--------+--------+--------+-----
  every field a big-endian 16-bit word

word i is placed at origin + i. Images that would run past xFFFF are
rejected whole; nothing is written in that case. An odd trailing byte
is ignored.
"""

import logging
import struct
from pathlib import Path
from typing import List, Tuple

from .errors import ImageLoadError
from .mem.memory import MEMORY_SIZE

log = logging.getLogger(__name__)


def parse_image(data: bytes, source="<bytes>") -> Tuple[int, List[int]]:
    """Split raw image bytes into (origin, words)."""
    if len(data) < 2:
        raise ImageLoadError(source, "image is shorter than its origin word")

    (origin,) = struct.unpack_from('>H', data, 0)
    count = (len(data) - 2) // 2
    words = list(struct.unpack_from(f'>{count}H', data, 2))

    if origin + count > MEMORY_SIZE:
        raise ImageLoadError(
            source,
            f"{count} words at x{origin:04X} run past xFFFF "
            f"(last address would be x{origin + count - 1:X})",
        )
    return origin, words


def load_image(memory, path) -> int:
    """Read an image file into memory. Returns its origin."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageLoadError(path, f"cannot read image ({e.strerror or e})") from e

    origin, words = parse_image(data, path)
    memory.load_words(words, origin)
    log.info("Loaded %s: %d words at x%04X", path, len(words), origin)
    return origin


def load_image_bytes(memory, data: bytes) -> int:
    """Load an in-memory image (same format as a file). Returns its origin."""
    origin, words = parse_image(bytes(data))
    memory.load_words(words, origin)
    log.debug("Loaded %d words at x%04X", len(words), origin)
    return origin


def build_image(origin: int, words) -> bytes:
    """Encode (origin, words) in the image file format."""
    words = [w & 0xFFFF for w in words]
    return struct.pack(f'>H{len(words)}H', origin & 0xFFFF, *words)
