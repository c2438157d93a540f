"""
Tile decoders.

A decoder is a callable with the signature:

    decoder(payload: bytes, chunk: VolumeChunk) -> None

It must decode the payload into the chunk (via chunk.write()),
using chunk.chunk_data_size to check the expected shape,
and raise TileDecodeError if the payload can't be decoded.
Decoders may also be coroutine functions.

Decoders are looked up in a DecoderRegistry, which is constructed once
(see default_decoder_registry()) and handed to each tile source.
New encodings are supported by registering a decoder, e.g.

    registry = default_decoder_registry()
    registry.register(TileEncoding.JPEG, my_faster_jpeg_decoder)
"""
import io
import logging
from enum import Enum

import numpy as np
from PIL import Image

from .errors import TileDecodeError, UnsupportedEncodingError

logger = logging.getLogger(__name__)


class TileEncoding(Enum):
    """Image formats in which the server delivers tiles."""
    JPEG = "jpeg"


class DecoderRegistry:
    def __init__(self, decoders=None):
        self._decoders = {}
        for encoding, decoder in (decoders or {}).items():
            self.register(encoding, decoder)

    def register(self, encoding, decoder):
        """
        Register (or replace) the decoder for the given encoding.
        """
        encoding = TileEncoding(encoding)
        if not callable(decoder):
            raise TypeError(f"Decoder for {encoding} is not callable: {decoder!r}")
        self._decoders[encoding] = decoder

    def get(self, encoding):
        try:
            return self._decoders[TileEncoding(encoding)]
        except (KeyError, ValueError):
            raise UnsupportedEncodingError(encoding) from None

    def encodings(self):
        return list(self._decoders.keys())

    def __contains__(self, encoding):
        try:
            return TileEncoding(encoding) in self._decoders
        except ValueError:
            return False


def default_decoder_registry():
    """
    Return a new DecoderRegistry with decoders for all built-in encodings.
    """
    return DecoderRegistry({ TileEncoding.JPEG: decode_jpeg_chunk })


def decode_jpeg_chunk(payload, chunk):
    """
    Decode a JPEG tile into the given chunk as 8-bit grayscale.

    The image must be exactly chunk_data_size.x pixels wide and
    chunk_data_size.y * chunk_data_size.z pixels tall
    (slices are stacked vertically, though VIME tiles always have z == 1).
    """
    assert chunk.chunk_data_size is not None, \
        "The chunk's data size must be set before it can be decoded."

    width, height, depth = chunk.chunk_data_size
    try:
        with Image.open(io.BytesIO(payload)) as img:
            if img.format != 'JPEG':
                raise TileDecodeError(f"Expected a JPEG tile, got {img.format}")
            pixels = np.asarray(img.convert('L'), dtype=np.uint8)
    except TileDecodeError:
        raise
    except (OSError, ValueError, Image.DecompressionBombError) as ex:
        raise TileDecodeError(f"Could not decode JPEG tile for chunk {tuple(chunk.grid_position)}: {ex}") from ex

    if pixels.shape != (height * depth, width):
        raise TileDecodeError(f"JPEG tile for chunk {tuple(chunk.grid_position)} has shape "
                              f"{pixels.shape[::-1]} (width, height), expected {(width, height*depth)}")

    chunk.write(pixels.reshape((depth, height, width)))
