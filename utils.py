import base64
import sys
from io import BytesIO
from typing import Optional, TextIO

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_L
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage

from errors import EncodingError

QR_RASTER_SIZE = 1024
QR_BORDER = 4


def human_size(num_bytes: float) -> str:
    """Convert bytes to a human-readable string (e.g., '1.5 MB')."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if num_bytes < 1024:
            return f"{num_bytes:.1f} {unit}"
        num_bytes /= 1024
    return f"{num_bytes:.1f} PB"


def build_file_url(base_url: str, file_name: str) -> str:
    """
    Shareable URL for a file already stored in the working directory.
    The name is used as-is; resolving untrusted names is the download side's job.
    """
    return f"{base_url}/share/{file_name}"


def _make_qr(text: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_L,
        box_size=1,
        border=QR_BORDER,
        image_factory=PilImage,
    )
    qr.add_data(text)
    try:
        qr.make(fit=True)
    except DataOverflowError as e:
        raise EncodingError(f"text of length {len(text)} does not fit in a QR code") from e
    return qr


def make_qr_png_b64(text: str, size: int = QR_RASTER_SIZE) -> str:
    """
    Render text as a size x size PNG QR code and return it base64 encoded.
    Raises EncodingError when the text exceeds the capacity at level L.
    """
    qr = _make_qr(text)
    # Largest whole box size that fits, then stretch to the exact raster.
    qr.box_size = max(1, size // (qr.modules_count + 2 * QR_BORDER))
    img = qr.make_image(fill_color="black", back_color="white").get_image()
    if img.size != (size, size):
        img = img.resize((size, size), Image.NEAREST)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode()


def print_qr_ascii(text: str, out: Optional[TextIO] = None):
    """Draw the QR code for text on a terminal."""
    _make_qr(text).print_ascii(out=out or sys.stdout, invert=True)
