import io
from PIL import Image as PILImage
from PIL import UnidentifiedImageError


def validate_image(image_bytes, max_size):
    """Check an uploaded image before it is stored.

    - Checks file size
    - Verifies it's a real image via Pillow

    Returns:
        The Pillow format name (``JPEG``, ``PNG``...)

    Raises:
        ValueError on invalid input
    """
    if len(image_bytes) > max_size:
        raise ValueError(f"File too large: {len(image_bytes)} bytes (max {max_size})")

    try:
        img = PILImage.open(io.BytesIO(image_bytes))
        img.verify()  # verify it's a real image
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValueError("Invalid image file")
    return img.format


def validate_video(video_bytes, max_size):
    if not video_bytes:
        raise ValueError("Empty file")
    if len(video_bytes) > max_size:
        raise ValueError(f"File too large: {len(video_bytes)} bytes (max {max_size})")
