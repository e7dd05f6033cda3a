"""Image upload validation and processing for posts."""

import os
import io
from typing import Tuple
from fastapi import UploadFile, status
from PIL import Image, UnidentifiedImageError

from src.shared.social.errors import api_error

# Allowed image MIME types
ALLOWED_IMAGE_TYPES = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/webp': '.webp',
}

# Max file size: 5MB per image
MAX_IMAGE_SIZE_BYTES = 5 * 1024 * 1024

# Larger images are scaled down to fit, keeping aspect ratio
MAX_IMAGE_DIMENSIONS = (2048, 2048)

# Uploads whose header declares more pixels than this are refused before decoding
MAX_IMAGE_PIXELS = 50_000_000

OUTPUT_CONTENT_TYPE = 'image/jpeg'
OUTPUT_EXTENSION = '.jpg'


def validate_image_file(file: UploadFile) -> int:
    """Validate image file type and size. Returns the size in bytes."""
    # Check content type
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Invalid file type",
            f"Allowed types: {', '.join(ALLOWED_IMAGE_TYPES.keys())}"
        )

    # Check file size without reading the whole upload into memory
    file.file.seek(0, os.SEEK_END)
    file_size = file.file.tell()
    file.file.seek(0)

    if file_size > MAX_IMAGE_SIZE_BYTES:
        size_mb = file_size / (1024 * 1024)
        max_mb = MAX_IMAGE_SIZE_BYTES / (1024 * 1024)
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Image too large",
            f"Image is {size_mb:.1f}MB. Maximum size: {max_mb:g}MB"
        )

    if file_size == 0:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Image file is empty")

    return file_size


def process_image(file: UploadFile) -> Tuple[bytes, str, str]:
    """
    Validate an upload and re-encode it for storage.

    Re-encoding drops metadata (EXIF, GPS) and guarantees the stored object is
    a decodable image whatever the client claimed.

    Returns:
        Tuple of (jpeg_bytes, content_type, file_extension)
    """
    validate_image_file(file)

    file.file.seek(0)
    image_data = file.file.read()

    # Verify it's a valid image using PIL
    try:
        image = Image.open(io.BytesIO(image_data))
        if image.width * image.height > MAX_IMAGE_PIXELS:
            raise api_error(
                status.HTTP_400_BAD_REQUEST,
                "Image dimensions too large",
                f"Image is {image.width}x{image.height}. Maximum: {MAX_IMAGE_PIXELS} pixels"
            )
        image.load()
        # Convert to RGB if necessary (handles RGBA, P, etc.)
        if image.mode in ('RGBA', 'LA', 'P'):
            # Create white background for transparency
            rgb_image = Image.new('RGB', image.size, (255, 255, 255))
            if image.mode == 'P':
                image = image.convert('RGBA')
            rgb_image.paste(image, mask=image.split()[-1])
            image = rgb_image
        elif image.mode != 'RGB':
            image = image.convert('RGB')
    except Image.DecompressionBombError as e:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Image dimensions too large",
            str(e)
        )
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Invalid image file",
            str(e)
        )

    if image.width > MAX_IMAGE_DIMENSIONS[0] or image.height > MAX_IMAGE_DIMENSIONS[1]:
        image.thumbnail(MAX_IMAGE_DIMENSIONS, Image.Resampling.LANCZOS)

    output = io.BytesIO()
    image.save(output, 'JPEG', quality=85, optimize=True)
    return output.getvalue(), OUTPUT_CONTENT_TYPE, OUTPUT_EXTENSION
