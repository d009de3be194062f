"""
Image Validation and Processing Module

Validates image blobs before they are stored on a recipe or step.
Re-encodes images through PIL to JPEG to strip anything that is not pixels.
"""

from io import BytesIO

from PIL import Image


class ImageValidationError(Exception):
    """Raised when an image fails validation."""
    pass


# Allowed image formats (PIL format names)
ALLOWED_FORMATS = {'JPEG', 'PNG', 'GIF', 'WEBP'}

# Maximum image dimensions (prevent decompression bombs)
MAX_WIDTH = 4096
MAX_HEIGHT = 4096

# Maximum blob size (10MB)
MAX_FILE_SIZE = 10 * 1024 * 1024


def process_image_data(image_data, max_width=2048, max_height=2048, max_size=MAX_FILE_SIZE):
    """
    Validate and re-encode image bytes as JPEG.

    Args:
        image_data: Raw image bytes or file-like object
        max_width: Maximum width to resize to (default 2048)
        max_height: Maximum height to resize to (default 2048)
        max_size: Maximum accepted blob size in bytes

    Returns:
        bytes: The JPEG-encoded image

    Raises:
        ImageValidationError: If the image is invalid or potentially malicious
    """
    # Handle bytes or file-like object
    if isinstance(image_data, (bytes, bytearray)):
        content = bytes(image_data)
    else:
        image_data.seek(0)
        content = image_data.read()

    if not content:
        raise ImageValidationError("Image data is empty")
    if len(content) > max_size:
        raise ImageValidationError(f"Image too large: {len(content)} bytes (max {max_size})")
    image_buffer = BytesIO(content)

    try:
        # Open image with PIL (validates format)
        img = Image.open(image_buffer)

        # Verify it's actually an image (detects corrupted/fake files)
        img.verify()

        # Re-open after verify (verify() leaves file in uncertain state)
        image_buffer.seek(0)
        img = Image.open(image_buffer)

        if img.format not in ALLOWED_FORMATS:
            raise ImageValidationError(
                f"Invalid image format: {img.format}. "
                f"Allowed formats: {', '.join(sorted(ALLOWED_FORMATS))}"
            )

        # Check dimensions (prevent decompression bombs)
        width, height = img.size
        if width > MAX_WIDTH or height > MAX_HEIGHT:
            raise ImageValidationError(
                f"Image dimensions too large: {width}x{height}. "
                f"Maximum: {MAX_WIDTH}x{MAX_HEIGHT}"
            )

        if width > max_width or height > max_height:
            img.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)

        # Convert RGBA to RGB for JPEG (remove alpha channel)
        if img.mode in ('RGBA', 'LA', 'P'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'P':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1] if img.mode in ('RGBA', 'LA') else None)
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')

        output = BytesIO()
        img.save(output, 'JPEG', quality=85, optimize=True)
        return output.getvalue()

    except ImageValidationError:
        raise
    except Image.DecompressionBombError:
        raise ImageValidationError("Image appears to be a decompression bomb (too large when decoded)")
    except Exception as e:
        raise ImageValidationError(f"Invalid or corrupted image: {str(e)}")
