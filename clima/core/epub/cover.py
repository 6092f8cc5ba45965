"""
Cover image service.

Shrinks the edition's featured image to a small JPEG that e-readers
display quickly.
"""
import io
from pathlib import Path
from typing import BinaryIO, Union

from PIL import Image


class CoverImageService:
    """
    Service for producing ePub cover images.

    - Fits inside 600x600 pixels, aspect ratio kept, never enlarged
    - Format: JPEG, RGB
    - Quality: 85%

    Example:
        >>> service = CoverImageService()
        >>> jpeg = service.generate(featured_image_bytes)
    """

    SIZE = (600, 600)
    QUALITY = 85
    FORMAT = 'JPEG'
    MEDIA_TYPE = 'image/jpeg'
    FILE_NAME = 'cover.jpg'

    def generate(self, source: Union[str, Path, bytes, BinaryIO]) -> bytes:
        """
        Produce the cover JPEG.

        Args:
            source: Image file path, bytes, or file-like object

        Returns:
            JPEG bytes

        Raises:
            PIL.UnidentifiedImageError: The source is not an image
        """
        img = self._load_image(source)

        # JPEG has no alpha: flatten transparent images on white
        if img.mode in ('RGBA', 'LA', 'P'):
            if img.mode == 'P':
                img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')

        img.thumbnail(self.SIZE, Image.Resampling.LANCZOS)

        output = io.BytesIO()
        img.save(output, format=self.FORMAT, quality=self.QUALITY, optimize=True)
        return output.getvalue()

    def _load_image(self, source: Union[str, Path, bytes, BinaryIO]) -> Image.Image:
        """Load image from various sources."""
        if isinstance(source, (str, Path)):
            img = Image.open(source)
        elif isinstance(source, bytes):
            img = Image.open(io.BytesIO(source))
        else:
            img = Image.open(source)
        img.load()
        return img
