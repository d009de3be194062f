# Utility modules for Recipe Book
from .image_handler import process_image_data, ImageValidationError
