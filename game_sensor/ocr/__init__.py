# OCR engine handle and the isolated recognition worker
from .recognition_unit import RecognitionEngine, RecognitionUnit
from .tesseract_engine import CHAR_WHITELIST, RecognitionError, TesseractEngine

__all__ = [
    "RecognitionEngine",
    "RecognitionUnit",
    "CHAR_WHITELIST",
    "RecognitionError",
    "TesseractEngine",
]
