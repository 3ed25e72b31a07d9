# Pytesseract engine handle restricted to the game's UI character set
import io
import logging
import os
from typing import Optional, Tuple

import pytesseract
from dotenv import load_dotenv
from PIL import Image, ImageEnhance, ImageOps

load_dotenv()

# Tesseract location overrides for installs outside PATH
tesseract_cmd = os.getenv("TESSERACT_CMD")
if tesseract_cmd and os.path.exists(tesseract_cmd):
    pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

tessdata_prefix = os.getenv("TESSDATA_PREFIX")
if tessdata_prefix:
    os.environ["TESSDATA_PREFIX"] = tessdata_prefix

logger = logging.getLogger(__name__)

# Letters, digits, basic punctuation and space as rendered by the HUD font
CHAR_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789 /():-!."


class RecognitionError(RuntimeError):
    """Engine could not be used (binary missing, not initialised)."""


class TesseractEngine:  # Owned OCR handle: init() once, recognise() many times, shutdown() at exit

    def __init__(
        self,
        whitelist: str = CHAR_WHITELIST,
        psm: int = 6,
        timeout_s: float = 10.0,
        lang: str = "eng",
        upscale_below_px: int = 40,
    ):
        self.whitelist = whitelist
        self.psm = psm  # 6 = single uniform block; HUD popups can span two lines
        self.timeout_s = timeout_s
        self.lang = lang
        self.upscale_below_px = upscale_below_px
        self._config: Optional[str] = None
        self._version: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._config is not None

    def init(self) -> None:
        if self.ready:
            return
        try:
            self._version = str(pytesseract.get_tesseract_version())
        except Exception as e:
            raise RecognitionError(f"Tesseract not available: {e}") from e

        # Word gaps come from layout analysis, the space is not a recognisable glyph
        glyphs = self.whitelist.replace(" ", "")
        self._config = f"--psm {self.psm} -c tessedit_char_whitelist={glyphs}"
        logger.info(f"Tesseract {self._version} ready (psm={self.psm}, timeout={self.timeout_s}s)")

    def recognise(self, image_buffer: bytes) -> Tuple[str, float]:
        """OCR a PNG buffer, returning (text, mean word confidence 0-100)."""
        if not self.ready:
            raise RecognitionError("Engine used before init()")

        with Image.open(io.BytesIO(image_buffer)) as raw:
            image = self._prepare(raw)

        data = pytesseract.image_to_data(
            image,
            lang=self.lang,
            config=self._config,
            timeout=self.timeout_s,
            output_type=pytesseract.Output.DICT,
        )
        return self._collect(data)

    def shutdown(self) -> None:
        if self.ready:
            logger.debug("Tesseract engine released")
        self._config = None

    def _prepare(self, image: Image.Image) -> Image.Image:
        # Light text on dark HUD panels reads better inverted to dark-on-light
        grey = ImageOps.grayscale(image)
        if grey.height < self.upscale_below_px:
            scale = self.upscale_below_px / grey.height
            grey = grey.resize((int(grey.width * scale), self.upscale_below_px), Image.Resampling.LANCZOS)
        if self._mean_brightness(grey) < 128:
            grey = ImageOps.invert(grey)
        return ImageEnhance.Contrast(grey).enhance(1.5)

    @staticmethod
    def _mean_brightness(image: Image.Image) -> float:
        histogram = image.histogram()
        total = sum(histogram)
        if not total:
            return 0.0
        return sum(level * count for level, count in enumerate(histogram)) / total

    @staticmethod
    def _collect(data: dict) -> Tuple[str, float]:
        lines = {}
        confidences = []
        for i, word in enumerate(data["text"]):
            word = (word or "").strip()
            conf = float(data["conf"][i])
            if not word or conf < 0:
                continue
            line_key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(line_key, []).append(word)
            confidences.append(conf)

        if not confidences:
            return "", 0.0

        text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
        return text, sum(confidences) / len(confidences)
