# image_processing.py
from typing import Any, Dict

import cv2
import numpy as np

import logging
logger = logging.getLogger(__name__)

from models import OcrAccuracy

# Tesseract reads small glyphs poorly; upscale narrow screenshots
_MIN_OCR_WIDTH = 1200


class BoardingPassImageProcessor:
    """Image preparation for the OCR engine and the remote vision model."""

    @staticmethod
    def decode_image(data: bytes) -> np.ndarray:
        buffer = np.frombuffer(data, dtype=np.uint8)
        img = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if img is None:
            raise ValueError("Could not decode image data")
        return img

    @staticmethod
    def _gray(img: np.ndarray) -> np.ndarray:
        if img.ndim == 2:
            return img
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

    @staticmethod
    def analyze_image(img: np.ndarray) -> Dict[str, Any]:
        gray = BoardingPassImageProcessor._gray(img)
        lap_var = cv2.Laplacian(gray, cv2.CV_64F).var()
        contrast = gray.std()
        h, w = gray.shape[:2]
        info = {
            "width": w,
            "height": h,
            "sharpness": lap_var,
            "contrast": contrast,
            "needs_enhancement": lap_var < 100 or contrast < 35,
            "is_very_blurry": lap_var < 50,
            "is_low_contrast": contrast < 25,
            "is_small": w < _MIN_OCR_WIDTH,
        }
        logger.info(
            f"Image analysis: {w}x{h}, sharp={info['sharpness']:.1f}, "
            f"contrast={info['contrast']:.1f}"
        )
        return info

    @staticmethod
    def prepare_for_ocr(img: np.ndarray, accuracy: OcrAccuracy) -> np.ndarray:
        """FAST: plain grayscale. HIGH: upscale, CLAHE, denoise, Otsu when flat."""
        gray = BoardingPassImageProcessor._gray(img)
        if accuracy is OcrAccuracy.FAST:
            return gray

        analysis = BoardingPassImageProcessor.analyze_image(gray)
        if analysis["is_small"]:
            scale = _MIN_OCR_WIDTH / max(analysis["width"], 1)
            gray = cv2.resize(gray, None, fx=scale, fy=scale, interpolation=cv2.INTER_CUBIC)

        if not analysis["needs_enhancement"]:
            return gray

        clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(8, 8))
        enhanced = clahe.apply(gray)

        if analysis["is_very_blurry"]:
            denoised = cv2.fastNlMeansDenoising(enhanced, None, 10, 7, 21)
            kernel = np.array([[-1, -1, -1], [-1, 9, -1], [-1, -1, -1]])
            enhanced = cv2.filter2D(denoised, -1, kernel)

        if analysis["is_low_contrast"]:
            _, enhanced = cv2.threshold(enhanced, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)

        return enhanced

    @staticmethod
    def encode_for_upload(img: np.ndarray, max_dimension: int = 1024, quality: int = 80) -> bytes:
        """Downscale so the longest side is at most max_dimension and JPEG-encode."""
        h, w = img.shape[:2]
        longest = max(h, w)
        if longest > max_dimension:
            scale = max_dimension / longest
            img = cv2.resize(img, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)
        ok, buffer = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            raise ValueError("Could not encode image as JPEG")
        return buffer.tobytes()
