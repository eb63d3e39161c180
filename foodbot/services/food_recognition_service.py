# foodbot/services/food_recognition_service.py
"""
Food Recognition Service - 上傳圖片到 Food-101 辨識端點
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from foodbot.config.settings import Settings

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
HIGH_CONFIDENCE = 80
MODERATE_CONFIDENCE = 60


class FoodRecognitionError(Exception):
    def __init__(self, message: str, status: int = 0):
        self.status = status
        super().__init__(message)


class InvalidImageError(FoodRecognitionError):
    pass


@dataclass
class Recognition:
    success: bool
    prediction: Optional[str] = None
    confidence: float = 0.0
    error: Optional[str] = None

    @property
    def confidence_pct(self) -> float:
        return round((self.confidence or 0.0) * 100, 1)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Recognition":
        return cls(
            success=bool(payload.get("success")),
            prediction=payload.get("prediction"),
            confidence=float(payload.get("confidence") or 0.0),
            error=payload.get("error"),
        )


def validate_image(content_type: Optional[str], size: int) -> None:
    if not (content_type or "").startswith("image/"):
        raise InvalidImageError("❌ **Error:** Por favor, sube solo archivos de imagen (JPG, PNG, WebP, etc.)")
    if size > MAX_IMAGE_BYTES:
        raise InvalidImageError("❌ **Error:** La imagen es muy grande. Por favor, sube una imagen menor a **5MB**.")


def format_recognition(recognition: Recognition) -> str:
    if not (recognition.success and recognition.prediction):
        msg = "❌ **Error en el análisis**\n\n"
        if recognition.error:
            msg += f"**Detalle:** {recognition.error}\n\n"
        msg += "**Consejo:** Intenta con otra imagen más clara."
        return msg

    pct = recognition.confidence_pct
    msg = "🎯 **¡Análisis completado!**\n\n"
    msg += f"🍽️ **Comida detectada:** {recognition.prediction}\n"
    msg += f"📊 **Confianza:** {pct:.1f}%\n\n"

    if pct > HIGH_CONFIDENCE:
        msg += "✅ **¡Excelente detección!** Estoy muy seguro de este resultado."
    elif pct > MODERATE_CONFIDENCE:
        msg += f"⚠️ **Detección moderada.** Podría ser {recognition.prediction} o algo similar."
    else:
        msg += "🤔 **Detección con baja confianza.** La imagen podría no ser muy clara."
    return msg


def format_error(error: FoodRecognitionError) -> str:
    msg = "❌ **Error al conectar con el servidor**\n\n"
    if error.status == 0:
        msg += "**Problema:** No se pudo conectar con el servidor."
    elif error.status >= 500:
        msg += "**Problema:** Error interno del servidor."
    else:
        msg += f"**Error {error.status}:** {str(error) or 'Algo salió mal'}"
    return msg


class FoodRecognitionService:
    def __init__(self, url: str, *, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.http = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "FoodRecognitionService":
        return cls(settings.food_vision_url, timeout=settings.food_vision_timeout)

    def recognize(self, data: bytes, filename: str = "image.jpg", content_type: str = "image/jpeg") -> Recognition:
        validate_image(content_type, len(data))

        try:
            resp = self.http.post(
                self.url,
                files={"image": (filename, data, content_type)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("辨識端點連線失敗: %s", e)
            raise FoodRecognitionError(str(e), status=0) from e

        if not resp.ok:
            logger.error("辨識端點回傳 %s: %s", resp.status_code, resp.text[:200])
            raise FoodRecognitionError(resp.reason or "HTTP error", status=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            raise FoodRecognitionError("回應不是 JSON", status=resp.status_code) from e

        recognition = Recognition.from_payload(payload)
        logger.info("辨識結果: %s (%.1f%%)", recognition.prediction, recognition.confidence_pct)
        return recognition
