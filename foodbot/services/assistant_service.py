# foodbot/services/assistant_service.py
"""
Assistant Service - 透過 OpenAI Assistants API 跟助理對話
(附語音轉文字 / 文字轉語音 / 圖片生成)
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Callable, Optional

from openai import OpenAI

from foodbot.config.settings import Settings

logger = logging.getLogger(__name__)

TERMINAL_FAILURES = ("failed", "cancelled", "expired")


class AssistantError(Exception):
    """助理呼叫失敗"""


class AssistantRunError(AssistantError):
    def __init__(self, status: str, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"Run 結束狀態為 {status}")


class AssistantTimeoutError(AssistantError):
    """輪詢次數用完仍未完成"""


class AssistantService:
    """助理服務類別"""

    def __init__(
        self,
        assistant_id: str,
        client: Optional[Any] = None,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        poll_interval: float = 0.1,
        max_poll_attempts: int = 300,
        transcription_model: str = "whisper-1",
        speech_model: str = "tts-1",
        speech_voice: str = "alloy",
        image_model: str = "gpt-image-1",
        image_size: str = "1024x1024",
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.assistant_id = assistant_id
        # 重試 / timeout 交給 SDK
        self.client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.transcription_model = transcription_model
        self.speech_model = speech_model
        self.speech_voice = speech_voice
        self.image_model = image_model
        self.image_size = image_size
        self._sleep = sleep
        self.thread_id: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "AssistantService":
        if not settings.openai_assistant_id:
            raise AssistantError("OPENAI_ASSISTANT_ID 未設定")
        return cls(
            settings.openai_assistant_id,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.openai_timeout,
            max_retries=settings.openai_max_retries,
            **kwargs,
        )

    def _ensure_thread(self) -> str:
        if self.thread_id is None:
            thread = self.client.beta.threads.create()
            self.thread_id = thread.id
            logger.info("Thread 建立: %s", self.thread_id)
        return self.thread_id

    def reset_thread(self) -> None:
        self.thread_id = None

    def send_message(self, text: str) -> str:
        """
        送出使用者訊息並等待助理回覆

        Args:
            text: 使用者訊息

        Returns:
            助理最新一則回覆的文字
        """
        try:
            return self._send_and_wait(text)
        except AssistantError:
            raise
        except Exception as e:
            # SDK / 連線錯誤統一包成 AssistantError
            logger.error("助理呼叫失敗: %s", e)
            raise AssistantError(f"助理呼叫失敗: {e}") from e

    def _send_and_wait(self, text: str) -> str:
        thread_id = self._ensure_thread()
        beta = self.client.beta.threads

        beta.messages.create(thread_id=thread_id, role="user", content=text)
        run = beta.runs.create(thread_id=thread_id, assistant_id=self.assistant_id)
        logger.debug("Run 開始: %s", run.id)

        # ====== Polling ======
        for attempt in range(1, self.max_poll_attempts + 1):
            run = beta.runs.retrieve(run.id, thread_id=thread_id)
            status = run.status
            logger.debug("[%d] Run 狀態: %s", attempt, status)

            if status == "completed":
                return self._latest_reply(thread_id)

            if status in TERMINAL_FAILURES:
                logger.error("Run %s 失敗，狀態 %s", run.id, status)
                raise AssistantRunError(status)

            if status == "requires_action":
                logger.warning("Run %s 需要額外動作: %s", run.id, getattr(run, "required_action", None))
                raise AssistantRunError(status, "助理需要額外動作（不支援 tool calls）")

            self._sleep(self.poll_interval)

        logger.error("Run %s 逾時（%d 次輪詢）", run.id, self.max_poll_attempts)
        raise AssistantTimeoutError("助理回覆逾時")

    def _latest_reply(self, thread_id: str) -> str:
        messages = self.client.beta.threads.messages.list(thread_id=thread_id)
        data = list(getattr(messages, "data", None) or [])
        if not data:
            raise AssistantError("取不到助理回覆")

        last = data[0]
        for part in getattr(last, "content", None) or []:
            text = getattr(part, "text", None)
            if text is not None and getattr(text, "value", None):
                return text.value

        raise AssistantError("助理回覆沒有文字內容")

    def transcribe_audio(self, data: bytes, filename: str = "audio.webm") -> str:
        """語音轉文字"""
        try:
            result = self.client.audio.transcriptions.create(
                model=self.transcription_model,
                file=(filename, data),
            )
        except Exception as e:
            logger.error("語音轉文字失敗: %s", e)
            raise AssistantError(f"語音轉文字失敗: {e}") from e
        return (getattr(result, "text", "") or "").strip()

    def generate_speech(self, text: str) -> bytes:
        """文字轉語音，回傳音訊 bytes（mp3）"""
        try:
            response = self.client.audio.speech.create(
                model=self.speech_model,
                voice=self.speech_voice,
                input=text,
            )
        except Exception as e:
            logger.error("文字轉語音失敗: %s", e)
            raise AssistantError(f"文字轉語音失敗: {e}") from e
        return response.content

    def generate_image(self, prompt: str) -> bytes:
        """依描述生成圖片，回傳 PNG bytes"""
        try:
            result = self.client.images.generate(
                model=self.image_model,
                prompt=prompt,
                size=self.image_size,
            )
        except Exception as e:
            logger.error("圖片生成失敗: %s", e)
            raise AssistantError(f"圖片生成失敗: {e}") from e

        data = list(getattr(result, "data", None) or [])
        b64 = getattr(data[0], "b64_json", None) if data else None
        if not b64:
            raise AssistantError("圖片生成沒有回傳影像")
        return base64.b64decode(b64)
