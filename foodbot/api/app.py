import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, File, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from foodbot.config.settings import Settings
from foodbot.dm.dialogue_manager import DialogueManager
from foodbot.dm.dialogue_engine import DialogueEngine
from foodbot.dm.intents import load_dialogue_config
from foodbot.dm.session_store import InMemorySessionStore
from foodbot.services.assistant_service import AssistantService, AssistantError
from foodbot.services.food_recognition_service import (
    FoodRecognitionService,
    FoodRecognitionError,
    InvalidImageError,
    format_error,
    format_recognition,
)

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="FoodBot API")

# 例外細節只寫 log，不回給使用者
DIALOGUE_ERROR_REPLY = "Lo siento, ocurrió un error. Por favor, intenta de nuevo."

# 初始化服務（API 不模擬思考延遲）
_session_store = InMemorySessionStore()
_dialogue_manager = DialogueManager(
    store=_session_store,
    engine=DialogueEngine(load_dialogue_config(settings.locale)),
)
_assistant_service: Optional[AssistantService] = None
_food_service: Optional[FoodRecognitionService] = None


def get_dialogue_manager() -> DialogueManager:
    return _dialogue_manager


def get_assistant_service() -> AssistantService:
    global _assistant_service
    if _assistant_service is None:
        try:
            _assistant_service = AssistantService.from_settings(settings)
        except AssistantError as e:
            raise HTTPException(status_code=503, detail=str(e))
    return _assistant_service


def get_food_service() -> FoodRecognitionService:
    global _food_service
    if _food_service is None:
        _food_service = FoodRecognitionService.from_settings(settings)
    return _food_service


class TextDialogueRequest(BaseModel):
    """文本對話請求"""
    session_id: str
    text: str


class TextDialogueResponse(BaseModel):
    """文本對話響應"""
    session_id: str
    response: str
    state: str
    status: str = "ok"


class AssistantMessageRequest(BaseModel):
    text: str


class AssistantMessageResponse(BaseModel):
    response: str


class TranscriptionResponse(BaseModel):
    text: str


class SpeechRequest(BaseModel):
    text: str


class ImageRequest(BaseModel):
    prompt: str


class RecognitionResponse(BaseModel):
    prediction: Optional[str] = None
    confidence: float
    message: str


@app.get("/healthz")
async def healthz():
    return {"ok": True}


# ============================================================================
# 點餐對話
# ============================================================================

@app.post("/dialogue/text", response_model=TextDialogueResponse)
def text_dialogue(request: TextDialogueRequest, dm: DialogueManager = Depends(get_dialogue_manager)):
    """
    文本對話端點（文字輸入，文字輸出）

    用例：
        curl -X POST http://localhost:8000/dialogue/text \
          -H "Content-Type: application/json" \
          -d '{"session_id": "user123", "text": "quiero pedir"}'
    """
    try:
        response = dm.handle(request.session_id, request.text)
        return TextDialogueResponse(
            session_id=request.session_id,
            response=response,
            state=dm.session(request.session_id).state.value,
            status="ok",
        )
    except Exception:
        logger.exception("dialogue turn failed for session %s", request.session_id)
        return TextDialogueResponse(
            session_id=request.session_id,
            response=DIALOGUE_ERROR_REPLY,
            state=dm.session(request.session_id).state.value,
            status="error",
        )


@app.delete("/dialogue/{session_id}")
async def reset_dialogue(session_id: str, dm: DialogueManager = Depends(get_dialogue_manager)):
    dm.reset(session_id)
    return {"session_id": session_id, "status": "reset"}


# ============================================================================
# 助理 / 語音
# ============================================================================

@app.post("/assistant/message", response_model=AssistantMessageResponse)
def assistant_message(request: AssistantMessageRequest, assistant: AssistantService = Depends(get_assistant_service)):
    try:
        return AssistantMessageResponse(response=assistant.send_message(request.text))
    except AssistantError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/assistant/transcribe", response_model=TranscriptionResponse)
def assistant_transcribe(
    audio_file: UploadFile = File(...),
    assistant: AssistantService = Depends(get_assistant_service),
):
    data = audio_file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty audio file")
    try:
        text = assistant.transcribe_audio(data, filename=audio_file.filename or "audio.webm")
    except AssistantError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return TranscriptionResponse(text=text)


@app.post("/assistant/speech")
def assistant_speech(request: SpeechRequest, assistant: AssistantService = Depends(get_assistant_service)):
    try:
        audio = assistant.generate_speech(request.text)
    except AssistantError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(content=audio, media_type="audio/mpeg")


@app.post("/image/generate")
def image_generate(request: ImageRequest, assistant: AssistantService = Depends(get_assistant_service)):
    if not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Empty prompt")
    try:
        image = assistant.generate_image(request.prompt)
    except AssistantError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(content=image, media_type="image/png")


# ============================================================================
# 食物辨識
# ============================================================================

@app.post("/vision/recognize", response_model=RecognitionResponse)
def vision_recognize(
    image: UploadFile = File(...),
    service: FoodRecognitionService = Depends(get_food_service),
):
    data = image.file.read()
    try:
        result = service.recognize(
            data,
            filename=image.filename or "image.jpg",
            content_type=image.content_type or "",
        )
    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FoodRecognitionError as e:
        raise HTTPException(status_code=502, detail=format_error(e))

    return RecognitionResponse(
        prediction=result.prediction,
        confidence=result.confidence,
        message=format_recognition(result),
    )
