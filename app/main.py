#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from bp_rag.config import AppSettings
from bp_rag.engine import DEFAULT_USER_ID, ChatOrchestrator, build_orchestrator
from bp_rag.errors import RateLimitedError
from bp_rag.logging_config import bind_request_context, clear_request_context, configure_logging

logger = structlog.get_logger(__name__)

QUOTA_EXCEEDED_MESSAGE = "【Системное уведомление】Квота модели исчерпана, отправьте сообщение повторно примерно через 30 секунд."
GENERIC_FAILURE_MESSAGE = "Сервер временно не может ответить."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Читает настройки и собирает оркестратор; без WEAVIATE_URL/GEMINI_API_KEY старт падает."""
    settings = AppSettings()
    configure_logging(settings.log_level, settings.log_json)
    orchestrator = build_orchestrator(settings)
    app.state.orchestrator = orchestrator
    logger.info("app.started", index_name=settings.index_name, llm_model=settings.llm_model)
    try:
        yield
    finally:
        await orchestrator.aclose()


app = FastAPI(title="Blood Pressure Monitor Assistant", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ChatRequest(BaseModel):
    """Тело запроса к чату: сообщение и (опционально) идентификатор пользователя."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    user_id: Optional[str] = Field(default=None, alias="userId")


class ChatResponse(BaseModel):
    """Ответ чата: всегда содержит поле text, в том числе при ошибках."""
    text: str


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Некорректное тело запроса тоже получает ответ с полем text."""
    logger.warning("chat.invalid_request", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=500, content={"text": GENERIC_FAILURE_MESSAGE})


@app.get("/health")
def health() -> Dict[str, str]:
    """Простой health-check эндпоинт для мониторинга/оркестраторов."""
    return {"status": "ok"}


@app.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Отвечает на вопрос по руководству тонометра.

    429 — квота модели исчерпана и повторы не помогли, 500 — любая другая ошибка.
    """
    user_id = req.user_id or DEFAULT_USER_ID
    bind_request_context(user_id)
    try:
        text = await orchestrator.handle(req.message, user_id)
        return ChatResponse(text=text)
    except RateLimitedError:
        logger.warning("chat.quota_exceeded")
        return JSONResponse(status_code=429, content={"text": QUOTA_EXCEEDED_MESSAGE})
    except Exception:
        logger.exception("chat.failed")
        return JSONResponse(status_code=500, content={"text": GENERIC_FAILURE_MESSAGE})
    finally:
        clear_request_context()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=False)
