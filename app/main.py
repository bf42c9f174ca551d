# app/main.py
import uvicorn
import google.generativeai as genai
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Config, config
from app.errors import ChatError, UpstreamProtocolError, ValidationError
from app.logger import logger
from app.schemas import ChatRequest, ChatResponse, ErrorResponse, ResetResponse
from app.services.conversation import ConversationLoop
from app.services.model_client import GeminiModelClient
from app.services.tool_executor import ToolExecutor
from app.services.tools import build_registry

EMPTY_MESSAGE_ERROR = "Hmpf. You think you can summon me without a message, mortal?"
INVALID_PAYLOAD_ERROR = "Useless! That request makes no sense to me."
GENERIC_ERROR = "WRYYYYY! Something went terribly wrong, insignificant human! My patience has limits."
RESET_MESSAGE = "Hmpf. A fresh start for you to crawl back to me, worm!"

# --- FastAPI App Initialization ---
app = FastAPI(title="Dio Chat API")

# Global state to hold the conversation loop built at startup
app_state = {}

# --- CORS Configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_conversation_loop(settings: Config) -> ConversationLoop:
    registry = build_registry(settings)
    model_client = GeminiModelClient(
        settings.model_name,
        settings.system_instruction,
        registry.declarations,
    )
    return ConversationLoop(
        model_client,
        ToolExecutor(registry),
        max_tool_iterations=settings.max_tool_iterations,
        turn_timeout=settings.turn_timeout,
    )


# --- Server Startup Event ---
@app.on_event("startup")
async def startup_event():
    # Configure the Gemini client
    if not config.gemini_api_key:
        raise ValueError("GEMINI_API_KEY not found in .env file")
    genai.configure(api_key=config.gemini_api_key)

    if not config.openweather_api_key:
        logger.warning("OPENWEATHER_API_KEY not set; the weather tool will report an error.")

    app_state["conversation"] = build_conversation_loop(config)
    logger.info(f"Chat service ready with model {config.model_name}")


def get_conversation_loop() -> ConversationLoop:
    conversation = app_state.get("conversation")
    if conversation is None:
        raise UpstreamProtocolError("The chat service is still starting up.", status_code=503)
    return conversation


# --- Error Handlers ---
@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    logger.error(f"{request.url.path} failed with {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.message).model_dump())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected malformed payload on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content=ErrorResponse(error=INVALID_PAYLOAD_ERROR).model_dump())


# --- API Endpoints ---
@app.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat_handler(
    request: ChatRequest,
    conversation: ConversationLoop = Depends(get_conversation_loop),
):
    """
    Runs one chat turn and returns the model's reply with the extended history.
    """
    if not request.message or not request.message.strip():
        raise ValidationError(EMPTY_MESSAGE_ERROR)

    try:
        text, history = await conversation.run(request.message, request.history)
    except ChatError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in /chat: {e}")
        raise UpstreamProtocolError(GENERIC_ERROR) from e

    return ChatResponse(response=text, history=history)


@app.post("/reset", response_model=ResetResponse)
async def reset_handler():
    # History lives in the browser; there is nothing to clear here.
    return ResetResponse(message=RESET_MESSAGE)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=config.port)
