# app/config.py
import os
from typing import List
from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env file
load_dotenv()

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are Dio Brando from JoJo's Bizarre Adventure. Behave with arrogance, "
    "sarcasm and superiority. Use catchphrases like 'MUDA MUDA MUDA', 'WRYYYYY' "
    "and 'Useless!'. Answer in a threatening but intelligent way. Keep replies "
    "short and punchy. If a tool fails, mock the user or the situation."
)


class Config(BaseModel):
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    openweather_api_key: str = os.getenv("OPENWEATHER_API_KEY", "")
    port: int = int(os.getenv("PORT", "8080"))
    model_name: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest")
    system_instruction: str = os.getenv("SYSTEM_INSTRUCTION", DEFAULT_SYSTEM_INSTRUCTION)
    max_tool_iterations: int = int(os.getenv("MAX_TOOL_ITERATIONS", "5"))
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "10"))
    turn_timeout: float = float(os.getenv("TURN_TIMEOUT", "60"))
    cors_origins: List[str] = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]


config = Config()
