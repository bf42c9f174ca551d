# app/services/tools.py
import httpx
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from app.errors import ToolExecutionError
from app.logger import logger

WEATHER_API_URL = "https://api.openweathermap.org/data/2.5/weather"
WEATHER_UNITS = "metric"
WEATHER_LANG = "en"

ToolHandler = Callable[[Dict[str, Any]], Union[Dict[str, Any], Awaitable[Dict[str, Any]]]]


@dataclass
class ToolParam:
    """A single named parameter of a tool."""
    name: str
    type: str
    description: str
    required: bool = False


@dataclass
class ToolDeclaration:
    """What the model is told about a tool: its name, purpose and parameters."""
    name: str
    description: str
    params: Dict[str, ToolParam] = field(default_factory=dict)

    @property
    def required(self) -> List[str]:
        return [p.name for p in self.params.values() if p.required]


@dataclass
class Tool:
    declaration: ToolDeclaration
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.declaration.name


class ToolRegistry:
    """Fixed mapping from tool name to its declaration and handler."""

    def __init__(self, tools: Iterable[Tool]):
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Tool '{tool.name}' is registered twice")
            self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    @property
    def declarations(self) -> List[ToolDeclaration]:
        return [tool.declaration for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


# --- Tool Declarations ---
CLOCK_DECLARATION = ToolDeclaration(
    name="get_current_time",
    description=(
        "Gets the current date and time. Use it when the user asks about the "
        "time, the date, or what day it is."
    ),
)

WEATHER_DECLARATION = ToolDeclaration(
    name="get_weather",
    description=(
        "Gets the current weather for a specific city. Use it when the user asks "
        "about the weather or temperature somewhere."
    ),
    params={
        "location": ToolParam(
            name="location",
            type="string",
            description="The city and, optionally, the country code (e.g. 'Curitiba, BR', 'London, UK', 'Tokyo').",
            required=True,
        )
    },
)


# --- Tool Handlers ---
def get_current_time(args: Dict[str, Any]) -> Dict[str, Any]:
    """Returns the server's local time as a locale-formatted string."""
    return {"current_time": datetime.now().strftime("%c")}


def make_weather_tool(
    api_key: str,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ToolHandler:
    """
    Builds the weather handler around the OpenWeatherMap credential.

    Every failure is raised as ToolExecutionError so the model gets to see it.
    """

    async def get_weather(args: Dict[str, Any]) -> Dict[str, Any]:
        location = str(args.get("location") or "").strip()

        if not api_key:
            logger.error("OpenWeatherMap API key is not configured.")
            raise ToolExecutionError("The weather API key is not configured on the server.")
        if not location:
            raise ToolExecutionError("No location was given for the weather lookup.")

        params = {"q": location, "appid": api_key, "units": WEATHER_UNITS, "lang": WEATHER_LANG}
        failure = f"Failed to get the weather for '{location}'. Maybe the place does not even exist!"

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                response = await client.get(WEATHER_API_URL, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"OpenWeatherMap returned {e.response.status_code} for '{location}': {e.response.text}")
            if e.response.status_code == 404:
                raise ToolExecutionError(f"Could not find the city '{location}'. Try again.") from e
            raise ToolExecutionError(failure) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error calling OpenWeatherMap for '{location}': {e}")
            raise ToolExecutionError(failure) from e

        try:
            return {
                "location": data["name"],
                "temperature": data["main"]["temp"],
                "description": data["weather"][0]["description"],
                "country": data["sys"]["country"],
            }
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected OpenWeatherMap payload for '{location}': {data}")
            raise ToolExecutionError(failure) from e

    return get_weather


def build_registry(config, transport: Optional[httpx.AsyncBaseTransport] = None) -> ToolRegistry:
    """Registers the clock and weather tools shipped with the service."""
    return ToolRegistry(
        [
            Tool(CLOCK_DECLARATION, get_current_time),
            Tool(
                WEATHER_DECLARATION,
                make_weather_tool(config.openweather_api_key, config.http_timeout, transport),
            ),
        ]
    )
