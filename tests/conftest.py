import pytest
from fastapi.testclient import TestClient

from app.main import app, get_conversation_loop
from app.services.conversation import ConversationLoop
from app.services.tool_executor import ToolExecutor
from app.services.tools import ToolRegistry, Tool, CLOCK_DECLARATION, WEATHER_DECLARATION, get_current_time


class ScriptedSession:
    def __init__(self, client):
        self._client = client

    async def send_text(self, text):
        return self._client.reply(text)

    async def send_tool_result(self, result):
        return self._client.reply(result)


class ScriptedModelClient:
    """Plays back a fixed list of model turns; callables get the last sent item."""

    def __init__(self, *turns):
        self.turns = list(turns)
        self.sent = []
        self.histories = []

    def start_session(self, history):
        self.histories.append(list(history))
        return ScriptedSession(self)

    def reply(self, item):
        self.sent.append(item)
        if not self.turns:
            raise AssertionError(f"model called more times than scripted; last input: {item!r}")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        if callable(turn):
            return turn(item)
        return turn


async def fake_weather(args):
    return {"location": args["location"], "temperature": 21.5, "description": "clear sky", "country": "BR"}


@pytest.fixture
def scripted_model():
    return ScriptedModelClient


@pytest.fixture
def registry():
    return ToolRegistry([Tool(CLOCK_DECLARATION, get_current_time), Tool(WEATHER_DECLARATION, fake_weather)])


@pytest.fixture
def make_loop(registry):
    def _make(model_client, **kwargs):
        return ConversationLoop(model_client, ToolExecutor(registry), **kwargs)

    return _make


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_loop():
    def _use(loop):
        app.dependency_overrides[get_conversation_loop] = lambda: loop

    return _use
