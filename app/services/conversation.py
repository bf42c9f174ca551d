# app/services/conversation.py
import asyncio
from typing import List, Optional, Sequence, Tuple

from app.errors import UpstreamProtocolError, UpstreamTimeoutError
from app.logger import logger
from app.schemas import Message
from app.services.history import TurnHistory
from app.services.model_client import ModelClient, TextReply, ToolCallsRequested
from app.services.tool_executor import ToolExecutor

DEFAULT_MAX_TOOL_ITERATIONS = 5

FALLBACK_TEXT = (
    "Hmpf. I am left speechless by so much insignificance. "
    "Or perhaps my greatness is too much for such a simple task."
)


class ConversationLoop:
    """
    Runs one chat turn: sends the user message, then keeps executing the tool
    calls the model asks for until it settles on a text answer.

    Only the first tool call of each model response is honored. The number of
    tool round trips is capped by max_tool_iterations, and the whole turn by
    turn_timeout seconds when one is given.
    """

    def __init__(
        self,
        model_client: ModelClient,
        executor: ToolExecutor,
        max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
        turn_timeout: Optional[float] = None,
    ):
        if max_tool_iterations < 1:
            raise ValueError("max_tool_iterations must be at least 1")
        self._model_client = model_client
        self._executor = executor
        self._max_tool_iterations = max_tool_iterations
        self._turn_timeout = turn_timeout

    async def run(self, user_message: str, prior_history: Sequence[Message]) -> Tuple[str, List[Message]]:
        try:
            return await asyncio.wait_for(self._run_turn(user_message, prior_history), self._turn_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Chat turn exceeded {self._turn_timeout}s")
            raise UpstreamTimeoutError("This is taking far too long. Ask me again later.") from e

    async def _run_turn(self, user_message: str, prior_history: Sequence[Message]) -> Tuple[str, List[Message]]:
        history = TurnHistory(prior_history)
        session = self._model_client.start_session(history.prior)

        history.add_user_text(user_message)
        turn = await session.send_text(user_message)

        iterations = 0
        while isinstance(turn, ToolCallsRequested):
            if iterations >= self._max_tool_iterations:
                raise UpstreamProtocolError(
                    f"The model kept calling tools after {self._max_tool_iterations} attempts. Giving up."
                )
            iterations += 1

            call = turn.calls[0]
            if len(turn.calls) > 1:
                ignored = ", ".join(c.name for c in turn.calls[1:])
                logger.warning(f"Model requested {len(turn.calls)} tool calls; only running {call.name}, ignoring {ignored}")

            history.add_tool_call(call)
            result = await self._executor.execute(call.name, call.args)
            history.add_tool_result(result)
            turn = await session.send_tool_result(result)

        if isinstance(turn, TextReply):
            text = turn.text
        else:
            logger.warning("Model response had no text after processing tool calls.")
            text = FALLBACK_TEXT

        history.add_model_text(text)
        return text, history.to_messages()
