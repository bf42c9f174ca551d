# app/services/tool_executor.py
import inspect
from typing import Any, Dict, Optional

from app.errors import ToolExecutionError, UnknownToolError
from app.logger import logger
from app.services.history import ToolCallResult
from app.services.tools import ToolRegistry


class ToolExecutor:
    """Runs registered tools and always answers with a ToolCallResult."""

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def execute(self, name: str, args: Optional[Dict[str, Any]] = None) -> ToolCallResult:
        args = dict(args or {})
        try:
            tool = self._registry.get(name)
            if tool is None:
                raise UnknownToolError(name)

            logger.info(f"Executing tool: {name} with args: {args}")
            result = tool.handler(args)
            if inspect.isawaitable(result):
                result = await result
        except UnknownToolError as e:
            logger.error(f"Unknown tool requested: {name}")
            return ToolCallResult.failure(name, str(e))
        except ToolExecutionError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolCallResult.failure(name, str(e))

        return ToolCallResult(name=name, response=result)
