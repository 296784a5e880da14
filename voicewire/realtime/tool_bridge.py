"""
Tool Call Bridge for the Realtime API

This module connects server-requested function calls to locally registered
executors. The server streams a call's arguments as
``response.function_call_arguments.delta`` events and closes it with
``response.function_call_arguments.done``; the bridge then runs the executor
in its own task so the inbound event loop is never blocked, and reports the
outcome back as a ``function_call_output`` item followed by ``response.create``
so the model continues the turn.

Executor outcomes are always reported, never raised:
    - success: the executor's return value (strings verbatim, anything else
      JSON-encoded)
    - failure or timeout: ``{"error": "..."}``
    - unknown tool: ``{"error": "Tool '<name>' not found"}``

Usage Example:
    ```python
    async def get_weather(args):
        return {"city": args["city"], "forecast": "sunny"}

    bridge = ToolBridge(send_event)
    bridge.register("get_weather", get_weather)

    bridge.handle_arguments_delta(delta_event)
    task = bridge.handle_arguments_done(done_event)
    ```
"""

import asyncio
import inspect
import json
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, Tuple

from voicewire.config.constants import DEFAULT_TOOL_TIMEOUT, TOOL_HISTORY_SIZE
from voicewire.config.logging_config import configure_logging
from voicewire.exceptions import RealtimeConnectionError, ToolExecutionError
from voicewire.models.openai_api import (
    ClientEvent,
    ConversationItem,
    ConversationItemCreateEvent,
    ConversationItemType,
    ResponseCreateEvent,
    ResponseFunctionCallArgumentsDeltaEvent,
    ResponseFunctionCallArgumentsDoneEvent,
)
from voicewire.models.tool_models import OpenAITool
from voicewire.realtime.codec import generate_item_id

logger = configure_logging("tool_bridge")

ToolExecutor = Callable[[Dict[str, Any]], Any]
SendEvent = Callable[[ClientEvent], Awaitable[None]]
OutputItemCallback = Callable[[ConversationItem], Any]


@dataclass
class RegisteredTool:
    name: str
    executor: ToolExecutor
    descriptor: Optional[OpenAITool] = None


@dataclass
class ToolExecution:
    """Record of one completed tool call."""

    call_id: str
    name: str
    arguments: str
    output: str
    success: bool
    duration: float
    timestamp: datetime = field(default_factory=datetime.now)


class ToolBridge:
    """
    Routes function call events to registered executors.

    Attributes:
        tools: Registered tools by name
        active_calls: Streaming call state by call_id (name, arguments buffer)
        pending: Execution tasks that have not finished yet
        history: The most recent executions, oldest first
    """

    def __init__(
        self,
        send_event: SendEvent,
        on_output_item: Optional[OutputItemCallback] = None,
        timeout: float = DEFAULT_TOOL_TIMEOUT,
        history_size: int = TOOL_HISTORY_SIZE,
    ):
        self.send_event = send_event
        self.on_output_item = on_output_item
        self.timeout = timeout

        self.tools: Dict[str, RegisteredTool] = {}
        self.active_calls: Dict[str, Dict[str, Any]] = {}
        self.pending: Set[asyncio.Task] = set()
        self.history: Deque[ToolExecution] = deque(maxlen=history_size)

    def register(
        self,
        name: str,
        executor: ToolExecutor,
        descriptor: Optional[OpenAITool] = None,
    ) -> None:
        """
        Register a tool; a later registration under the same name replaces it.

        Args:
            name: The name the model calls the tool by
            executor: Async callable, or plain callable run in a worker thread,
                taking the parsed argument dict
            descriptor: Optional schema advertised to the server
        """
        if name in self.tools:
            logger.info(f"Replacing registered tool: {name}")
        else:
            logger.info(f"Registered tool: {name}")
        self.tools[name] = RegisteredTool(name, executor, descriptor)

    def unregister(self, name: str) -> bool:
        """Remove a tool; returns False if it was not registered."""
        if self.tools.pop(name, None) is None:
            return False
        logger.info(f"Unregistered tool: {name}")
        return True

    def get_registered_tools(self) -> List[str]:
        return list(self.tools.keys())

    def get_descriptors(self) -> List[Dict[str, Any]]:
        """Descriptors of every registered tool that has one, for session.update."""
        return [
            tool.descriptor.model_dump()
            for tool in self.tools.values()
            if tool.descriptor is not None
        ]

    def note_function_call_item(self, item: ConversationItem) -> None:
        """Remember the tool name announced by a function_call output item."""
        if item.type != ConversationItemType.FUNCTION_CALL or not item.call_id:
            return
        call = self.active_calls.setdefault(item.call_id, {"arguments_buffer": ""})
        call["name"] = item.name
        call["item_id"] = item.id

    def handle_arguments_delta(self, event: ResponseFunctionCallArgumentsDeltaEvent) -> None:
        """Accumulate a streamed piece of a call's arguments."""
        call = self.active_calls.setdefault(event.call_id, {"arguments_buffer": ""})
        call["arguments_buffer"] += event.delta
        logger.debug(
            f"Arguments delta for {event.call_id} "
            f"(total: {len(call['arguments_buffer'])} chars)"
        )

    def handle_arguments_done(
        self, event: ResponseFunctionCallArgumentsDoneEvent
    ) -> asyncio.Task:
        """Schedule execution of a completed call and return its task."""
        call = self.active_calls.pop(event.call_id, {})
        name = event.name or call.get("name") or ""
        arguments = event.arguments or call.get("arguments_buffer", "")

        logger.info(f"Function call {event.call_id} complete: {name}({arguments})")

        task = asyncio.create_task(
            self._execute_and_respond(event.call_id, name, arguments)
        )
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)
        return task

    async def execute(self, name: str, arguments: str) -> str:
        """Run a tool by name and return its output string."""
        output, _ = await self._run(name, arguments)
        return output

    def cancel_pending(self) -> int:
        """Cancel every unfinished execution; returns how many were cancelled."""
        cancelled = 0
        for task in list(self.pending):
            if not task.done():
                task.cancel()
                cancelled += 1
        self.active_calls.clear()
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending tool execution(s)")
        return cancelled

    async def _execute_and_respond(self, call_id: str, name: str, arguments: str) -> None:
        started = time.monotonic()
        output, success = await self._run(name, arguments)
        self.history.append(
            ToolExecution(
                call_id=call_id,
                name=name,
                arguments=arguments,
                output=output,
                success=success,
                duration=time.monotonic() - started,
            )
        )

        item = ConversationItem(
            id=generate_item_id(),
            type=ConversationItemType.FUNCTION_CALL_OUTPUT,
            call_id=call_id,
            output=output,
        )
        if self.on_output_item:
            result = self.on_output_item(item)
            if inspect.isawaitable(result):
                await result

        try:
            await self.send_event(ConversationItemCreateEvent(item=item))
            await self.send_event(ResponseCreateEvent())
        except RealtimeConnectionError as e:
            logger.error(f"Could not deliver output of {name} ({call_id}): {e}")
            return
        logger.info(f"Sent output of {name} ({call_id}), success={success}")

    async def _run(self, name: str, arguments: str) -> Tuple[str, bool]:
        tool = self.tools.get(name)
        if tool is None:
            logger.warning(f"Tool '{name}' not found")
            return json.dumps({"error": f"Tool '{name}' not found"}), False

        try:
            args = json.loads(arguments) if arguments else {}
        except json.JSONDecodeError as e:
            return self._error_output(ToolExecutionError(name, f"invalid arguments: {e}"))
        if not isinstance(args, dict):
            return self._error_output(
                ToolExecutionError(name, "arguments must be a JSON object")
            )

        try:
            result = await asyncio.wait_for(
                self._invoke(tool.executor, args), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            return self._error_output(
                ToolExecutionError(name, f"timed out after {self.timeout}s")
            )
        except Exception as e:
            return self._error_output(ToolExecutionError(name, str(e)))

        if isinstance(result, str):
            return result, True
        return json.dumps(result, default=str), True

    @staticmethod
    async def _invoke(executor: ToolExecutor, args: Dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(executor):
            return await executor(args)
        # Plain callables run in the default executor so they cannot stall the loop
        result = await asyncio.get_running_loop().run_in_executor(None, executor, args)
        if inspect.isawaitable(result):
            result = await result
        return result

    @staticmethod
    def _error_output(error: ToolExecutionError) -> Tuple[str, bool]:
        logger.error(str(error))
        return json.dumps({"error": str(error)}), False
