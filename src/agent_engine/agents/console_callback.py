"""Rich console callback for the agent loop."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from agent_engine.models.state import AgentState, ExecutionStatus, ToolCall, ToolExecution
from agent_engine.tools import ToolRegistry

MAX_RESULT_LINES = 30
MAX_RESULT_CHARS = 2000

STATUS_STYLES = {
    ExecutionStatus.SUCCEEDED: "green",
    ExecutionStatus.SUSPENDED: "yellow",
    ExecutionStatus.FAILED: "red",
    ExecutionStatus.RUNNING: "blue",
}


def _truncate(text: str) -> str:
    lines = text.splitlines()
    if len(lines) > MAX_RESULT_LINES or len(text) > MAX_RESULT_CHARS:
        truncated = "\n".join(lines[:MAX_RESULT_LINES])
        if len(truncated) > MAX_RESULT_CHARS:
            truncated = truncated[:MAX_RESULT_CHARS]
        omitted = len(lines) - MAX_RESULT_LINES
        if omitted > 0:
            truncated += f"\n... ({omitted} more lines)"
        return truncated
    return text


def _format_arg_value(value: Any) -> str:
    """Format a single argument value, truncating long strings."""
    s = str(value)
    if len(s) > 120:
        return s[:120] + "..."
    return s


class ConsoleCallback:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def print_tools(self, registry: ToolRegistry) -> None:
        table = Table(title="Available tools", border_style="dim", show_lines=False)
        table.add_column("Tool", style="bold cyan", no_wrap=True)
        table.add_column("Description", style="dim")
        for tool in registry.all():
            params = tool.parameters_schema().get("properties", {})
            table.add_row(f"{tool.name}({', '.join(params)})", tool.description)
        self.console.print(table)
        self.console.print()

    def on_step_start(self, step: int, state: AgentState) -> None:
        prefix = "Subagent step" if state.parent_agent_id else "Step"
        self.console.rule(f"[bold blue]{prefix} {step}", style="blue")

    def on_thinking(self, text: str) -> None:
        self.console.print(
            Panel(_truncate(text), title="[bold yellow]Thinking", border_style="yellow", padding=(0, 1))
        )

    def on_tool_call(self, call: ToolCall) -> None:
        self.console.print(f"  🔧 [bold cyan]{call.name}[/]")
        for key, value in call.arguments.items():
            self.console.print(f"      [dim]{key}:[/] {_format_arg_value(value)}")

    def on_tool_result(self, execution: ToolExecution) -> None:
        truncated = _truncate(execution.content())
        if execution.has_error:
            body: Any = Text(truncated, style="red")
        elif len(truncated) > 200:
            body = Syntax(truncated, "text", theme="ansi_dark", word_wrap=True)
        else:
            body = Text(truncated, style="dim")
        self.console.print(Panel(body, title="[dim]result", border_style="dim", padding=(0, 1)))

    def on_finish(self, state: AgentState) -> None:
        style = STATUS_STYLES[state.status]
        last = state.last_step()
        text = (
            state.final_response()
            or state.stop_reason
            or (last.errors_as_string() if last is not None else "")
            or "_No final message._"
        )
        tool_calls = sum(len(step.tool_executions) for step in state.steps)
        self.console.print()
        self.console.rule(f"[bold {style}]Agent {state.status.value}", style=style)
        self.console.print(
            Panel(
                text,
                title=f"[bold {style}]Result ({len(state.steps)} steps, {tool_calls} tool calls)",
                border_style=style,
                padding=(0, 1),
            )
        )
