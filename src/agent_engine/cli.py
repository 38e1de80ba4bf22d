import logging
from pathlib import Path

import typer
from rich.console import Console

app = typer.Typer(name="agent-engine", help="Run tool-using agents with budgets and planning subagents.")
console = Console()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s | %(levelname)s | %(message)s")


def _budget(max_steps: int, max_tokens: int, max_seconds: float):
    """The agent budget from config, with non-zero flags replacing its ceilings."""
    from agent_engine.config import get_budget

    return get_budget("agent").with_limits(
        max_steps=max_steps or None,
        max_tokens=max_tokens or None,
        max_seconds=max_seconds or None,
    )


def _build_agent(
    work_dir: Path,
    max_steps: int = 0,
    max_tokens: int = 0,
    max_seconds: float = 0,
    plan: bool = True,
):
    """Create an AgentLoop with read-only file tools rooted at work_dir."""
    from agent_engine.agents.builder import AgentBuilder, UseDriver, UseTools
    from agent_engine.agents.console_callback import ConsoleCallback
    from agent_engine.capabilities.planning_subagent import UsePlanningSubagent
    from agent_engine.config import get_budget, get_model_config
    from agent_engine.drivers.tool_use_driver import ToolUseDriver
    from agent_engine.services.llm_service import LLMService
    from agent_engine.tools.file_tools import create_file_tools

    callback = ConsoleCallback(console)
    llm = LLMService(get_model_config("agent"))

    builder = (
        AgentBuilder.base()
        .with_capability(UseTools(*create_file_tools(work_dir)))
        .with_capability(UseDriver(ToolUseDriver(llm)))
        .with_budget(_budget(max_steps, max_tokens, max_seconds))
        .with_callback(callback)
    )
    if plan:
        planner_budget = get_budget("planner")
        builder = builder.with_capability(UsePlanningSubagent(planner_budget=planner_budget))

    loop = builder.build()
    return loop, callback


@app.command()
def run(
    task: str = typer.Argument(..., help="Task for the agent"),
    work_dir: Path = typer.Option(Path("."), "--work-dir", "-w", help="Workspace the file tools can read"),
    max_steps: int = typer.Option(0, "--max-steps", help="Max agent steps (0 = use config)"),
    max_tokens: int = typer.Option(0, "--max-tokens", help="Max tokens (0 = use config)"),
    max_seconds: float = typer.Option(0, "--max-seconds", help="Max wall-clock seconds (0 = use config)"),
    plan: bool = typer.Option(True, "--plan/--no-plan", help="Offer the planning subagent tool"),
    system_prompt: str = typer.Option("", "--system-prompt", help="Override the agent system prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable detailed logging"),
) -> None:
    """Run one task through the agent loop."""
    from agent_engine.models.state import AgentState, ExecutionStatus
    from agent_engine.prompts.prompt_layer import load_prompt

    _configure_logging(verbose)

    loop, callback = _build_agent(work_dir, max_steps, max_tokens, max_seconds, plan)
    callback.print_tools(loop.tools)

    state = (
        AgentState.empty()
        .with_system_prompt(system_prompt or load_prompt("agent_system"))
        .with_messages([{"role": "user", "content": task}])
    )
    final = loop.execute(state)

    if final.status == ExecutionStatus.FAILED:
        raise typer.Exit(code=1)
    if final.status == ExecutionStatus.SUSPENDED:
        console.print(f"[yellow]Agent suspended: {final.stop_reason}[/yellow]")
        raise typer.Exit(code=2)


@app.command()
def tools(
    work_dir: Path = typer.Option(Path("."), "--work-dir", "-w", help="Workspace the file tools can read"),
    plan: bool = typer.Option(True, "--plan/--no-plan", help="Include the planning subagent tool"),
) -> None:
    """List the tools an agent would get."""
    loop, callback = _build_agent(work_dir, plan=plan)
    callback.print_tools(loop.tools)


if __name__ == "__main__":
    app()
