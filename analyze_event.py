#!/usr/bin/env python3
"""Run a full event analysis from the terminal.

Run with: python analyze_event.py --type "Charity Run" --location "Austin, TX" --date 2026-11-14

Runs the agents in-process by default. Pass --server http://localhost:8000
to call a running CEPI server instead.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Optional

import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from cepi.agents import AgentDispatcher, EventAnalysisOrchestrator
from cepi.config import Config
from cepi.errors import ValidationError
from cepi.llm import create_llm_client_from_config

console = Console()

AGENT_TITLES = {
    "weather": "Weather",
    "currentEvents": "Current Events",
    "historicEvents": "Historic Events",
    "organizerScoring": "Readiness Score",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze a charity event with every CEPI agent")
    parser.add_argument("--type", dest="eventType", required=True, help="Event type, e.g. 'Charity Gala'")
    parser.add_argument("--location", required=True)
    parser.add_argument("--date", required=True, help="YYYY-MM-DD or ISO timestamp")
    parser.add_argument("--duration")
    parser.add_argument("--attendance", dest="expectedAttendance", type=int)
    parser.add_argument("--budget", type=float)
    parser.add_argument("--audience")
    parser.add_argument("--server", help="Base URL of a running CEPI server")
    parser.add_argument("--json", action="store_true", help="Print the raw result instead of panels")
    return parser


def event_from_args(args: argparse.Namespace) -> dict[str, Any]:
    fields = ("eventType", "location", "date", "duration", "expectedAttendance", "budget", "audience")
    return {name: getattr(args, name) for name in fields if getattr(args, name) is not None}


async def analyze_locally(event: dict[str, Any]) -> dict[str, Any]:
    cfg = Config()
    async with httpx.AsyncClient() as client:
        llm = create_llm_client_from_config(cfg, http_client=client)
        dispatcher = AgentDispatcher(cfg, llm=llm, http_client=client)
        analysis = await EventAnalysisOrchestrator(dispatcher).analyze(event)
    return analysis.to_dict()


async def analyze_remotely(
    server: str, event: dict[str, Any], client: Optional[httpx.AsyncClient] = None
) -> dict[str, Any]:
    if client is None:
        async with httpx.AsyncClient() as owned:
            return await analyze_remotely(server, event, owned)

    response = await client.post(f"{server.rstrip('/')}/api/analyze", json={"event": event}, timeout=180.0)
    try:
        body = response.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}

    message = body.get("message") or body.get("error") or f"HTTP {response.status_code}"
    if response.status_code == 400:
        raise ValidationError(message, fields=body.get("fields"))
    if response.status_code != 200 or "data" not in body:
        raise RuntimeError(message)
    return body["data"]


def render_current_events(result: str) -> Markdown:
    """Current events come back as JSON; show it as a short markdown digest."""
    try:
        data = json.loads(result)
    except ValueError:
        return Markdown(result)
    lines = [data.get("summary", "")]
    for title, key in (("Findings", "findings"), ("Recommendations", "recommendations"), ("Risks", "risks")):
        items = data.get(key) or []
        if items:
            lines.append(f"\n**{title}**")
            lines.extend(f"- {item}" for item in items)
    return Markdown("\n".join(lines))


def render(data: dict[str, Any]) -> None:
    event = data.get("eventDetails", {})
    console.print(Panel.fit(
        f"[bold cyan]{event.get('eventType', 'Event')}[/bold cyan]\n"
        f"{event.get('location', '')} | {event.get('date', '')}",
        title="CEPI Event Analysis",
        border_style="cyan",
    ))

    fallback = set(data.get("fallbackAgents", []))
    for kind, result in data.get("results", {}).items():
        body = render_current_events(result) if kind == "currentEvents" else Markdown(result)
        style = "yellow" if kind in fallback else "green"
        console.print(Panel(body, title=AGENT_TITLES.get(kind, kind), border_style=style))

    table = Table(title="Agent Summary")
    table.add_column("Agent", style="cyan")
    table.add_column("Mode", justify="center")
    table.add_column("Size", justify="right")
    for kind, result in data.get("results", {}).items():
        mode = "[yellow]fallback[/yellow]" if kind in fallback else "[green]live[/green]"
        table.add_row(AGENT_TITLES.get(kind, kind), mode, f"{len(result)} chars")
    console.print(table)
    console.print(f"[dim]Completed in {data.get('latencyMs', 0)}ms[/dim]")


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    event = event_from_args(args)

    try:
        if args.server:
            data = asyncio.run(analyze_remotely(args.server, event))
        else:
            data = asyncio.run(analyze_locally(event))
    except ValidationError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 2
    except httpx.ConnectError:
        console.print(f"[red]✗ Server not reachable at {args.server}[/red]")
        console.print("[yellow]Start server with: uvicorn main:app --reload --port 8000[/yellow]")
        return 1
    except RuntimeError as e:
        console.print(f"[red]✗ Analysis failed: {e}[/red]")
        return 1

    if args.json:
        console.print_json(json.dumps(data))
    else:
        render(data)
    return 0


if __name__ == "__main__":
    sys.exit(main())
