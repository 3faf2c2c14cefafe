"""Command line interface for planning and running roleflow workflows."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

import typer

from roleflow import (
    ChatService,
    execute_workflow,
    format_automation_result,
    format_workflow_display,
    get_automation_client,
    get_repository,
    load_config,
    plan_workflow,
)
from roleflow.responder import ConversationalResponder

app = typer.Typer(help="CLI for roleflow chat workflows")

chat_app = typer.Typer(help="Commands for conversations")
app.add_typer(chat_app, name="chat")


@app.callback()
def main(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to the YAML configuration file"
    ),
) -> None:
    """Roleflow CLI entry point."""
    if config_path:
        os.environ["ROLEFLOW_CONFIG"] = config_path
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _chat_service() -> ChatService:
    config = load_config()
    return ChatService(
        get_repository(),
        get_automation_client(config),
        ConversationalResponder(config.responder),
        config.workflow,
    )


@app.command("plan")
def plan(
    text: str,
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
) -> None:
    """
    Plan a workflow for a request without executing it.

    Example:
        roleflow plan "สร้างการประชุมพรุ่งนี้ 10:00 และส่ง email ถึง a@x.com"
    """
    workflow = plan_workflow(text)
    if as_json:
        typer.echo(workflow.to_json())
        return
    if workflow.is_empty():
        typer.echo("No actionable tasks found.")
        return
    typer.echo(format_workflow_display(workflow))


@app.command("run")
def run(text: str) -> None:
    """
    Plan and execute a workflow against the configured automation endpoint.

    Exits with code 1 when the workflow does not complete.
    """
    workflow = asyncio.run(execute_workflow(plan_workflow(text)))
    typer.echo(format_workflow_display(workflow))
    if workflow.status != "completed":
        raise typer.Exit(code=1)


@app.command("health")
def health() -> None:
    """Probe the automation endpoint with a HEAD request."""

    async def _probe():
        async with get_automation_client() as client:
            return await client.check_health()

    result = asyncio.run(_probe())
    if result.success:
        typer.echo(result.message)
        return
    typer.secho(result.error or result.message or "Unhealthy", fg=typer.colors.RED)
    raise typer.Exit(code=1)


@app.command("test-connection")
def test_connection() -> None:
    """Probe health, then send a test trigger to the automation endpoint."""

    async def _test():
        service = _chat_service()
        try:
            return await service.test_connection()
        finally:
            await service.client.aclose()

    result = asyncio.run(_test())
    typer.echo(format_automation_result(result))
    if not result.success:
        raise typer.Exit(code=1)


@chat_app.command("new")
def chat_new(
    user_id: str = typer.Option("local", help="Owner of the conversation"),
    title: Optional[str] = None,
) -> None:
    """Create a conversation and print its id."""
    conversation = asyncio.run(_chat_service().create_conversation(user_id, title))
    typer.echo(f"{conversation.id}\t{conversation.title}")


@chat_app.command("list")
def chat_list(user_id: str = typer.Option("local", help="Owner of the conversations")) -> None:
    """List conversations, most recently updated first."""
    conversations = asyncio.run(_chat_service().list_conversations(user_id))
    if not conversations:
        typer.echo("No conversations found")
        return
    for conversation in conversations:
        typer.echo(f"{conversation.id}\t{conversation.title}")


@chat_app.command("show")
def chat_show(conversation_id: str) -> None:
    """Print the messages of a conversation, oldest first."""
    messages = asyncio.run(_chat_service().list_messages(conversation_id))
    if not messages:
        typer.echo("No messages found")
        return
    for message in messages:
        typer.echo(f"[{message.role}] {message.content}")


@chat_app.command("send")
def chat_send(
    conversation_id: str,
    text: str,
    user_id: str = typer.Option("local", help="Sender of the message"),
) -> None:
    """
    Send a message to a conversation and print the assistant reply.

    Requests that mention meetings, emails, posts or scheduling are planned
    and executed before the reply is generated.
    """

    async def _send():
        service = _chat_service()
        try:
            return await service.send_message(conversation_id, text, user_id)
        finally:
            await service.client.aclose()

    result = asyncio.run(_send())
    typer.echo(result.assistant_message.content)
    if result.workflow_error:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
