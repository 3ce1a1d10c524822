#!/usr/bin/env python3
"""Interactive chat CLI for the task assistant service."""

import json
import sys
import threading

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

POLL_INTERVAL_SECONDS = 0.5


class ChatCLI:
    """Interactive chat interface for the task assistant service."""

    def __init__(self, base_url: str = "http://localhost:8000", provider: str | None = None):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.provider = provider
        self.conversation_id: str | None = None
        self.console = Console()
        # Turns that wait for confirmations can take a while
        self.client = httpx.Client(timeout=300.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]TickAssist - Interactive Chat[/bold blue]\n"
                "Type your messages to manage your TickTick tasks.\n"
                "Commands: /help, /clear, /history, /list, /provider <name>, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]Connected to TickAssist[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/clear":
                    self.conversation_id = None
                    self.console.print("[yellow]Conversation cleared[/yellow]")
                    continue
                elif command == "/history":
                    self._show_history()
                    continue
                elif command == "/list":
                    self._show_conversations()
                    continue
                elif command.startswith("/provider"):
                    self.provider = user_input.split(maxsplit=1)[1] if " " in user_input.strip() else None
                    self.console.print(f"[yellow]Provider: {self.provider or 'server default'}[/yellow]")
                    continue
                elif command == "":
                    continue

                response = self._send_message(user_input)
                if response:
                    self._display_response(response)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _send_message(self, message: str) -> dict | None:
        """Send a message and answer confirmations until the turn finishes."""
        if not self.conversation_id and not self._create_conversation():
            return None

        payload: dict[str, str] = {"message": message, "conversation_id": self.conversation_id}
        if self.provider:
            payload["provider"] = self.provider

        outcome: dict[str, httpx.Response | Exception] = {}

        def post() -> None:
            try:
                outcome["response"] = self.client.post(f"{self.base_url}/conversation", json=payload)
            except httpx.HTTPError as e:
                outcome["error"] = e

        worker = threading.Thread(target=post, daemon=True)
        worker.start()

        self.console.print("[dim]Thinking... (Ctrl+C to stop)[/dim]")
        try:
            while worker.is_alive():
                worker.join(POLL_INTERVAL_SECONDS)
                if worker.is_alive():
                    self._answer_pending_confirmation()
        except KeyboardInterrupt:
            self._stop_turn()
            worker.join()

        if "error" in outcome:
            self.console.print(f"[red]Connection error: {outcome['error']}[/red]")
            return None

        response = outcome["response"]
        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return None

        data = response.json()
        self.conversation_id = data.get("conversation_id")
        return data

    def _answer_pending_confirmation(self) -> None:
        """Ask the user about a pending destructive tool call, if there is one."""
        try:
            response = self.client.get(f"{self.base_url}/conversation/{self.conversation_id}/confirmation")
        except httpx.HTTPError:
            return
        if response.status_code != 200:
            return

        pending = response.json()
        self.console.print(
            Panel(
                f"[bold]{pending['tool_name']}[/bold]\n\n{json.dumps(pending['arguments'], indent=2)}",
                title="[yellow]Confirmation required[/yellow]",
                border_style="yellow",
            )
        )
        confirmed = Confirm.ask("Proceed?", default=False)
        self.client.post(
            f"{self.base_url}/conversation/{self.conversation_id}/confirmation",
            json={"tool_call_id": pending["tool_call_id"], "confirmed": confirmed},
        )

    def _create_conversation(self) -> bool:
        try:
            response = self.client.post(f"{self.base_url}/conversations")
        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]")
            return False
        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return False
        self.conversation_id = response.json()["conversation_id"]
        return True

    def _stop_turn(self) -> None:
        self.console.print("[yellow]Stopping...[/yellow]")
        self.client.post(f"{self.base_url}/conversation/{self.conversation_id}/cancel")

    def _show_conversations(self) -> None:
        response = self.client.get(f"{self.base_url}/conversations")
        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return

        for conversation in response.json():
            marker = "*" if conversation["conversation_id"] == self.conversation_id else " "
            self.console.print(
                f"{marker} [bold]{conversation['title']}[/bold] "
                f"[dim]({conversation['message_count']} messages, {conversation['conversation_id']})[/dim]"
            )

    def _show_history(self) -> None:
        if not self.conversation_id:
            self.console.print("[dim]No conversation yet[/dim]")
            return

        response = self.client.get(f"{self.base_url}/conversation/{self.conversation_id}")
        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return

        for message in response.json()["messages"]:
            tools = ", ".join(call["name"] for call in message.get("tool_calls", []))
            suffix = f" [dim](tools: {tools})[/dim]" if tools else ""
            self.console.print(f"[bold]{message['role']}[/bold]: {message['content']}{suffix}")

    def _display_response(self, response: dict) -> None:
        """Display the assistant's response."""
        assistant_text = response.get("response", "No response")
        state = response.get("state")

        self.console.print(
            Panel(
                Markdown(assistant_text),
                title="[bold green]Assistant[/bold green]",
                subtitle=f"[dim]{state}[/dim]" if state and state != "done" else None,
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Start a new conversation
• /history - Show the stored conversation
• /list - List stored conversations
• /provider <name> - Use claude, openai, grok or gemini (no name resets)
• /quit or /exit - Exit the chat

[bold]Example Conversation:[/bold]
1. "What projects do I have?"
2. "Add 'Buy milk' to Groceries, due tomorrow at 9am"
3. "Flag it"
4. "Delete the task 'Old task' in Work"

[bold]Tips:[/bold]
• Deleting tasks, projects or tags asks for confirmation here
• Press Ctrl+C while the assistant is working to stop the current request
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    provider = sys.argv[2] if len(sys.argv) > 2 else None

    chat = ChatCLI(base_url, provider)
    chat.start()


if __name__ == "__main__":
    main()
