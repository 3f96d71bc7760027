"""Developer CLI -- hydrate a client from a JSON snapshot and print its graph.

Snapshot format::

    {"channels": [{"id": ..., "participants": [...], "metadata": {...},
                   "messages": [{"id": ..., "parts": [{"body": ..., "mime_type": ...}]}]}]}
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.tree import Tree

from .cards.model import CardModel
from .client import Client
from .config.settings import configure_logging
from .errors import UnsupportedMessageError
from .messaging.channel import Channel
from .messaging.message import Message, MessagePart

logger = logging.getLogger(__name__)

console = Console()


def hydrate(client: Client, snapshot: dict[str, Any]) -> list[CardModel]:
    """Register every channel/message in *snapshot* and build root card models."""
    models: list[CardModel] = []
    for raw_channel in snapshot.get("channels", []):
        channel = Channel(
            client,
            id=raw_channel.get("id"),
            participants=raw_channel.get("participants"),
            metadata=raw_channel.get("metadata"),
            name=raw_channel.get("name", ""),
            from_server=True,
        )
        for raw_message in raw_channel.get("messages", []):
            message = Message(
                client,
                id=raw_message.get("id"),
                parent_id=channel.id,
                parts=[MessagePart.from_dict(p) for p in raw_message.get("parts", [])],
                from_server=True,
            )
            if message.get_root_part() is None:
                continue
            try:
                models.append(client.create_card_model(message))
            except UnsupportedMessageError as exc:
                logger.warning("Skipping %s: %s", message.id, exc)
    client.flush()
    return models


def _model_branch(tree: Tree, model: CardModel) -> None:
    label = f"[bold]{model.LABEL}[/bold] {model.id} [dim]{model.get_one_line_summary()}[/dim]"
    if model.error is not None:
        label += f" [red]error: {model.error}[/red]"
    branch = tree.add(label)
    if model.responses:
        branch.add(f"responses: {json.dumps(model.responses, sort_keys=True)}")
    for part in model.child_parts:
        if model.client.model_type_for(part) is None:
            branch.add(f"[dim]{part.role or 'part'}: {part.mime_base_type}[/dim]")
            continue
        _model_branch(branch, model.client.create_card_model(model.message, part))


def build_tree(client: Client) -> Tree:
    root = Tree(f"[bold green]{client.app_id}[/bold green]")
    for channel in client.channels:
        channel_branch = root.add(f"[bold]channel[/bold] {channel.id} ({', '.join(channel.participants)})")
        for message in client.messages.for_channel(channel.id):
            message_branch = channel_branch.add(f"message {message.id} [dim]{len(message.parts)} part(s)[/dim]")
            model = client.cardmodels.get_for_message(message)
            if model is not None:
                _model_branch(message_branch, model)
    return root


def _cmd_inspect(args: argparse.Namespace) -> int:
    path = Path(args.snapshot)
    try:
        snapshot = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[red]Cannot read snapshot {path}: {exc}[/red]")
        return 1
    client = Client(app_id=args.app_id)
    hydrate(client, snapshot)
    console.print(build_tree(client))
    client.destroy()
    return 0


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cardgraph", description=__doc__.splitlines()[0])
    parser.add_argument("--log-level", default=None, help="Override CARDGRAPH_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)
    inspect = sub.add_parser("inspect", help="Print the channel/message/card model tree of a snapshot")
    inspect.add_argument("snapshot", help="Path to a JSON snapshot")
    inspect.add_argument("--app-id", default=None, help="App id for the hydrated client")
    inspect.set_defaults(func=_cmd_inspect)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
