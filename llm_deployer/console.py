"""
Interactive console chat.

Usage:
    python -m llm_deployer.console [--model NAME] [--max-tokens N]

Commands:
    /status   - Show server availability and selected model
    /models   - Refresh and list the model catalog
    /use NAME - Pin a model
    /loaded   - List loaded model records
    /load PATH  - Record a model (name or weight file path) as loaded
    /unload ID  - Remove a loaded model record
    /history  - Print the conversation so far
    /clear    - Clear the conversation
    /quit     - Exit
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .chat import ChatOrchestrator
from .config import config
from .errors import ChatError
from .gateway import InferenceGateway
from .selector import ModelSelector

logger = logging.getLogger(__name__)


async def handle_command(line: str, chat: ChatOrchestrator, session_id: str) -> bool:
    """Run a slash command. Returns False when the loop should stop."""
    gateway = chat.gateway
    command, _, arg = line.partition(" ")

    if command in ("/quit", "/exit"):
        return False
    elif command == "/status":
        result = await gateway.prober.probe_once()
        detail = f" ({result.error_kind.value})" if result.error_kind else ""
        print(f"Server: {result.state.value}{detail}")
        print(f"Model: {gateway.selector.selected or '(none)'}")
    elif command == "/models":
        names = await gateway.refresh()
        if not names:
            print("No models reported by the server.")
        for name in names:
            marker = "*" if name == gateway.selector.selected else " "
            print(f" {marker} {name}")
    elif command == "/use":
        gateway.selector.set_selected(arg)
        print(f"Using {gateway.selector.selected}")
    elif command == "/loaded":
        for model in gateway.catalog.get_loaded_models():
            print(f" {model.id[:8]}  {model.name}  {model.path}".rstrip())
    elif command == "/load":
        model = gateway.catalog.load_model(arg)
        print(f"Loaded {model.name} ({model.id[:8]})")
    elif command == "/unload":
        model = gateway.catalog.unload_model(arg.strip())
        print(f"Unloaded {model.name}")
    elif command == "/history":
        for message in chat.get_history(session_id):
            print(f"[{message.role.value}] {message.content}")
    elif command == "/clear":
        count = chat.clear_history(session_id)
        print(f"Cleared {count} messages.")
    else:
        print(f"Unknown command: {command}")
    return True


async def run(model: Optional[str], max_tokens: int):
    gateway = InferenceGateway(selector=ModelSelector(model or config.ollama_model))
    chat = ChatOrchestrator(gateway)

    print("=== LLM Deployer ===")
    print("Local LLM chat console\n")

    gateway.initialize()
    await gateway.ready()
    result = await gateway.prober.probe_once()
    if result.reachable:
        print(f"Ollama reachable at {result.base_url}, model: {gateway.selector.selected or '(none)'}")
    else:
        print(f"Ollama unreachable ({result.error_kind.value}); replies will be offline.")

    session = chat.start_session(gateway.selector.selected or "default")
    print(f"Session {session.id[:8]}... started. Type /quit to exit.\n")

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, "You: ")).strip()
            except EOFError:
                break
            if not line:
                continue

            try:
                if line.startswith("/"):
                    if not await handle_command(line, chat, session.id):
                        break
                    continue
                reply = await chat.send_message(session.id, line, max_tokens)
                print(f"\nAssistant: {reply}\n")
            except ChatError as e:
                print(f"Error: {e}")
    finally:
        chat.end_session(session.id)
        await gateway.close()
        print("Goodbye!")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Chat with a local Ollama model")
    parser.add_argument("--model", help="Pin a model instead of ranking the catalog")
    parser.add_argument("--max-tokens", type=int, default=config.max_tokens)
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        asyncio.run(run(args.model, args.max_tokens))
    except KeyboardInterrupt:
        print("\nGoodbye!")


if __name__ == "__main__":
    main()
