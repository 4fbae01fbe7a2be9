"""PAI console entry point.

Loads state from the data directory and runs a line-based chat loop.
After each successful turn the memory hook runs and the current
session's message count is bumped.
"""

import asyncio
import logging

from pai.chat.orchestrator import chat
from pai.config import settings
from pai.llm.catalog import get_models
from pai.llm.errors import ChatError
from pai.memory.automatic import HookEngine, extract_and_save
from pai.sessions import SessionError
from pai.skills import get_skills
from pai.state import AppState
from pai.storage import StorageError

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)

HELP = """Commands:
  /models            list available models
  /memories          list remembered records
  /search <query>    search memories on disk
  /forget <id>       delete a memory
  /sessions          list sessions
  /new <name>        start a new session
  /switch <id>       switch the current session
  /skills            list skills
  /clear             clear the message log
  /quit              exit"""


async def handle_command(state: AppState, line: str) -> bool:
    """Run a slash command. Returns False when the loop should stop."""
    command, _, arg = line[1:].partition(" ")
    arg = arg.strip()

    if command == "quit":
        return False
    if command == "models":
        _, keys = await state.chat_config()
        for m in await get_models(keys):
            print(f"{m.provider:<12} {m.id:<40} {m.name}")
    elif command == "memories":
        for m in await state.get_memories():
            print(f"[{m.memory_type.value}] {m.id}  {m.title}")
    elif command == "search":
        for m in state.search_memories(arg):
            print(f"[{m.memory_type.value}] {m.id}  {m.title}")
    elif command == "forget":
        await state.delete_memory(arg)
        print(f"Forgot {arg}")
    elif command == "sessions":
        current = state.sessions.get_current()
        for s in state.sessions.list_all():
            marker = "*" if s.id == current.id else " "
            print(f"{marker} {s.id}  {s.name}  ({s.message_count} messages)")
    elif command == "new":
        session = state.sessions.create(arg or "Untitled")
        print(f"Started {session.id} ({session.name})")
    elif command == "switch":
        session = state.sessions.switch(arg)
        print(f"Switched to {session.id} ({session.name})")
    elif command == "skills":
        for skill in get_skills(settings.skills_dir):
            print(f"{skill.category:<10} {skill.name}: {skill.description}")
    elif command == "clear":
        await state.clear_messages()
        print("Message log cleared")
    else:
        print(HELP)
    return True


async def run() -> None:
    state = AppState.from_settings()
    await state.load()
    engine = HookEngine()
    session = state.sessions.get_current()
    logger.info("Current session: %s (%s)", session.id, session.name)

    while True:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break
        if not line:
            continue

        if line.startswith("/"):
            try:
                if not await handle_command(state, line):
                    break
            except (SessionError, StorageError) as exc:
                print(f"Error: {exc}")
            continue

        try:
            reply = await chat(state, line)
        except (ChatError, StorageError) as exc:
            print(f"Error: {exc}")
            continue
        print(reply)

        memory = await extract_and_save(state, engine)
        if memory is not None:
            print(f"(remembered: {memory.title})")
        state.sessions.increment_message_count(state.sessions.get_current())


def main() -> None:
    """Start the console chat loop."""
    logger.info("Starting PAI (data dir %s)...", settings.data_dir)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
