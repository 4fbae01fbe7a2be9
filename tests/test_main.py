"""Tests for console slash commands."""

from pai.main import handle_command
from pai.memory.models import MemoryItem


async def test_quit_stops_loop(state) -> None:
    assert await handle_command(state, "/quit") is False


async def test_unknown_command_prints_help(state, capsys) -> None:
    assert await handle_command(state, "/nope") is True
    assert "/models" in capsys.readouterr().out


async def test_new_and_switch_sessions(state, capsys) -> None:
    first = state.sessions.create("First")
    await handle_command(state, "/new Second")
    assert state.sessions.get_current().name == "Second"

    await handle_command(state, f"/switch {first.id}")
    assert state.sessions.get_current().id == first.id


async def test_forget_removes_memory(state) -> None:
    await state.save_memory(MemoryItem(id="general-1", title="T", content="C"))
    await handle_command(state, "/forget general-1")
    assert await state.get_memories() == []


async def test_models_without_keys_lists_placeholders(state, capsys) -> None:
    await handle_command(state, "/models")
    assert "configure API key first" in capsys.readouterr().out


async def test_clear(state) -> None:
    await handle_command(state, "/clear")
    assert await state.get_messages() == []
