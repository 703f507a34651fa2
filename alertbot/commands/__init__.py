"""Chat commands: mute command parsing and dispatch."""

from .parser import MuteSelection, parse_mute_command
from .dispatcher import Command, CommandDispatcher

__all__ = ["MuteSelection", "parse_mute_command", "Command", "CommandDispatcher"]
