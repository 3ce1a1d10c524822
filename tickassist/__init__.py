"""Conversational TickTick assistant with provider-agnostic tool calling."""

__version__ = "0.1.0"
