"""Core package initializer for talkpoints.

Holds the configuration layer, the Result type and the card/generation
contracts shared by the engine, the LLM agent, the API and the CLI.
"""

from __future__ import annotations

__all__ = ["__doc__"]
