"""Reasoning collaborator clients."""

from cashgame.clients.openai_client import OpenAIClient, OpenAIResponse

__all__ = [
    "OpenAIClient",
    "OpenAIResponse",
]
