"""Capability contracts for the generative backends.

The narrative pipeline is constructed with one concrete implementation of
each; nothing is looked up by name at runtime.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List


@dataclass
class Message:
    """One chat turn."""
    role: str  # system / user / assistant
    content: str


class TextGenerator(ABC):
    """Text generation / chat capability."""

    @abstractmethod
    def chat(self, messages: List[Message], **opts: Any) -> str:
        ...

    @abstractmethod
    def generate(self, prompt: str, **opts: Any) -> str:
        ...


class ImageGenerator(ABC):
    """Text-to-image capability."""

    @abstractmethod
    def txt2img(self, prompt: str, **opts: Any) -> bytes:
        """Return encoded image bytes (PNG/JPEG/...)."""
        ...


class SpeechSynthesizer(ABC):
    """Text-to-speech capability."""

    @abstractmethod
    def synthesize(self, text: str, **opts: Any) -> bytes:
        """Return encoded audio bytes."""
        ...
