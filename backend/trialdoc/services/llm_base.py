"""
TrialDoc Backend - Abstract Completion Service Interface
==========================================================

What:  Contract for the external text-completion provider.
How:   Concrete providers subclass LLMService and implement complete() and
       health_check(). AnalysisService only ever sees this interface.
Who:   Implemented by ClaudeService; faked in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class LLMCompletion:
    """
    Raw provider output.

    text:  All text blocks of the response joined with newlines.
    model: Model identifier reported by the provider.
    usage: Token counts as reported (e.g. input_tokens, output_tokens).
    """

    text: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


class LLMService(ABC):
    """
    Abstract interface for single-turn text completion.

    Contract:
        - complete() sends one system prompt and one user message
        - Provider errors are wrapped in LLMServiceError
        - A missing credential is a ConfigurationError, raised per call
        - Responses are returned as-is; post-processing belongs to the caller
    """

    @abstractmethod
    async def complete(self, system_prompt: str, content: str) -> LLMCompletion:
        """
        Run one completion.

        Args:
            system_prompt: Domain instructions for the model.
            content: The caller-supplied task body.

        Raises:
            ConfigurationError: No credential configured.
            LLMServiceError: Transport failure or non-success response.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the provider can be called (credential present). No quota is spent."""
        ...
