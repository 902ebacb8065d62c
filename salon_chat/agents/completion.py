"""
Completion providers: turn an ordered list of role-tagged messages into a reply.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import ollama

from ..core.errors import DependencyError
from ..util.logging import logger


@dataclass
class GenerationParams:
    """Sampling parameters passed with every completion call."""
    max_tokens: int = 500
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0

    def to_options(self) -> Dict[str, Any]:
        """Ollama option names for these parameters."""
        return {
            'num_predict': self.max_tokens,
            'temperature': self.temperature,
            'top_p': self.top_p,
            'top_k': self.top_k,
            'frequency_penalty': self.frequency_penalty,
            'presence_penalty': self.presence_penalty
        }


class ICompletionProvider(ABC):
    """Abstract interface for completion providers."""

    @abstractmethod
    def complete(self, model: str, messages: List[Dict[str, str]], params: Optional[GenerationParams] = None) -> str:
        """
        Generate a reply.

        Raises:
            DependencyError: when the model call fails or returns no content
        """
        pass

    @abstractmethod
    def list_models(self) -> List[str]:
        """Model identifiers the provider can serve."""
        pass


def _model_name(entry: Any) -> Optional[str]:
    if isinstance(entry, dict):
        return entry.get('model') or entry.get('name')
    return getattr(entry, 'model', None) or getattr(entry, 'name', None)


class OllamaCompletionProvider(ICompletionProvider):
    """
    Completion provider backed by a local Ollama instance.
    """

    def __init__(self, host: Optional[str] = None, timeout: Optional[float] = None):
        self.host = host
        self.client = ollama.Client(host=host, timeout=timeout)

    def complete(self, model: str, messages: List[Dict[str, str]], params: Optional[GenerationParams] = None) -> str:
        params = params or GenerationParams()
        start_time = datetime.now()

        try:
            response = self.client.chat(
                model=model,
                messages=messages,
                options=params.to_options()
            )
        except ollama.ResponseError as e:
            raise DependencyError(f"Ollama model error: {e.error}", dependency="completion",
                                  details={"model": model, "status_code": e.status_code}) from e
        except Exception as e:
            raise DependencyError(f"Ollama request failed: {e}", dependency="completion",
                                  details={"model": model}) from e

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        content = (response['message']['content'] or '').strip()
        if not content:
            raise DependencyError("Ollama returned an empty reply", dependency="completion", details={"model": model})

        logger.log_completion(model, duration_ms, details={
            'context_messages': len(messages),
            'response_length': len(content)
        })
        return content

    def list_models(self) -> List[str]:
        try:
            response = self.client.list()
        except Exception as e:
            raise DependencyError(f"Failed to list Ollama models: {e}", dependency="completion") from e
        return [name for name in (_model_name(m) for m in response['models']) if name]

    def check_health(self) -> bool:
        """Check if Ollama is reachable."""
        try:
            self.client.list()
            return True
        except Exception:
            return False
