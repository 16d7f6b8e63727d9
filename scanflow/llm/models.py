#!/usr/bin/env python3
"""
Data models for generate calls.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class GenerateRequest:
    model: str
    system: str
    prompt: str
    images: Optional[List[str]] = None  # base64-encoded image files
    metadata: Dict = field(default_factory=dict)

    def to_payload(self) -> Dict:
        payload = {
            "model": self.model,
            "system": self.system,
            "prompt": self.prompt,
            "stream": False,
        }
        if self.images:
            payload["images"] = list(self.images)
        return payload


@dataclass
class GenerateResult:
    """
    Container for a generate response with telemetry.

    Attributes:
        text: Response text exactly as returned by the model
        model_used: Model that produced the response
        prompt_tokens / completion_tokens: Token counts reported by the service
        execution_time_seconds: Wall time of the HTTP round trip
    """
    text: str
    model_used: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    execution_time_seconds: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens
