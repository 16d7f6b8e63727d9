#!/usr/bin/env python3
"""
Client for the generative-model service `/api/generate` endpoint.

Composes the HTTP transport and the response parser. One call is one HTTP
request: there is no retry layer, failures surface as ModelServiceError.
"""

import base64
import time
from pathlib import Path
from typing import List, Optional, Union

from scanflow.llm.models import GenerateRequest, GenerateResult
from scanflow.llm.response_parser import ResponseParser
from scanflow.llm.transport import OllamaTransport


def encode_image_file(path: Union[str, Path]) -> str:
    """Base64-encode an image file as-is (no re-encoding or resizing)."""
    return base64.b64encode(Path(path).read_bytes()).decode('utf-8')


class GenerateClient:
    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.transport = OllamaTransport(base_url, timeout=timeout)
        self.parser = ResponseParser()

    @classmethod
    def from_config(cls, config) -> 'GenerateClient':
        return cls(config.ollama_base_url, timeout=config.model_timeout)

    def generate(
        self,
        model: str,
        system: str,
        prompt: str,
        images: Optional[List[str]] = None,
    ) -> GenerateResult:
        """
        Issue a single non-streamed generate request.

        Args:
            model: Model name known to the service
            system: System instruction
            prompt: User prompt
            images: Optional list of base64-encoded images

        Returns:
            GenerateResult with the response text verbatim

        Raises:
            ModelServiceError: transport error or non-2xx status
            MalformedResponseError: 2xx body without a `response` string
        """
        request = GenerateRequest(model=model, system=system, prompt=prompt, images=images)

        start_time = time.time()
        result = self.transport.post(request.to_payload())
        parsed = self.parser.parse_generate(result, model)

        return GenerateResult(
            text=parsed.content,
            model_used=parsed.model_used,
            prompt_tokens=parsed.prompt_tokens,
            completion_tokens=parsed.completion_tokens,
            execution_time_seconds=time.time() - start_time,
        )
