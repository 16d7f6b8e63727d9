"""
Generative-model service integration.

Provides:
- GenerateClient: single non-streamed /api/generate calls (text or vision)
- OllamaTransport / ResponseParser: HTTP and response layers
- Data models: request/result containers
"""

from scanflow.llm.client import GenerateClient, encode_image_file
from scanflow.llm.models import GenerateRequest, GenerateResult
from scanflow.llm.response_parser import ParsedResponse, ResponseParser
from scanflow.llm.transport import OllamaTransport

__all__ = [
    "GenerateClient",
    "encode_image_file",
    "GenerateRequest",
    "GenerateResult",
    "ParsedResponse",
    "ResponseParser",
    "OllamaTransport",
]
