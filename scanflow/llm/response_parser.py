import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass

from scanflow.errors import MalformedResponseError


@dataclass
class ParsedResponse:
    content: str
    prompt_tokens: int
    completion_tokens: int
    model_used: str
    total_duration_ns: int = 0


class ResponseParser:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def parse_generate(self, result: Dict[str, Any], model: str) -> ParsedResponse:
        if not isinstance(result, dict):
            raise MalformedResponseError(
                None,
                f"Expected a JSON object, got {type(result).__name__}"
            )

        content = result.get('response')
        if not isinstance(content, str):
            self.logger.error(
                f"Malformed generate response (missing 'response' string): "
                f"model={model}, response_keys={list(result.keys())}"
            )
            raise MalformedResponseError(None, "Malformed generate response: missing 'response' field")

        prompt_tokens = result.get('prompt_eval_count', 0) or 0
        completion_tokens = result.get('eval_count', 0) or 0

        self.logger.debug(
            f"Parsed generate response: model={model}, content_length={len(content)}, "
            f"prompt_tokens={prompt_tokens}, completion_tokens={completion_tokens}"
        )

        return ParsedResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            model_used=result.get('model') or model,
            total_duration_ns=result.get('total_duration', 0) or 0,
        )
