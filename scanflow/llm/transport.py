#!/usr/bin/env python3
import logging
import requests
from typing import Dict, Any, Optional

from scanflow.errors import ModelServiceError


class OllamaTransport:
    def __init__(self, base_url: str, timeout: Optional[float] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.generate_url = f"{self.base_url}/api/generate"

    def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        model = payload.get('model', 'unknown')

        self.logger.debug(
            f"Generate request: model={model}, timeout={self.timeout}, "
            f"num_images={len(payload.get('images') or [])}, "
            f"prompt_chars={len(payload.get('prompt', ''))}"
        )

        try:
            response = requests.post(
                self.generate_url,
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise ModelServiceError(None, str(e)) from e

        self.logger.debug(
            f"Generate response: model={model}, status_code={response.status_code}, ok={response.ok}"
        )

        if not response.ok:
            raise ModelServiceError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise ModelServiceError(
                response.status_code,
                f"Response body is not JSON: {response.text[:500]}"
            ) from e
