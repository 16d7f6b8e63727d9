import time

from scanflow.errors import ModelServiceError, PageTranscriptionFailure
from scanflow.llm.client import encode_image_file
from scanflow.models import Page
from scanflow.storage.cache import CacheStore, transcription_key
from .prompts import TRANSCRIBE_SYSTEM_PROMPT, TRANSCRIBE_USER_PROMPT


class TranscriptionStage:
    """Vision transcription of one page image, cached per page.

    A cached transcription is used verbatim. Otherwise exactly one generate
    call is made and its text is persisted before the page moves on.
    """
    name = "transcribe"

    def __init__(self, client, model: str, cache: CacheStore, input_name: str, logger):
        self.client = client
        self.model = model
        self.cache = cache
        self.input_name = input_name
        self.logger = logger

    def cache_key(self, page_number: int) -> str:
        return transcription_key(self.input_name, page_number)

    def run(self, page: Page) -> str:
        key = self.cache_key(page.page_number)

        if self.cache.exists(key):
            page.transcription = self.cache.read(key)
            self.logger.debug("Using cached transcription", page=page.page_number, cached=True)
            return page.transcription

        start_time = time.time()
        try:
            image_b64 = encode_image_file(page.image_path)
            result = self.client.generate(
                model=self.model,
                system=TRANSCRIBE_SYSTEM_PROMPT,
                prompt=TRANSCRIBE_USER_PROMPT.format(parsed_text=page.parsed_text),
                images=[image_b64],
            )
        except (ModelServiceError, OSError) as e:
            self.logger.error(
                "Transcription failed",
                page=page.page_number,
                model=self.model,
                error=str(e),
            )
            raise PageTranscriptionFailure(page.page_number, str(e)) from e

        self.cache.write(key, result.text)
        page.transcription = result.text

        self.logger.info(
            "Transcribed page",
            page=page.page_number,
            model=result.model_used,
            tokens=result.total_tokens,
            duration_seconds=time.time() - start_time,
        )
        return page.transcription
