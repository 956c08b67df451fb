"""Machine translation through OpenAI JSON-mode completions."""
from __future__ import annotations

import concurrent.futures
import json
import logging

from .config import TRANSLATE_BATCH_SIZE, TRANSLATION_MODEL
from .errors import InvalidRequestError, MovieLabError, UpstreamError
from .vision import _chat

log = logging.getLogger(__name__)


def translate_text(text: str, target_language: str, api_key: str) -> str:
    """Translate one string; returns the translated text."""
    if not target_language:
        raise InvalidRequestError("targetLanguage is required")
    if not text.strip():
        return text

    content = _chat(
        [
            {
                "role": "system",
                "content": (
                    f"You are a translation assistant. Translate the given text to {target_language}. "
                    "Return the result in JSON format with a 'translated_text' field."
                ),
            },
            {
                "role": "user",
                "content": f"Translate this text to {target_language} and return as JSON: {json.dumps(text)}",
            },
        ],
        api_key,
        label="translate text",
        model=TRANSLATION_MODEL,
        temperature=0.3,
        json_mode=True,
    )

    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        log.error("Translation reply is not JSON: %s", content[:200])
        raise UpstreamError("Failed to translate text") from e
    translated = result.get("translated_text") if isinstance(result, dict) else None
    if not isinstance(translated, str):
        log.error("Invalid translation response format: %s", content[:200])
        raise UpstreamError("Failed to translate text")
    return translated


def translate_batch(
    texts: list[str],
    target_language: str,
    api_key: str,
    batch_size: int = TRANSLATE_BATCH_SIZE,
) -> list[str]:
    """Translate *texts* preserving order.

    Batches run one after another; the strings inside a batch are translated
    concurrently. A string whose translation fails keeps its original text.
    """
    if not target_language:
        raise InvalidRequestError("targetLanguage is required")
    if batch_size < 1:
        raise InvalidRequestError("batchSize must be at least 1")

    results = list(texts)
    with concurrent.futures.ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(texts), batch_size):
            futures = {
                executor.submit(translate_text, texts[i], target_language, api_key): i
                for i in range(start, min(start + batch_size, len(texts)))
            }
            for future in concurrent.futures.as_completed(futures):
                i = futures[future]
                try:
                    results[i] = future.result()
                except MovieLabError as e:
                    log.warning("Keeping original text for item %d: %s", i, e)
            log.info(
                "Translated batch %d-%d of %d",
                start + 1, min(start + batch_size, len(texts)), len(texts),
            )
    return results
