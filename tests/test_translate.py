import pytest

from movielab import translate
from movielab.errors import InvalidRequestError, UpstreamError


def test_translate_text_reads_json_field(monkeypatch):
    monkeypatch.setattr(translate, "_chat", lambda *a, **kw: '{"translated_text": "Hola"}')
    assert translate.translate_text("Hello", "Spanish", "sk") == "Hola"


def test_translate_text_bad_reply(monkeypatch):
    monkeypatch.setattr(translate, "_chat", lambda *a, **kw: '{"text": "Hola"}')
    with pytest.raises(UpstreamError, match="Failed to translate text"):
        translate.translate_text("Hello", "Spanish", "sk")


def test_blank_text_is_not_sent(monkeypatch):
    def boom(*a, **kw):
        raise AssertionError("should not be called")

    monkeypatch.setattr(translate, "_chat", boom)
    assert translate.translate_text("   ", "Spanish", "sk") == "   "


def test_batch_preserves_order_and_keeps_failures(monkeypatch):
    def fake_translate(text, target_language, api_key):
        if text == "bad":
            raise UpstreamError("Failed to translate text")
        return text.upper()

    monkeypatch.setattr(translate, "translate_text", fake_translate)
    texts = [f"t{i}" for i in range(7)] + ["bad"]

    result = translate.translate_batch(texts, "Spanish", "sk", batch_size=3)
    assert result == [f"T{i}" for i in range(7)] + ["bad"]


def test_batch_validates_arguments():
    with pytest.raises(InvalidRequestError):
        translate.translate_batch(["a"], "", "sk")
    with pytest.raises(InvalidRequestError):
        translate.translate_batch(["a"], "French", "sk", batch_size=0)
