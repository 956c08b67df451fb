import json

import openai
import pytest

from movielab import vision
from movielab.errors import InvalidRequestError, UpstreamError
from movielab.vision import VoiceAnalysis, parse_suggestion, parse_voice_analysis


class ScriptedChat:
    """Stands in for vision._chat, replaying canned replies in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def __call__(self, messages, api_key, **kwargs):
        self.calls.append(messages)
        return self.replies.pop(0)


@pytest.mark.parametrize("reply, expected", [
    ('{"gender": "male", "age": "old"}', VoiceAnalysis("male", "old")),
    ('```json\n{"gender": "Female", "age": "middle"}\n```', VoiceAnalysis("female", "middle")),
    ('Sure! {"gender": "male", "age": "young"} Hope that helps.', VoiceAnalysis("male", "young")),
    ("I can't tell from this picture.", VoiceAnalysis("female", "young")),
    ('{"gender": "robot", "age": "young"}', VoiceAnalysis("female", "young")),
    ('{"gender": "male", "age": 42}', VoiceAnalysis("female", "young")),
])
def test_parse_voice_analysis(reply, expected):
    assert parse_voice_analysis(reply) == expected


def test_analyze_image_requires_image():
    with pytest.raises(InvalidRequestError):
        vision.analyze_image("", "sk")


def test_analyze_image_sends_data_url(monkeypatch):
    chat = ScriptedChat('{"gender": "male", "age": "middle"}')
    monkeypatch.setattr(vision, "_chat", chat)

    assert vision.analyze_image("QUJD", "sk") == VoiceAnalysis("male", "middle")
    image_part = chat.calls[0][0]["content"][1]
    assert image_part["image_url"]["url"] == "data:image/jpeg;base64,QUJD"


def test_parse_suggestion_both():
    content = json.dumps({"sceneDescription": "A sunset walk", "subtitles": '"We made it home."'})
    assert parse_suggestion("both", content) == {
        "sceneDescription": "A sunset walk",
        "subtitles": "We made it home.",
    }


def test_parse_suggestion_rejects_long_subtitle():
    with pytest.raises(ValueError):
        parse_suggestion("subtitles", " ".join(["word"] * 21))


def test_parse_suggestion_rejects_missing_field():
    with pytest.raises(ValueError):
        parse_suggestion("both", '{"sceneDescription": "only this"}')


def test_suggestions_retry_until_valid(monkeypatch):
    chat = ScriptedChat(
        "A bright kitchen.",            # image context
        "not json at all",
        json.dumps({"sceneDescription": "She opens the door", "subtitles": "Come in, quickly."}),
    )
    monkeypatch.setattr(vision, "_chat", chat)

    result = vision.generate_scene_suggestions(2, 3, "QUJD", "both", "sk")
    assert result == {"sceneDescription": "She opens the door", "subtitles": "Come in, quickly."}
    assert len(chat.calls) == 3


def test_suggestions_fall_back_after_max_attempts(monkeypatch):
    chat = ScriptedChat("context", "", "", "")
    monkeypatch.setattr(vision, "_chat", chat)

    result = vision.generate_scene_suggestions(1, 1, "QUJD", "subtitles", "sk", max_attempts=3)
    assert result == {"subtitles": vision.FALLBACK_SUBTITLE}
    assert len(chat.calls) == 4


def test_suggestions_reject_unknown_kind():
    with pytest.raises(InvalidRequestError):
        vision.generate_scene_suggestions(1, 1, "QUJD", "poem", "sk")


def test_extract_conversation(monkeypatch):
    chat = ScriptedChat('"Hi." "Hello."')
    monkeypatch.setattr(vision, "_chat", chat)
    assert vision.extract_conversation("He said hi. She said hello.", "sk") == '"Hi." "Hello."'


def test_chat_failure_names_the_operation(monkeypatch):
    class RejectingClient:
        def __init__(self, api_key=None):
            self.chat = self
            self.completions = self

        def create(self, **kwargs):
            raise openai.OpenAIError("rate limited")

    monkeypatch.setattr(openai, "OpenAI", RejectingClient)
    with pytest.raises(UpstreamError, match="^Failed to extract conversation$"):
        vision.extract_conversation("He said hi.", "sk")
    with pytest.raises(UpstreamError, match="^Failed to generate scene suggestions$"):
        vision.generate_scene_suggestions(1, 2, "QUJD", "both", "sk")
