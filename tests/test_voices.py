from movielab.voices import VoiceInfo, select_voice


def _voice(name, gender=None, age=None):
    labels = {}
    if gender:
        labels["gender"] = gender
    if age:
        labels["age"] = age
    return VoiceInfo(voice_id=f"id-{name}", name=name, labels=labels)


def test_exact_gender_and_age_match_wins():
    voices = [
        _voice("Grace", "female", "middle-aged"),
        _voice("Lily", "female", "young"),
    ]
    assert select_voice(voices, "female", "young").name == "Lily"


def test_age_bucket_aliases():
    voices = [_voice("Old Tom", "male", "Elderly"), _voice("Kid", "male", "teen")]
    assert select_voice(voices, "male", "old").name == "Old Tom"
    assert select_voice(voices, "male", "young").name == "Kid"


def test_labels_compare_case_insensitively():
    voices = [_voice("Nova", "Female", "Twenties")]
    assert select_voice(voices, "female", "young").name == "Nova"


def test_gender_only_match():
    voices = [_voice("Brian", "male", "senior"), _voice("Ann", "female", "senior")]
    assert select_voice(voices, "female", "young").name == "Ann"


def test_default_name_used_when_no_labels_match():
    voices = [_voice("Zed"), _voice("Bella"), _voice("Rachel")]
    # Rachel comes first in the female default list
    assert select_voice(voices, "female", "young").name == "Rachel"


def test_male_default_names():
    voices = [_voice("Zed"), _voice("Sam"), _voice("Adam")]
    assert select_voice(voices, "male", "middle").name == "Adam"


def test_falls_back_to_first_voice():
    voices = [_voice("Zed"), _voice("Quinn")]
    assert select_voice(voices, "male", "old").name == "Zed"


def test_empty_list_returns_none():
    assert select_voice([], "female", "young") is None
