import json

import pytest
from conftest import build_content

from onboarding import config
from onboarding.content import ContentProvider, FileContentProvider, load_content, to_public


def test_shipped_content_loads():
    content = load_content(config.DEFAULT_CONTENT_PATH)

    assert content.nda_text
    assert [d.id for d in content.documents] == ["doc-house-rules", "doc-safety"]
    assert content.video.duration_seconds == 420
    assert content.quiz_pass_threshold == 80
    assert content.quiz_max_attempts == 3
    assert {q.type for q in content.questions} == {"multiple_choice", "true_false", "multi_select", "open_text"}


def test_missing_content_file_is_reported(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_content(str(tmp_path / "missing.json"))


def test_quiz_settings_fall_back_to_configuration(tmp_path, monkeypatch):
    path = tmp_path / "content.json"
    path.write_text(json.dumps({"nda_text": "Keep it secret.", "questions": []}), encoding="utf-8")
    monkeypatch.setattr(config, "QUIZ_PASS_THRESHOLD", 70)
    monkeypatch.setattr(config, "QUIZ_MAX_ATTEMPTS", 5)

    content = load_content(str(path))

    assert (content.quiz_pass_threshold, content.quiz_max_attempts) == (70, 5)


def test_file_provider_reload_picks_up_new_documents(tmp_path):
    path = tmp_path / "content.json"
    path.write_text(json.dumps({"documents": []}), encoding="utf-8")
    provider = FileContentProvider(str(path))
    assert provider.get_content().documents == []

    path.write_text(json.dumps({"documents": [{"id": "doc-new", "title": "New"}]}), encoding="utf-8")
    provider.reload()

    assert [d.id for d in provider.get_content().documents] == ["doc-new"]


def test_public_content_strips_answers():
    public = to_public(build_content())

    dumped = public.model_dump()
    assert len(dumped["questions"]) == 11
    assert all("correct_answer" not in q for q in dumped["questions"])
    assert dumped["documents"][0]["minimum_reading_seconds"] == 30


def test_content_provider_must_implement_get_content():
    class Incomplete(ContentProvider):
        pass

    with pytest.raises(TypeError):
        Incomplete()
