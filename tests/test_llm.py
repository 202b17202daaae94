import pytest

from bazichart.errors import ExternalServiceUnavailable
from bazichart.llm import MAX_HISTORY_TURNS, ChatAdvisor, history_to_contents


def test_history_roles():
    contents = history_to_contents([
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
        {"role": "assistant", "content": "   "},
    ])
    assert contents == [
        {"role": "user", "parts": ["Hi"]},
        {"role": "model", "parts": ["Hello"]},
    ]


def test_history_keeps_latest_turns():
    history = [{"role": "user", "content": str(i)} for i in range(25)]
    contents = history_to_contents(history)
    assert len(contents) == MAX_HISTORY_TURNS
    assert contents[-1]["parts"] == ["24"]


def test_reply(fake_model):
    advisor = ChatAdvisor(None, model=fake_model, timeout=12)
    assert advisor.available
    assert advisor.reply("context") == fake_model.text
    _, kwargs = fake_model.calls[0]
    assert kwargs["request_options"] == {"timeout": 12}


def test_empty_reply_is_an_error(fake_model):
    fake_model.text = ""
    with pytest.raises(ExternalServiceUnavailable):
        ChatAdvisor(None, model=fake_model).reply("context")


def test_without_key():
    advisor = ChatAdvisor(None)
    assert not advisor.available
    with pytest.raises(ExternalServiceUnavailable):
        advisor.reply("context")
