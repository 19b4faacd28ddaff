import pytest

from tandem.assist import (
    CHATGPT_ENDPOINT,
    CLAUDE_ENDPOINT,
    build_explain_prompt,
    build_improve_prompt,
    parse_candidates,
    resolve_chat_route,
)


@pytest.mark.parametrize(
    ("model", "endpoint", "model_name"),
    [
        ("claude", CLAUDE_ENDPOINT, "claude-sonnet-4-5-20250929"),
        ("chatgpt", CHATGPT_ENDPOINT, "gpt-4"),
        ("kazllm", CHATGPT_ENDPOINT, "gpt-4"),
    ],
)
def test_chat_route_per_model(model: str, endpoint: str, model_name: str) -> None:
    route = resolve_chat_route(model)
    assert route.endpoint == endpoint
    assert route.model_name == model_name


def test_prompts_mention_both_texts() -> None:
    explain = build_explain_prompt("The cat sat.", "Мысық отырды.")
    assert '"The cat sat."' in explain
    assert '"Мысық отырды."' in explain
    assert "Kazakh" in explain

    improve = build_improve_prompt(
        "The cat sat.", "Мысық отырды.", "more formal", target_language="Russian"
    )
    assert "Request: more formal" in improve
    assert "variants in Russian" in improve


def test_numbered_reply_becomes_candidates() -> None:
    reply = (
        "Here are some options:\n"
        '1. "Мысық отырды."\n'
        "2. «Мысық жайғасты.»\n"
        "3. Мысық\nотырып қалды."
    )
    assert parse_candidates(reply) == [
        "Мысық отырды.",
        "Мысық жайғасты.",
        "Мысық\nотырып қалды.",
    ]


def test_unnumbered_reply_is_a_single_candidate() -> None:
    assert parse_candidates('  "Мысық отырды."  ') == ["Мысық отырды."]


def test_empty_reply_has_no_candidates() -> None:
    assert parse_candidates("") == []
    assert parse_candidates("   \n") == []
