import json

import pytest
from click.testing import CliRunner

from agirace.core.constants import MAX_TURN
from agirace.core.persistence import serialize_state
from agirace.gamemaster import Gamemaster
from agirace.simulation import Directive, parse_directive, simulate_one_game
from simulate import main
from test_gamemaster import DummyLLMClient


def test_parse_directive():
    directive = parse_directive("3:us_lab_a: Publish our eval suite: all of it")
    assert directive == Directive(turn=3, faction_id="us_lab_a", text="Publish our eval suite: all of it")


@pytest.mark.parametrize("value", ["us_lab_a:do it", "x:us_lab_a:do it", "2::do it", "2:us_gov:  "])
def test_parse_directive_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_directive(value)


def test_directives_reach_the_gamemaster_on_their_turn():
    reply = json.dumps({
        "narrative": "OpenBrain publishes its evaluation suite.",
        "effects": [{"kind": "resource", "faction_id": "us_lab_a", "key": "trust", "delta": 5}],
    })
    client = DummyLLMClient([reply])
    directives = [Directive(turn=2, faction_id="us_lab_a", text="Publish our eval suite.")]

    gamemaster = Gamemaster(client)

    state = simulate_one_game(turns=3, seed=4, events_enabled=False, gamemaster=gamemaster, directives=directives)

    assert len(client.calls) == 1
    assert "OpenBrain publishes its evaluation suite." in state.log
    assert [record["turn"] for record in gamemaster.history] == [2]


def test_directive_for_unknown_faction_is_skipped():
    client = DummyLLMClient([])
    simulate_one_game(turns=1, seed=4, events_enabled=False, gamemaster=Gamemaster(client),
                      directives=[Directive(turn=1, faction_id="eu_gov", text="Join the race.")])
    assert client.calls == []


def test_cli_directive_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    result = CliRunner().invoke(main, ["--turns", "1", "--directive", "1:us_gov:Announce export controls"])
    assert result.exit_code != 0
    assert "API key" in result.output


def test_cli_rejects_malformed_directive():
    result = CliRunner().invoke(main, ["--turns", "1", "--directive", "soon:us_gov:Act"])
    assert result.exit_code != 0
    assert "TURN:FACTION_ID:TEXT" in result.output


def test_same_seed_same_game():
    first = simulate_one_game(seed=5)
    second = simulate_one_game(seed=5)
    assert serialize_state(first) == serialize_state(second)


def test_full_game_ends():
    state = simulate_one_game(turns=MAX_TURN, seed=42)
    assert state.game_over
    assert state.outcome is not None
    assert state.turn <= MAX_TURN


def test_turn_limit_is_respected():
    state = simulate_one_game(turns=3, seed=1, events_enabled=False)
    assert state.turn == 3


def test_on_turn_callback_sees_every_turn():
    seen = []
    simulate_one_game(turns=4, seed=2, on_turn=lambda state: seen.append(state.turn))
    assert seen == [1, 2, 3, 4]


def test_events_fire_over_a_long_game():
    state = simulate_one_game(turns=MAX_TURN, seed=9)
    assert any(": " in entry and " chose to " in entry for entry in state.log)


def test_cli_runs_and_saves(tmp_path):
    save_path = tmp_path / "save.json"
    history_path = tmp_path / "history.csv"
    transcript_path = tmp_path / "transcript.jsonl"

    result = CliRunner().invoke(main, [
        "--turns", "4", "--seed", "3", "--log",
        "--save", str(save_path),
        "--history-csv", str(history_path),
        "--transcript", str(transcript_path),
    ])

    assert result.exit_code == 0, result.output
    assert "--- Summary ---" in result.output
    assert "--- 2026 Q2 ---" in result.output
    assert "Global Safety:" in result.output
    assert json.loads(save_path.read_text())["turn"] == 4
    assert history_path.exists()

    records = [json.loads(line) for line in transcript_path.read_text().splitlines()]
    assert any(record["log_type"] == "turn_summary" for record in records)


def test_cli_resumes_from_save(tmp_path):
    save_path = tmp_path / "save.json"
    runner = CliRunner()
    runner.invoke(main, ["--turns", "2", "--no-events", "--save", str(save_path)])

    result = runner.invoke(main, ["--turns", "2", "--no-events", "--load", str(save_path), "--save", str(save_path)])

    assert result.exit_code == 0, result.output
    assert json.loads(save_path.read_text())["turn"] == 4
