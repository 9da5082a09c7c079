"""Tests for the CLI commands."""
import pytest
from casino.cli import choose_intent, print_rules, simulate
from casino.game.state import Variant


def make_snapshot(variant: str, valid: list[str], hand: list[dict] = None, **extra) -> dict:
    """Minimal snapshot with the fields the scripted player reads."""
    snapshot = {
        "variant": variant,
        "valid_actions": valid,
        "deck_count": 10,
        "players": [{"hand": hand or [], "chips": 1000}],
        "solitaire": None,
    }
    snapshot.update(extra)
    return snapshot


def face_up(card_id: str, rank: str, suit: str) -> dict:
    return {"id": card_id, "face_up": True, "rank": rank, "suit": suit}


class TestRules:
    """Test the rules command."""

    @pytest.mark.parametrize("variant", list(Variant))
    def test_every_variant_has_rules(self, variant, capsys):
        print_rules(variant)

        assert variant.display_name in capsys.readouterr().out


class TestScriptedPlayer:
    """Test the simulation policy."""

    def test_waits_when_nothing_to_do(self):
        assert choose_intent(make_snapshot("poker", []), 0) is None

    def test_bets_first(self):
        assert choose_intent(make_snapshot("poker", ["place_bet"]), 0) == {"type": "place_bet"}

    def test_blackjack_hits_low_total(self):
        hand = [face_up("a", "10", "♠"), face_up("b", "5", "♥")]

        intent = choose_intent(make_snapshot("blackjack", ["hit", "stand"], hand), 0)

        assert intent == {"type": "action", "action": "hit"}

    def test_checks_before_calling(self):
        intent = choose_intent(make_snapshot("texas_holdem", ["fold", "check", "raise"]), 0)

        assert intent == {"type": "action", "action": "check"}

    def test_rummy_melds_set(self):
        hand = [face_up("a", "5", "♣"), face_up("b", "5", "♦"), face_up("c", "5", "♥"), face_up("d", "9", "♠")]

        intent = choose_intent(make_snapshot("rummy", ["meld", "discard"], hand), 0)

        assert intent == {"type": "meld", "card_ids": ["a", "b", "c"]}

    def test_solitaire_plays_ace(self):
        layout = {
            "tableau": [[face_up("x", "A", "♦")]] + [[] for _ in range(6)],
            "foundations": [[], [], [], []],
            "stock_count": 5,
            "waste": [],
        }
        snapshot = make_snapshot("solitaire", ["move_card", "auto_move", "draw_stock"], solitaire=layout)

        assert choose_intent(snapshot, 0) == {"type": "auto_move", "card_id": "x"}


class TestSimulate:
    """Test the simulate command end to end."""

    @pytest.mark.asyncio
    async def test_blackjack_session(self, capsys):
        await simulate(Variant.BLACKJACK, 2, seed=4)

        out = capsys.readouterr().out
        assert "Round 1:" in out
        assert "Round 2:" in out
        assert "Final balance:" in out
