#!/usr/bin/env python3
"""CLI tool for browsing table rules and running simulated sessions."""
import asyncio
import random
import sys
from collections import defaultdict
from typing import Optional

from casino.config import config
from casino.game.deck import Card, Rank, Suit, blackjack_score
from casino.game.scheduler import Delays
from casino.game.state import Variant
from casino.protocol.handlers import MessageHandler
from casino.state.session_store import SessionStore
from casino.utils.logger import set_log_level

# Intents a scripted player may send in one round before giving up
MAX_STEPS_PER_ROUND = 500

RULES = {
    Variant.BLACKJACK: f"""
Blackjack
  Beat the dealer without going over 21. Face cards count 10, Aces 11 or 1.
  Hit to take a card, Stand to keep your total. The dealer hits below 17.
  A win or a dealer bust pays 2x your bet; a tie returns your bet.
  Bets: ${config.min_bet} to ${config.max_bet}.
""",
    Variant.POKER: f"""
5-Card Draw Poker
  Everyone antes and gets five cards. Exchange up to three of yours once,
  then bet: Check, Call, Raise (+${config.raise_increment}) or Fold.
  At the showdown one remaining player takes the pot.
  Bets: ${config.min_bet} to ${config.max_bet}.
""",
    Variant.TEXAS_HOLDEM: f"""
Texas Hold 'em
  Two hole cards each, then the Flop (3), the Turn (1) and the River (1),
  with a betting round before each reveal and after the last.
  Check, Call, Raise (+${config.raise_increment}) or Fold; the last player
  standing, or one picked at the showdown, takes the pot.
  Bets: ${config.min_bet} to ${config.max_bet}.
""",
    Variant.RUMMY: f"""
Rummy
  Seven cards each. On your turn draw from the stock or the discard pile,
  lay down sets (same rank) or runs (same suit, in sequence) of 3+ cards,
  then discard one. First player to empty their hand wins ${config.rummy_reward}.
""",
    Variant.SOLITAIRE: f"""
Klondike Solitaire
  Buy-in ${config.solitaire_cost}. Build the four foundations up by suit from Ace
  to King. Tableau columns build down in alternating colours; only a King
  may fill an empty column. Each card sent to a foundation pays
  ${config.solitaire_reward}.
""",
}


def print_rules(variant: Variant) -> None:
    """Print the rules of a variant."""
    print(RULES[variant])


def _card(data: dict) -> Card:
    return Card(rank=Rank(data["rank"]), suit=Suit(data["suit"]))


def _human(snapshot: dict) -> dict:
    return snapshot["players"][0]


def choose_intent(snapshot: dict, stalled_draws: int) -> Optional[dict]:
    """Pick the scripted human's next intent from a snapshot.

    Returns:
        A client message dict, or None when the human has nothing to do.
    """
    valid = snapshot["valid_actions"]
    if not valid:
        return None
    variant = Variant(snapshot["variant"])
    hand = _human(snapshot)["hand"]

    if "place_bet" in valid:
        return {"type": "place_bet"}
    if "exchange" in valid:
        return {"type": "exchange", "card_ids": []}
    if "draw" in valid:
        source = "stock" if snapshot["deck_count"] else "discard"
        return {"type": "draw", "source": source}
    if "meld" in valid:
        by_rank = defaultdict(list)
        for card in hand:
            by_rank[card["rank"]].append(card["id"])
        for ids in by_rank.values():
            if len(ids) >= 3:
                return {"type": "meld", "card_ids": ids}
        return {"type": "discard", "card_id": hand[0]["id"]}

    if variant == Variant.SOLITAIRE:
        return _choose_solitaire_intent(snapshot["solitaire"], stalled_draws)
    if variant == Variant.BLACKJACK:
        score = blackjack_score(_card(c) for c in hand)
        return {"type": "action", "action": "hit" if score < 17 else "stand"}

    for action in ("check", "call", "fold"):
        if action in valid:
            return {"type": "action", "action": action}
    return None


def _choose_solitaire_intent(layout: dict, stalled_draws: int) -> dict:
    if stalled_draws > 2 * (layout["stock_count"] + len(layout["waste"])) + 2:
        # A full pass through the stock found nothing to play
        return {"type": "start_next_round"}
    exposed = [col[-1] for col in layout["tableau"] if col and col[-1]["face_up"]]
    if layout["waste"]:
        exposed.insert(0, layout["waste"][-1])
    for card in exposed:
        if _fits_foundation(card, layout["foundations"]):
            return {"type": "auto_move", "card_id": card["id"]}
    return {"type": "draw_stock"}


def _fits_foundation(card: dict, foundations: list[list[dict]]) -> bool:
    rank = Rank(card["rank"])
    for pile in foundations:
        if not pile:
            if rank == Rank.ACE:
                return True
            continue
        top = pile[-1]
        if top["suit"] == card["suit"] and Rank(top["rank"]).sequence_value + 1 == rank.sequence_value:
            return True
    return False


async def simulate(variant: Variant, rounds: int, seed: Optional[int] = None) -> None:
    """Play a session with zero delays and a scripted human.

    Args:
        variant: Game to play.
        rounds: Rounds to play before leaving.
        seed: Random seed for a reproducible run.
    """
    store = SessionStore(delays=Delays.instant(), rng=random.Random(seed))
    handler = MessageHandler(store)
    response, session_id = await handler.handle_message({"type": "start_session", "variant": variant.value})
    print(f"Simulating {variant.display_name} for {rounds} round(s), starting with {_human(response)['chips']} chips")

    played = 0
    steps = 0
    stalled_draws = 0
    while session_id and played < rounds:
        session = store.get_session(session_id)
        await session.table.scheduler.wait_idle()
        response, session_id = await handler.handle_message({"type": "get_state"}, session_id)

        if response["phase"] in ("ROUND_OVER", "VICTORY"):
            played += 1
            steps = 0
            stalled_draws = 0
            print(f"  Round {played}: {response['phase']:<10} {response['message']:<32} chips={_human(response)['chips']}")
            if played < rounds:
                response, session_id = await handler.handle_message({"type": "start_next_round"}, session_id)
            continue

        steps += 1
        if steps > MAX_STEPS_PER_ROUND:
            print(f"  Round {played + 1}: stopped after {MAX_STEPS_PER_ROUND} moves")
            break

        intent = choose_intent(response, stalled_draws)
        if intent is None:
            continue
        if intent["type"] == "start_next_round":
            played += 1
            print(f"  Round {played}: abandoned        chips={_human(response)['chips']}")
        stalled_draws = stalled_draws + 1 if intent["type"] == "draw_stock" else 0

        response, session_id = await handler.handle_message(intent, session_id)
        if response["type"] == "error":
            print(f"  Rejected {intent['type']}: {response['message']}")
            break

    if session_id:
        response, session_id = await handler.handle_message({"type": "close_session"}, session_id)
    print(f"Final balance: {response.get('final_balance')}")


def print_usage():
    """Print usage information."""
    print("""
Casino Table CLI

Usage:
  python -m casino.cli <command> [args]

Commands:
  rules <variant>                 Show the rules of a game
  simulate <variant> [rounds]     Play rounds with a scripted player
                                  (add --verbose to keep table logs)

Variants:
  blackjack, poker, texas_holdem, rummy, solitaire

Examples:
  python -m casino.cli rules blackjack
  python -m casino.cli simulate texas_holdem 5
""")


def _parse_variant(name: str) -> Variant:
    try:
        return Variant(name.lower())
    except ValueError:
        print(f"Error: Unknown variant '{name}'.")
        print_usage()
        sys.exit(1)


def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    command = sys.argv[1].lower()

    if command == "rules":
        if len(sys.argv) < 3:
            print("Error: Variant required.")
            print("Usage: python -m casino.cli rules <variant>")
            sys.exit(1)
        print_rules(_parse_variant(sys.argv[2]))

    elif command == "simulate":
        if len(sys.argv) < 3:
            print("Error: Variant required.")
            print("Usage: python -m casino.cli simulate <variant> [rounds]")
            sys.exit(1)
        args = [a for a in sys.argv[3:] if a != "--verbose"]
        if "--verbose" not in sys.argv:
            set_log_level("WARNING")
        rounds = int(args[0]) if args else 1
        asyncio.run(simulate(_parse_variant(sys.argv[2]), rounds))

    elif command in ("help", "-h", "--help"):
        print_usage()

    else:
        print(f"Unknown command: {command}")
        print_usage()
        sys.exit(1)


if __name__ == "__main__":
    main()
