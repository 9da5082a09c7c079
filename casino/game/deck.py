"""Card and deck model."""
import random
import uuid
from enum import Enum
from dataclasses import dataclass
from typing import Iterable, Optional


class Suit(str, Enum):
    """Card suits."""
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"
    SPADES = "♠"

    def __str__(self) -> str:
        return self.value

    @property
    def is_red(self) -> bool:
        """Hearts and diamonds are red."""
        return self in (Suit.HEARTS, Suit.DIAMONDS)


class Rank(str, Enum):
    """Card ranks, in deck construction order."""
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"

    def __str__(self) -> str:
        return self.value

    @property
    def default_value(self) -> int:
        """Blackjack-oriented value: faces are 10, Ace is 11."""
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        if self == Rank.ACE:
            return 11
        return int(self.value)

    @property
    def sequence_value(self) -> int:
        """Position in an Ace-low run (Ace=1 through King=13)."""
        return _SEQUENCE.index(self) + 1


_SEQUENCE = [Rank.ACE] + [r for r in Rank if r != Rank.ACE]

_SUIT_LETTERS = {"h": Suit.HEARTS, "d": Suit.DIAMONDS, "c": Suit.CLUBS, "s": Suit.SPADES}


def _new_card_id(rank: Rank, suit: Suit) -> str:
    return f"{rank.value}-{suit.name[0]}-{uuid.uuid4().hex[:9]}"


@dataclass
class Card:
    """A playing card.

    Only ``face_up`` changes after construction; a card is moved between
    containers, never copied.
    """
    rank: Rank
    suit: Suit
    id: str = ""
    value: int = 0
    face_up: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            self.id = _new_card_id(self.rank, self.suit)
        if not self.value:
            self.value = self.rank.default_value

    def __str__(self) -> str:
        return self.label

    @property
    def label(self) -> str:
        """Rank and suit, e.g. '10♣'."""
        return f"{self.rank}{self.suit}"

    @property
    def is_red(self) -> bool:
        return self.suit.is_red

    def to_dict(self, reveal: Optional[bool] = None) -> dict:
        """Convert to dictionary for snapshots.

        Args:
            reveal: Force rank/suit visibility. Defaults to the face-up flag.

        Returns:
            Card dictionary; hidden cards carry only id and face_up.
        """
        if reveal is None:
            reveal = self.face_up
        data = {"id": self.id, "face_up": self.face_up}
        if reveal:
            data.update({
                "rank": self.rank.value,
                "suit": self.suit.value,
                "value": self.value,
            })
        return data

    @classmethod
    def from_string(cls, s: str, face_up: bool = False) -> "Card":
        """Parse a card from a label like 'A♠', '10h' or 'Tc'.

        Args:
            s: Rank followed by a suit symbol or letter.
            face_up: Initial face-up flag.

        Returns:
            A new card with a fresh id.
        """
        suit_str = s[-1]
        suit = _SUIT_LETTERS.get(suit_str.lower()) or Suit(suit_str)
        rank_str = s[:-1].upper()
        if rank_str == "T":
            rank_str = "10"
        return cls(rank=Rank(rank_str), suit=suit, face_up=face_up)


def create_deck() -> list[Card]:
    """Build the 52-card deck, one card per (suit, rank), all face down."""
    return [
        Card(rank=rank, suit=suit)
        for suit in Suit
        for rank in Rank
    ]


def shuffle(cards: Iterable[Card], rng: Optional[random.Random] = None) -> list[Card]:
    """Return a uniformly shuffled copy of ``cards``.

    Args:
        cards: Cards to shuffle; left untouched.
        rng: Random source (module-level generator if omitted).

    Returns:
        New list holding the same card objects.
    """
    shuffled = list(cards)
    (rng or random).shuffle(shuffled)
    return shuffled


def blackjack_score(hand: Iterable[Card]) -> int:
    """Score a Blackjack hand, softening Aces from 11 to 1 as needed.

    The result may still exceed 21; deciding a bust is up to the caller.
    """
    score = 0
    aces = 0
    for card in hand:
        if card.rank == Rank.ACE:
            aces += 1
        score += card.value

    while score > 21 and aces > 0:
        score -= 10
        aces -= 1

    return score


class Deck:
    """The draw pile. The top of the deck is the end of the list."""

    def __init__(self, cards: Optional[list[Card]] = None):
        """Initialize a deck.

        Args:
            cards: Cards in draw order (last is drawn first). Empty if omitted.
        """
        self._cards: list[Card] = list(cards) if cards else []

    def reset(self, rng: Optional[random.Random] = None) -> None:
        """Replace the contents with a freshly shuffled 52-card deck."""
        self._cards = shuffle(create_deck(), rng)

    def draw(self, face_up: bool = False) -> Optional[Card]:
        """Draw the top card.

        Args:
            face_up: Face-up flag to give the drawn card.

        Returns:
            The card, or None if the deck is empty.
        """
        if not self._cards:
            return None
        card = self._cards.pop()
        card.face_up = face_up
        return card

    def deal(self, count: int, face_up: bool = False) -> list[Card]:
        """Deal several cards from the top.

        Raises:
            ValueError: If not enough cards remain.
        """
        if count > len(self._cards):
            raise ValueError(f"Cannot deal {count} cards, only {len(self._cards)} remain")
        return [self.draw(face_up) for _ in range(count)]

    @property
    def cards(self) -> list[Card]:
        return list(self._cards)

    @property
    def remaining(self) -> int:
        """Number of cards remaining in the deck."""
        return len(self._cards)

    def __len__(self) -> int:
        return len(self._cards)
